"""
Prompt builders for resource discovery, replacement and recovery.

Every builder returns plain text; the JSON shapes requested here are the
shapes ``StepResources.from_payload`` and the services parse.
"""

from typing import Iterable, List, Optional, Sequence

CURATOR_SYSTEM_PROMPT = (
    "You are a learning resource curator. Return ONLY valid JSON with no markdown formatting or explanation."
)
PODCAST_RECOVERY_SYSTEM_PROMPT = (
    "You are a podcast link finder. Return ONLY a valid JSON object with a single \"url\" field "
    "containing the actual working podcast URL found via web search. No explanations."
)
SYNTHESIS_SYSTEM_PROMPT = (
    "You are an expert educator who recommends well-known, long-lived learning resources. "
    "Only recommend resources you are confident exist at the given URL. "
    "Return ONLY valid JSON with no markdown formatting or explanation."
)

_JSON_ONLY = "Return ONLY valid JSON, no markdown or explanations."

_VIDEO_FIELDS = """{
  "url": "YouTube URL (<20 min, educational, not promotional)",
  "title": "Video title",
  "author": "Channel name",
  "duration": "MM:SS",
  "whyThisVideo": "One sentence explaining why this is the best choice",
  "keyMoments": [{"time": "0:00", "label": "Introduction"}]
}"""

_READING_FIELDS = """{
  "url": "Article/PDF URL (prefer stanford.edu, plato.stanford.edu, mit.edu, academic sources)",
  "domain": "stanford.edu",
  "title": "Article title",
  "author": "Author name",
  "snippet": "2-3 sentence summary",
  "focusHighlight": "Specific reading recommendation (e.g., 'Read Section 2 on...')"
}"""

_BOOK_FIELDS = """{
  "title": "Book title (prefer classic texts, authoritative textbooks, Project Gutenberg or Archive.org)",
  "author": "Author name",
  "url": "Archive.org, Project Gutenberg or authoritative URL",
  "source": "Project Gutenberg / Archive.org / publisher",
  "chapterRecommendation": "e.g., 'Chapter 3: The Nature of Virtue'",
  "why": "One sentence on why this book is recommended"
}"""


def _bullets(urls: Iterable[str]) -> str:
    return "\n".join(f"- {u}" for u in urls)


def blacklist_constraint(blacklist: Sequence[str], *, only_containing: Optional[str] = None) -> str:
    """Render reported / already-shown URLs as a negative constraint (empty when none)."""
    urls = [u for u in blacklist if u and (only_containing is None or only_containing in u)]
    if not urls:
        return ""
    return "CRITICAL: DO NOT return these URLs (reported broken or already shown):\n" + _bullets(urls)


def step_details_prompt(step_title: str, discipline: str, syllabus_urls: Sequence[str] = ()) -> str:
    sources = ""
    if syllabus_urls:
        sources = "\n\nReference these authoritative sources:\n" + _bullets(syllabus_urls[:5])
    return f"""Provide a brief description and difficulty level for this learning step: "{step_title}" in {discipline}.{sources}

Return ONLY valid JSON:
{{
  "description": "1-2 sentence description of what this step covers",
  "difficulty": "Introductory" | "Intermediate" | "Advanced",
  "sourceUrls": ["url1", "url2"]
}}"""


def step_resources_prompt(
    step_title: str,
    discipline: str,
    syllabus_urls: Sequence[str] = (),
    blacklist: Sequence[str] = (),
) -> str:
    parts: List[str] = [f'Find the best learning resources for "{step_title}" in the context of "{discipline}".']
    if syllabus_urls:
        parts.append("Prioritize resources from these authoritative syllabi sources:\n" + "\n".join(syllabus_urls[:10]))
    constraint = blacklist_constraint(blacklist)
    if constraint:
        parts.append(constraint)
    parts.append(
        f"""Return a JSON object with these fields:

{{
  "videos": [{_VIDEO_FIELDS}],
  "readings": [{_READING_FIELDS}],
  "books": [{_BOOK_FIELDS}],
  "alternatives": [
    {{
      "type": "podcast" | "mooc" | "video" | "article" | "book",
      "url": "Resource URL",
      "title": "Resource title",
      "source": "Platform name (Spotify, Coursera, edX, etc.)",
      "duration": "Optional duration",
      "author": "Optional author/creator",
      "isAtomic": "true when the URL is a single lecture/lesson, false for a whole course"
    }}
  ]
}}

Give up to 3 videos, 3 readings, 1 book and 4 alternatives.
IMPORTANT: Return ONLY the JSON object, no markdown formatting, no explanations."""
    )
    return "\n\n".join(parts)


def additional_resource_prompt(
    resource_type: str,
    step_title: str,
    discipline: str,
    blacklist: Sequence[str] = (),
) -> str:
    """Ask for ONE more resource of the given type, as a JSON array."""
    if resource_type == "video":
        constraint = blacklist_constraint(blacklist, only_containing="youtu")
        return f"""SEARCH YouTube for ONE additional educational video about "{step_title}" in {discipline}.

{constraint}

Find ONE new video that:
- Is from educational channels (CrashCourse, Khan Academy, TED-Ed, MIT, university channels)
- Is under 25 minutes
- Actually exists and is different from already provided videos

Return ONLY valid JSON:
[{{
  "url": "https://www.youtube.com/watch?v=...",
  "title": "Exact title",
  "author": "Channel name",
  "duration": "12:34",
  "whyThisVideo": "One sentence explanation"
}}]"""

    constraint = blacklist_constraint(blacklist)
    if resource_type == "reading":
        return f"""SEARCH for ONE additional authoritative reading about "{step_title}" in {discipline}.

{constraint}

Search these domains:
- plato.stanford.edu
- en.wikipedia.org
- ocw.mit.edu
- gutenberg.org

Return ONLY valid JSON:
[{{
  "url": "Full article URL",
  "title": "Exact title",
  "author": "Author name",
  "domain": "domain.com",
  "snippet": "2-3 sentences",
  "focusHighlight": "Reading recommendation"
}}]"""

    if resource_type == "book":
        return f"""SEARCH for ONE additional book about "{step_title}" in {discipline}, preferably public domain or free to borrow.

{constraint}

Search: Project Gutenberg, Archive.org, Open Library

Return ONLY valid JSON:
[{_BOOK_FIELDS}]"""

    platforms = {
        "podcast": "Spotify, Apple Podcasts, podcast directories",
        "mooc": "Coursera, edX, Khan Academy, Udacity",
    }.get(resource_type, "reputable educational platforms")
    noun = {"podcast": "podcast episode", "mooc": "MOOC course"}.get(resource_type, resource_type)
    return f"""SEARCH for ONE additional {noun} about "{step_title}" in {discipline}.

{constraint}

Search platforms: {platforms}

Return ONLY valid JSON:
[{{
  "type": "{resource_type}",
  "url": "Full {resource_type} URL",
  "title": "Title",
  "source": "Platform or podcast name",
  "duration": "Duration if available"
}}]"""


def replacement_prompt(
    resource_type: str,
    step_title: str,
    discipline: str,
    blacklist: Sequence[str] = (),
) -> str:
    """Ask for ONE replacement for a reported resource, as a JSON object."""
    constraint = blacklist_constraint(blacklist)
    constraint = f"\n\n{constraint}\n" if constraint else ""
    if resource_type == "video":
        body = f'Find a replacement educational video for "{step_title}" in "{discipline}".{constraint}\n\nReturn JSON:\n{_VIDEO_FIELDS}'
    elif resource_type == "reading":
        body = f'Find a replacement academic article/reading for "{step_title}" in "{discipline}".{constraint}\n\nReturn JSON:\n{_READING_FIELDS}'
    elif resource_type == "book":
        body = f'Find a replacement book for "{step_title}" in "{discipline}".{constraint}\n\nReturn JSON:\n{_BOOK_FIELDS}'
    else:
        body = f"""Find a replacement {resource_type} resource for "{step_title}" in "{discipline}".{constraint}

Return JSON:
{{
  "type": "{resource_type}",
  "url": "Resource URL",
  "title": "Title",
  "source": "Platform/publisher",
  "duration": "Optional duration",
  "author": "Optional author"
}}"""
    return f"{body}\n\n{_JSON_ONLY}"


def podcast_recovery_prompt(title: str, source: str, original_url: str) -> str:
    source_part = f" from {source}" if source else ""
    return f"""SEARCH the web for the podcast episode "{title}"{source_part}.

Find the ACTUAL working URL for this podcast episode. Search podcast platforms like:
- Apple Podcasts
- Spotify
- The podcast's official website
- YouTube (for podcast episodes)

Return ONLY valid JSON:
{{
  "url": "Working episode URL found via search"
}}

The original URL was: {original_url} (but it doesn't work)"""


def synthesis_prompt(
    step_title: str,
    discipline: str,
    missing: Sequence[str],
    blacklist: Sequence[str] = (),
) -> str:
    """Ask the gateway model for well-known resources in the missing categories."""
    wanted = " and ".join(missing)
    constraint = blacklist_constraint(blacklist)
    constraint = f"\n\n{constraint}" if constraint else ""
    return f"""Recommend {wanted} for the learning step "{step_title}" in "{discipline}".

Use stable, canonical sources: university lecture channels and open courseware for videos;
plato.stanford.edu, en.wikipedia.org, ocw.mit.edu and other academic sites for readings.{constraint}

Return a JSON object with only the requested lists:
{{
  "videos": [{_VIDEO_FIELDS}],
  "readings": [{_READING_FIELDS}]
}}

Give at most 2 items per list. {_JSON_ONLY}"""
