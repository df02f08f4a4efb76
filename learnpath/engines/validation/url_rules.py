"""
Local URL inspection - no network access.

Domain extraction, normalisation for dedupe/blacklist comparison, YouTube id
handling and coarse resource-kind classification.
"""

import re
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

YOUTUBE_ID_PATTERN = re.compile(
    r"(?:v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)([A-Za-z0-9_-]{11})"
)
URL_IN_TEXT_PATTERN = re.compile(r"https?://[^\s<>\"'\)\]]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?'\""

PLACEHOLDER_PATTERNS = [
    re.compile(r"/lecture/[A-Z_]+$"),
    re.compile(r"/video/[A-Z_]+$"),
]
PLACEHOLDER_TOKENS = ("VIDEO_ID", "LECTURE_ID", "REAL URL", "REAL_URL", "example.com")

VIDEO_DOMAINS = ("youtube.com", "youtu.be", "vimeo.com")
BOOK_MARKERS = ("gutenberg.org", "archive.org/details", "openlibrary.org", "books.google.")
MOOC_DOMAINS = (
    "coursera.org", "edx.org", "udemy.com", "udacity.com", "futurelearn.com",
    "khanacademy.org", "ocw.mit.edu", "open.edu", "classcentral.com",
)
PODCAST_DOMAINS = ("spotify.com", "podcasts.apple.com", "podcasts.google.com", "overcast.fm", "podbean.com")
# Skipped by the content extractor
NON_ARTICLE_DOMAINS = ("youtube.com", "youtu.be", "amazon.", "spotify.com", "podcasts.apple.com")


def extract_domain(url: str) -> str:
    """Hostname without a leading www., or '' when the URL cannot be parsed."""
    try:
        host = urlsplit((url or "").strip()).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def normalize_url(url: str) -> str:
    """Canonical form used for dedupe and blacklist comparison."""
    raw = (url or "").strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw.lower()
    if not parts.scheme or not parts.netloc:
        return raw.lower().rstrip("/")
    host = parts.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), host, path, parts.query, ""))


def youtube_video_id(url: str) -> Optional[str]:
    match = YOUTUBE_ID_PATTERN.search(url or "")
    return match.group(1) if match else None


def youtube_thumbnail(url: str) -> str:
    video_id = youtube_video_id(url)
    return f"https://i.ytimg.com/vi/{video_id}/maxresdefault.jpg" if video_id else ""


def is_youtube_url(url: str) -> bool:
    domain = extract_domain(url)
    return domain.endswith("youtube.com") or domain == "youtu.be"


def is_placeholder_url(url: str) -> bool:
    """LLM output sometimes carries template ids instead of real links."""
    if not url:
        return True
    if any(token in url for token in PLACEHOLDER_TOKENS):
        return True
    return any(p.search(url) for p in PLACEHOLDER_PATTERNS)


def is_http_url(url: str) -> bool:
    try:
        parts = urlsplit((url or "").strip())
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def classify_url_kind(url: str) -> str:
    """Coarse kind of a bare URL: video, book, mooc, podcast or reading."""
    lowered = (url or "").lower()
    domain = extract_domain(lowered)
    if any(domain == d or domain.endswith("." + d) for d in VIDEO_DOMAINS):
        return "video"
    if any(marker in lowered for marker in BOOK_MARKERS):
        return "book"
    if any(d in domain for d in PODCAST_DOMAINS):
        return "podcast"
    if any(domain == d or domain.endswith("." + d) for d in MOOC_DOMAINS):
        return "mooc"
    return "reading"


def title_from_url(url: str) -> str:
    """Readable fallback title from the last path segment."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    segments = [s for s in parts.path.split("/") if s]
    if not segments:
        return extract_domain(url) or url
    last = re.sub(r"\.(html?|php|aspx?|pdf)$", "", segments[-1], flags=re.IGNORECASE)
    words = re.sub(r"[-_+]+", " ", last).strip()
    return words[:1].upper() + words[1:] if words else extract_domain(url)


def extract_urls(text: str) -> List[str]:
    """http(s) URLs found in free text, de-duplicated in order of appearance."""
    seen = set()
    urls: List[str] = []
    for match in URL_IN_TEXT_PATTERN.finditer(text or ""):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        key = normalize_url(url)
        if key in seen:
            continue
        seen.add(key)
        urls.append(url)
    return urls
