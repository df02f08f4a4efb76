"""
Pydantic schemas for raw step resource bundles.

A bundle is what the fetcher assembles from extraction, search and AI
synthesis, and what the cache stores. Payloads written by older clients use
camelCase keys and a singular shape (primaryVideo / deepReading / book);
``StepResources.from_payload`` accepts all of them.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResourceOrigin(str, Enum):
    """Where a resource came from, in decreasing order of trust."""
    SYLLABUS_CITED = "syllabus_cited"
    AUTHORITY_DOMAIN = "authority_domain"
    AI_SELECTED = "ai_selected"


class ProvenanceTier(str, Enum):
    """Which stage of the pipeline produced a bundle."""
    CACHE = "cache"
    EXTRACTION = "extraction"
    OER_SEARCH = "oer_search"
    AI_SYNTHESIS = "ai_synthesis"


ALTERNATIVE_TYPES = ("podcast", "mooc", "video", "article", "book")

_ALTERNATIVE_TYPE_ALIASES = {
    "course": "mooc",
    "online_course": "mooc",
    "episode": "podcast",
    "reading": "article",
    "paper": "article",
    "pdf": "article",
    "textbook": "book",
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def to_snake(key: str) -> str:
    """coreVideos -> core_videos; already-snake keys pass through."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def snake_keys(value: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(value, dict):
        return {to_snake(str(k)): snake_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [snake_keys(v) for v in value]
    return value


class _Resource(BaseModel):
    """Shared config: LLM output is loose, so numbers become strings and extras are dropped."""

    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class StepDetails(_Resource):
    """Short description of a learning step."""

    description: str = ""
    difficulty: Optional[str] = None
    source_urls: List[str] = Field(default_factory=list)


class KeyMoment(_Resource):
    time: str
    label: str


class VideoResource(_Resource):
    url: str
    title: str = ""
    author: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    why_this_video: Optional[str] = None
    key_moments: List[KeyMoment] = Field(default_factory=list)
    verified: Optional[bool] = None
    archived_url: Optional[str] = None
    origin: Optional[ResourceOrigin] = None


class SpecificReading(_Resource):
    citation: str
    url: str
    type: Literal["pdf", "article", "chapter", "external"] = "external"
    verified: Optional[bool] = None
    archived_url: Optional[str] = None


class ReadingResource(_Resource):
    url: str
    domain: Optional[str] = None
    title: str = ""
    author: Optional[str] = None
    snippet: Optional[str] = None
    focus_highlight: Optional[str] = None
    favicon: Optional[str] = None
    embedded_content: Optional[str] = None
    content_extraction_status: Optional[Literal["success", "partial", "failed"]] = None
    specific_readings: List[SpecificReading] = Field(default_factory=list)
    verified: Optional[bool] = None
    archived_url: Optional[str] = None
    direct_pdf_url: Optional[str] = None
    origin: Optional[ResourceOrigin] = None


class BookResource(_Resource):
    title: str
    author: Optional[str] = None
    url: str = ""
    source: Optional[str] = None
    chapter_recommendation: Optional[str] = None
    why: Optional[str] = None
    verified: Optional[bool] = None
    archived_url: Optional[str] = None
    embedded_content: Optional[str] = None
    is_public_domain: Optional[bool] = None
    origin: Optional[ResourceOrigin] = None


class AlternativeResource(_Resource):
    """Podcast, MOOC or other secondary resource."""

    type: str = "article"
    url: str
    title: str = ""
    source: Optional[str] = None
    duration: Optional[str] = None
    author: Optional[str] = None
    verified: Optional[bool] = None
    archived_url: Optional[str] = None
    origin: Optional[ResourceOrigin] = None
    # MOOC search hints used by granularity classification
    is_atomic: Optional[bool] = None
    course_title: Optional[str] = None
    course_url: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        kind = str(value or "article").strip().lower()
        kind = _ALTERNATIVE_TYPE_ALIASES.get(kind, kind)
        return kind if kind in ALTERNATIVE_TYPES else "article"


class Provenance(BaseModel):
    """How a bundle was produced."""

    tier: ProvenanceTier
    tiers_used: List[ProvenanceTier] = Field(default_factory=list)
    backends: List[str] = Field(default_factory=list)
    cached: bool = False
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _valid_items(model: type[BaseModel], items: Any, *, require_url: bool = True) -> list:
    """Parse a list of dicts, skipping entries that are not usable."""
    parsed = []
    for item in items or []:
        if isinstance(item, model):
            parsed.append(item)
            continue
        if not isinstance(item, dict) or (require_url and not item.get("url")):
            continue
        try:
            parsed.append(model.model_validate(item))
        except ValueError:
            continue
    return parsed


class StepResources(BaseModel):
    """Raw resource bundle for one curriculum step."""

    step_details: Optional[StepDetails] = None
    videos: List[VideoResource] = Field(default_factory=list)
    readings: List[ReadingResource] = Field(default_factory=list)
    books: List[BookResource] = Field(default_factory=list)
    alternatives: List[AlternativeResource] = Field(default_factory=list)
    provenance: Optional[Provenance] = None

    @property
    def is_empty(self) -> bool:
        return not (self.videos or self.readings or self.books or self.alternatives)

    def all_urls(self) -> List[str]:
        urls: List[str] = []
        for group in (self.videos, self.readings, self.books, self.alternatives):
            urls.extend(r.url for r in group if r.url)
        return urls

    @classmethod
    def from_payload(cls, payload: Optional[dict]) -> "StepResources":
        """
        Build a bundle from any stored or upstream payload.

        Accepts camelCase keys and the deprecated singular fields
        (primary_video, deep_reading, book), which are promoted into the
        lists when the lists are empty. Unusable entries are skipped.
        """
        data = snake_keys(payload or {})

        videos = data.get("videos") or []
        if not videos and isinstance(data.get("primary_video"), dict):
            videos = [data["primary_video"]]
        readings = data.get("readings") or []
        if not readings and isinstance(data.get("deep_reading"), dict):
            readings = [data["deep_reading"]]
        books = data.get("books") or []
        if not books and isinstance(data.get("book"), dict):
            books = [data["book"]]

        details = _valid_items(StepDetails, [data.get("step_details")], require_url=False)
        provenance = data.get("provenance")
        return cls(
            step_details=details[0] if details else None,
            videos=_valid_items(VideoResource, videos),
            readings=_valid_items(ReadingResource, readings),
            books=[b for b in _valid_items(BookResource, books, require_url=False) if b.title],
            alternatives=_valid_items(AlternativeResource, data.get("alternatives")),
            provenance=Provenance.model_validate(provenance) if isinstance(provenance, dict) else None,
        )
