"""
Pydantic schemas for curated step resources.

The curated shape separates the essential path (core videos and readings)
from optional material, and records what was left out and why.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from learnpath.schemas.resources import Provenance, ResourceOrigin, StepDetails

ExclusionReason = Literal["duplicate", "unverified", "low_relevance", "over_limit", "similar_to_core"]
Granularity = Literal["atomic_lesson", "module", "full_course", "syllabus", "unknown"]


class ScoreBreakdown(BaseModel):
    """Heuristic ranking components."""

    syllabus_match: int = 0
    authority_match: int = 0
    atomic_scope: int = 20
    total: int = 20


class CuratedResource(BaseModel):
    """A resource placed somewhere in the curated structure."""

    url: str
    title: str = ""
    author: Optional[str] = None
    duration: Optional[str] = None
    thumbnail_url: Optional[str] = None
    domain: Optional[str] = None
    snippet: Optional[str] = None
    embedded_content: Optional[str] = None
    type: Optional[str] = None
    priority: Literal["mandatory", "optional_expansion"] = "optional_expansion"
    origin: ResourceOrigin = ResourceOrigin.AI_SELECTED
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    rationale: str = "Selected for relevance"
    consumption_time: str = "10 mins"
    coverage_percent: Optional[int] = None
    verified: Optional[bool] = None
    verification_status: Optional[Literal["verified", "unverified", "failed"]] = None
    archived_url: Optional[str] = None
    why_secondary: Optional[str] = None
    granularity: Optional[Granularity] = None
    granularity_confidence: Optional[Literal["high", "medium", "low"]] = None
    requires_decomposition: Optional[bool] = None


class ExcludedResource(BaseModel):
    """A candidate kept off the essential path."""

    resource: CuratedResource
    reason: ExclusionReason
    original_score: int


class AvailabilityReport(BaseModel):
    videos_found: int = 0
    videos_shown_as_core: int = 0
    readings_found: int = 0
    readings_shown_as_core: int = 0
    was_limited_by_availability: bool = False
    message: Optional[str] = None


class KnowledgeCheck(BaseModel):
    question: str
    supplemental_resource_id: Optional[str] = None


class CuratedStepResources(BaseModel):
    """Unified curated view of a step's resources."""

    core_videos: List[CuratedResource] = Field(default_factory=list)
    core_readings: List[CuratedResource] = Field(default_factory=list)
    # Single-core view kept for older consumers
    core_video: Optional[CuratedResource] = None
    core_reading: Optional[CuratedResource] = None

    learning_objective: str
    total_core_time: str
    total_expanded_time: str

    deep_dive: List[CuratedResource] = Field(default_factory=list)
    expansion_pack: List[CuratedResource] = Field(default_factory=list)
    moocs: List[dict[str, Any]] = Field(default_factory=list)

    knowledge_check: Optional[KnowledgeCheck] = None
    excluded_core: List[ExcludedResource] = Field(default_factory=list)
    availability_report: AvailabilityReport = Field(default_factory=AvailabilityReport)

    # Raw lists kept for older consumers
    videos: List[dict[str, Any]] = Field(default_factory=list)
    readings: List[dict[str, Any]] = Field(default_factory=list)
    books: List[dict[str, Any]] = Field(default_factory=list)
    alternatives: List[dict[str, Any]] = Field(default_factory=list)

    step_details: Optional[StepDetails] = None
    provenance: Optional[Provenance] = None
