"""
Request and response schemas for the resource endpoints.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

ResourceType = Literal["video", "reading", "podcast", "mooc", "book"]
ReplaceableType = Literal["video", "reading", "book", "podcast", "mooc", "article"]


class FetchStepResourcesRequest(BaseModel):
    """Fetch (or load from cache) the resources for one curriculum step."""

    step_title: str = Field(..., min_length=1, max_length=500)
    discipline: str = Field(..., min_length=1, max_length=255)
    syllabus_urls: List[str] = Field(default_factory=list)
    raw_sources_content: str = ""
    user_time_budget: Optional[int] = Field(
        None, ge=1, description="Minutes the learner wants to spend on the essential path"
    )
    force_refresh: bool = False


class TransformRequest(BaseModel):
    """A stored or legacy resource payload to reshape."""

    payload: dict[str, Any]
    user_time_budget: Optional[int] = Field(None, ge=1)
    step_title: str = Field("", max_length=500, description="Used for the knowledge check and decomposition hints")


class FindAdditionalResourceRequest(BaseModel):
    resource_type: ResourceType
    step_title: str = Field(..., min_length=1)
    discipline: str = Field(..., min_length=1)
    existing_urls: List[str] = Field(default_factory=list)


class AdditionalResourceResponse(BaseModel):
    """A newly found resource, or an explanation of why none was found."""

    resource: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None


class ReportResourceRequest(BaseModel):
    broken_url: str = Field(..., min_length=1)
    resource_type: ReplaceableType
    step_title: str = Field(..., min_length=1)
    discipline: str = Field(..., min_length=1)
    report_reason: str = "Broken link"
    user_id: Optional[str] = None


class ReplacementResponse(BaseModel):
    """Replacement for a reported resource."""

    replacement: Optional[dict[str, Any]] = None
    verified: bool = False
    rejected_reason: Optional[str] = None
    report_count: int = 1


class PodcastRecoveryRequest(BaseModel):
    title: str = Field(..., min_length=1)
    source: str = ""
    original_url: str = Field(..., min_length=1)


class PodcastRecoveryResponse(BaseModel):
    recovered_url: Optional[str] = None
    was_recovered: bool = False
    message: Optional[str] = None
    error: Optional[str] = None


class LinkCheckRequest(BaseModel):
    urls: List[str] = Field(..., min_length=1, max_length=50)


class ReportedLinkResponse(BaseModel):
    url: str
    resource_type: str
    report_count: int
    report_reason: Optional[str] = None
    step_title: Optional[str] = None

    class Config:
        from_attributes = True
