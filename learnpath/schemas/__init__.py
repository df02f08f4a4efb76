"""
Pydantic schemas for API request/response validation.
"""

from learnpath.schemas.common import HealthResponse
from learnpath.schemas.resources import (
    ResourceOrigin,
    ProvenanceTier,
    StepDetails,
    KeyMoment,
    VideoResource,
    ReadingResource,
    SpecificReading,
    BookResource,
    AlternativeResource,
    Provenance,
    StepResources,
)
from learnpath.schemas.curated import (
    ScoreBreakdown,
    CuratedResource,
    ExcludedResource,
    AvailabilityReport,
    KnowledgeCheck,
    CuratedStepResources,
)
from learnpath.schemas.requests import (
    FetchStepResourcesRequest,
    TransformRequest,
    FindAdditionalResourceRequest,
    AdditionalResourceResponse,
    ReportResourceRequest,
    ReplacementResponse,
    PodcastRecoveryRequest,
    PodcastRecoveryResponse,
    LinkCheckRequest,
    ReportedLinkResponse,
)
from learnpath.schemas.learning_path import (
    FeasibilityRequest,
    FeasibilityResponse,
    PruneRequest,
    PruneResponse,
)

__all__ = [
    # Common
    "HealthResponse",
    # Raw bundle
    "ResourceOrigin",
    "ProvenanceTier",
    "StepDetails",
    "KeyMoment",
    "VideoResource",
    "ReadingResource",
    "SpecificReading",
    "BookResource",
    "AlternativeResource",
    "Provenance",
    "StepResources",
    # Curated
    "ScoreBreakdown",
    "CuratedResource",
    "ExcludedResource",
    "AvailabilityReport",
    "KnowledgeCheck",
    "CuratedStepResources",
    # Requests
    "FetchStepResourcesRequest",
    "TransformRequest",
    "FindAdditionalResourceRequest",
    "AdditionalResourceResponse",
    "ReportResourceRequest",
    "ReplacementResponse",
    "PodcastRecoveryRequest",
    "PodcastRecoveryResponse",
    "LinkCheckRequest",
    "ReportedLinkResponse",
    # Learning path
    "FeasibilityRequest",
    "FeasibilityResponse",
    "PruneRequest",
    "PruneResponse",
]
