"""
Step resource API.

Endpoints:
  POST   /resources/step              fetch (or load cached) curated resources
  POST   /resources/transform         reshape a stored/legacy payload
  POST   /resources/additional        find one more resource of a type
  POST   /resources/report            report a broken link and get a replacement
  POST   /resources/recover-podcast   find a working link for a podcast episode
  POST   /resources/check-links       link-check a batch of URLs
  GET    /resources/reported          reported URLs for a discipline
  DELETE /resources/cache             drop the cached bundle for a step
"""

from typing import List

from fastapi import APIRouter, HTTPException, Query, Response, status

from learnpath.ai.errors import LLMClientError, LLMNotConfiguredError
from learnpath.api.deps import AdditionalFinder, Blacklist, Fetcher, Recovery, ResourceCache, Validator
from learnpath.engines.curation.transformer import transform_to_curated_format
from learnpath.engines.validation.link_validator import LinkCheckResult
from learnpath.logging_config import get_logger
from learnpath.schemas.curated import CuratedStepResources
from learnpath.schemas.requests import (
    AdditionalResourceResponse,
    FetchStepResourcesRequest,
    FindAdditionalResourceRequest,
    LinkCheckRequest,
    PodcastRecoveryRequest,
    PodcastRecoveryResponse,
    ReplacementResponse,
    ReportedLinkResponse,
    ReportResourceRequest,
    TransformRequest,
)

logger = get_logger(__name__)
router = APIRouter()


def _backend_error(e: LLMClientError) -> HTTPException:
    if isinstance(e, LLMNotConfiguredError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/step", response_model=CuratedStepResources)
async def fetch_step_resources(body: FetchStepResourcesRequest, fetcher: Fetcher):
    """Curated resources for one curriculum step. An empty result is still a 200."""
    return await fetcher.fetch(body)


@router.post("/transform", response_model=CuratedStepResources)
async def transform_resources(body: TransformRequest):
    return transform_to_curated_format(body.payload, body.user_time_budget, step_title=body.step_title)


@router.post("/additional", response_model=AdditionalResourceResponse)
async def find_additional_resource(body: FindAdditionalResourceRequest, finder: AdditionalFinder):
    try:
        return await finder.find(body)
    except LLMClientError as e:
        logger.warning("Find-more failed", extra={"resource_type": body.resource_type, "error": str(e)})
        raise _backend_error(e)


@router.post("/report", response_model=ReplacementResponse)
async def report_resource(body: ReportResourceRequest, recovery: Recovery):
    """Record a broken link and look for a replacement of the same type."""
    try:
        return await recovery.report_and_replace(body)
    except LLMClientError as e:
        logger.warning("Replacement search failed", extra={"url": body.broken_url, "error": str(e)})
        raise _backend_error(e)


@router.post("/recover-podcast", response_model=PodcastRecoveryResponse)
async def recover_podcast(body: PodcastRecoveryRequest, recovery: Recovery):
    return await recovery.recover_podcast_link(body)


@router.post("/check-links", response_model=List[LinkCheckResult])
async def check_links(body: LinkCheckRequest, validator: Validator):
    urls = list(dict.fromkeys(u.strip() for u in body.urls if u.strip()))
    results = await validator.check_many(urls)
    return [results[u] for u in urls]


@router.get("/reported", response_model=List[ReportedLinkResponse])
async def list_reported(blacklist: Blacklist, discipline: str = Query(..., min_length=1)):
    return await blacklist.list_for_discipline(discipline)


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_cache(
    cache: ResourceCache,
    step_title: str = Query(..., min_length=1),
    discipline: str = Query(..., min_length=1),
):
    removed = await cache.invalidate(step_title, discipline)
    logger.info("Cache invalidated", extra={"step_title": step_title, "discipline": discipline, "removed": removed})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
