"""
Find one more resource of a given type for a step ("find more").

Reported URLs and URLs the learner already has are excluded. Candidates
are tried in order and the first one that passes verification wins.
"""

from typing import Any, Dict, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.ai import PerplexityClient, as_object_list, extract_json
from learnpath.ai import prompts
from learnpath.engines.extraction.content_extractor import ContentExtractor
from learnpath.engines.validation.link_validator import LinkStatus, LinkValidator
from learnpath.engines.validation.url_rules import extract_domain, is_placeholder_url, youtube_thumbnail, youtube_video_id
from learnpath.logging_config import get_logger
from learnpath.schemas.requests import AdditionalResourceResponse, FindAdditionalResourceRequest
from learnpath.schemas.resources import snake_keys
from learnpath.services.blacklist import BlacklistService, is_blacklisted

logger = get_logger(__name__)

ADDITIONAL_MAX_TOKENS = 1500
SEARCH_RECENCY = "month"
NOT_FOUND_ERROR = "No additional resource found"
NOT_FOUND_MESSAGE = (
    "Could not find any new resources that are not already in your list. "
    "Please try again later or search manually."
)


class AdditionalResourceFinder:
    def __init__(
        self,
        session: AsyncSession,
        *,
        perplexity: Optional[PerplexityClient] = None,
        validator: Optional[LinkValidator] = None,
        extractor: Optional[ContentExtractor] = None,
    ):
        self.blacklist = BlacklistService(session)
        self.perplexity = perplexity or PerplexityClient()
        self.validator = validator or LinkValidator()
        self.extractor = extractor or ContentExtractor()

    async def find(self, request: FindAdditionalResourceRequest) -> AdditionalResourceResponse:
        """
        Raises:
            LLMNotConfiguredError: search backend has no API key
            LLMClientError: search backend failed after retries
        """
        reported = await self.blacklist.urls_for_discipline(request.discipline)
        blacklist = sorted(reported) + [u for u in request.existing_urls if u]

        text = await self.perplexity.complete(
            prompts.additional_resource_prompt(
                request.resource_type, request.step_title, request.discipline, blacklist
            ),
            model=self.perplexity.search_model,
            max_tokens=ADDITIONAL_MAX_TOKENS,
            search_recency_filter=SEARCH_RECENCY,
        )
        try:
            candidates = as_object_list(extract_json(text))
        except ValueError:
            logger.warning("Find-more response had no JSON", extra={"resource_type": request.resource_type})
            candidates = []

        for candidate in candidates:
            resource = await self._accept(request.resource_type, snake_keys(candidate), blacklist)
            if resource is not None:
                logger.info(
                    "Found additional resource",
                    extra={"resource_type": request.resource_type, "url": resource["url"]},
                )
                return AdditionalResourceResponse(resource=resource)

        logger.info(
            "No additional resource found",
            extra={"resource_type": request.resource_type, "candidates": len(candidates)},
        )
        return AdditionalResourceResponse(error=NOT_FOUND_ERROR, message=NOT_FOUND_MESSAGE)

    async def _accept(
        self,
        resource_type: str,
        candidate: Dict[str, Any],
        blacklist: Iterable[str],
    ) -> Optional[Dict[str, Any]]:
        """Verified resource dict for a candidate, or None to try the next one."""
        url = str(candidate.get("url") or "").strip()
        if not url or is_placeholder_url(url) or is_blacklisted(url, blacklist):
            return None
        resource = {k: v for k, v in candidate.items() if v is not None}
        resource["url"] = url
        resource.setdefault("type", resource_type)

        if resource_type == "video":
            video_id = youtube_video_id(url)
            if not video_id or not await self.validator.verify_youtube_video(video_id):
                logger.debug("Video candidate failed oEmbed check: %s", url)
                return None
            resource["thumbnail_url"] = youtube_thumbnail(url)
            resource["verified"] = True
            return resource

        check = await self.validator.check(url)
        if check.status == LinkStatus.BROKEN:
            return None
        if check.status == LinkStatus.ARCHIVED and resource_type == "reading":
            return None
        resource["verified"] = check.verified
        if check.archived_url:
            resource["archived_url"] = check.archived_url
        resource.setdefault("domain", extract_domain(url))

        if resource_type == "reading":
            extraction = await self.extractor.extract(url)
            if extraction.ok:
                resource["embedded_content"] = extraction.content
                resource["content_extraction_status"] = extraction.status
        return resource

