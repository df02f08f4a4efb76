"""
Link-rot recovery.

- Report & replace: blacklist a reported URL, drop it from the cached
  bundle and look for a replacement of the same type.
- Podcast recovery: find a working link for a podcast episode whose stored
  link went dead.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.ai import LLMClientError, PerplexityClient, as_object_list, extract_json
from learnpath.ai import prompts
from learnpath.engines.validation.link_validator import LinkStatus, LinkValidator
from learnpath.engines.validation.url_rules import is_placeholder_url, is_youtube_url, normalize_url, youtube_thumbnail
from learnpath.logging_config import get_logger
from learnpath.schemas.requests import (
    PodcastRecoveryRequest,
    PodcastRecoveryResponse,
    ReplacementResponse,
    ReportResourceRequest,
)
from learnpath.schemas.resources import snake_keys
from learnpath.services.blacklist import BlacklistService, is_blacklisted
from learnpath.services.resource_cache import ResourceCacheService

logger = get_logger(__name__)

REPLACEMENT_MAX_TOKENS = 1500
PODCAST_RECOVERY_MAX_TOKENS = 500


def _first_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        objects = as_object_list(extract_json(text))
    except ValueError:
        return None
    return snake_keys(objects[0]) if objects else None


class LinkRecoveryService:
    def __init__(
        self,
        session: AsyncSession,
        *,
        perplexity: Optional[PerplexityClient] = None,
        validator: Optional[LinkValidator] = None,
    ):
        self.session = session
        self.blacklist = BlacklistService(session)
        self.cache = ResourceCacheService(session)
        self.perplexity = perplexity or PerplexityClient()
        self.validator = validator or LinkValidator()

    async def report_and_replace(self, request: ReportResourceRequest) -> ReplacementResponse:
        """
        Record the report, then ask for a replacement.

        The report is committed before the search runs, so it stands even
        when the search backend fails (LLMClientError propagates).
        """
        row = await self.blacklist.report(
            request.broken_url,
            request.resource_type,
            step_title=request.step_title,
            discipline=request.discipline,
            reason=request.report_reason,
            reported_by=request.user_id,
        )
        report_count = row.report_count
        await self.cache.remove_url(request.step_title, request.discipline, request.broken_url)
        await self.session.commit()

        blacklist = sorted(await self.blacklist.urls_for_discipline(request.discipline))
        logger.info(
            "Searching replacement",
            extra={"url": request.broken_url, "discipline": request.discipline, "blacklisted": len(blacklist)},
        )
        text = await self.perplexity.complete(
            prompts.replacement_prompt(request.resource_type, request.step_title, request.discipline, blacklist),
            model=self.perplexity.fast_model,
            max_tokens=REPLACEMENT_MAX_TOKENS,
        )
        replacement = _first_object(text)
        if not replacement or not replacement.get("url"):
            return ReplacementResponse(
                replacement=replacement,
                verified=False,
                rejected_reason="No replacement found",
                report_count=report_count,
            )

        url = str(replacement["url"]).strip()
        if is_blacklisted(url, blacklist + [request.broken_url]):
            logger.warning("Replacement is a reported link", extra={"url": url})
            replacement["verified"] = False
            return ReplacementResponse(
                replacement=replacement,
                verified=False,
                rejected_reason="Replacement is a reported link",
                report_count=report_count,
            )
        if is_placeholder_url(url):
            replacement["verified"] = False
            return ReplacementResponse(
                replacement=replacement,
                verified=False,
                rejected_reason="Replacement URL is a placeholder",
                report_count=report_count,
            )

        check = await self.validator.check(url)
        verified = check.status == LinkStatus.LIVE
        replacement["verified"] = verified
        if check.archived_url:
            replacement["archived_url"] = check.archived_url
        if is_youtube_url(url) and not replacement.get("thumbnail_url"):
            replacement["thumbnail_url"] = youtube_thumbnail(url) or None
        logger.info("Replacement validated", extra={"url": url, "verified": verified})
        return ReplacementResponse(
            replacement=replacement,
            verified=verified,
            rejected_reason=None if verified else check.message or "Replacement link could not be verified",
            report_count=report_count,
        )

    async def recover_podcast_link(self, request: PodcastRecoveryRequest) -> PodcastRecoveryResponse:
        """Never raises for backend failures; the error text is returned instead."""
        original = await self.validator.check(request.original_url)
        if original.status == LinkStatus.LIVE:
            return PodcastRecoveryResponse(
                recovered_url=request.original_url,
                was_recovered=False,
                message="Original link is working",
            )

        try:
            text = await self.perplexity.complete(
                prompts.podcast_recovery_prompt(request.title, request.source, request.original_url),
                system=prompts.PODCAST_RECOVERY_SYSTEM_PROMPT,
                model=self.perplexity.fast_model,
                max_tokens=PODCAST_RECOVERY_MAX_TOKENS,
                search_recency_filter="month",
                return_citations=True,
            )
        except LLMClientError as e:
            logger.warning("Podcast recovery failed: %s", e)
            return PodcastRecoveryResponse(recovered_url=None, error=str(e))

        found = _first_object(text)
        url = str((found or {}).get("url") or "").strip()
        if not url or is_placeholder_url(url) or normalize_url(url) == normalize_url(request.original_url):
            return PodcastRecoveryResponse(recovered_url=None, message="Could not find alternative podcast URL")

        check = await self.validator.check(url)
        if check.status != LinkStatus.LIVE:
            logger.info("Recovered podcast URL failed validation", extra={"url": url})
            return PodcastRecoveryResponse(recovered_url=None, message="Found URL but it failed validation")

        logger.info("Recovered podcast link", extra={"title": request.title, "url": url})
        return PodcastRecoveryResponse(recovered_url=url, was_recovered=True)
