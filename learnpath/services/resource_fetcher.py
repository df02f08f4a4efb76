"""
Resource Fetcher - assemble, verify and cache the resources for one step.

Tiers, in order of trust:
  1. Extraction   -- URLs cited by the syllabus or its source material
  2. OER search   -- Perplexity (web-grounded) plus Open Library books
  3. AI synthesis -- gateway model, only when no live video or reading is left

Each tier is optional: a backend failure is logged and contributes nothing.
Every candidate is blacklist-filtered, de-duplicated and link-checked before
it is kept, and the resulting bundle is cached per (step title, discipline).
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Set

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.ai import GatewayClient, LLMClientError, PerplexityClient, extract_json
from learnpath.ai import prompts
from learnpath.engines.curation.curator import curate
from learnpath.engines.curation.granularity import clean_step_title
from learnpath.engines.curation.scoring import normalize_title
from learnpath.engines.curation.transformer import transform_to_curated_format
from learnpath.engines.extraction.content_extractor import ContentExtractor
from learnpath.engines.validation.link_validator import LinkCheckResult, LinkStatus, LinkValidator
from learnpath.engines.validation.url_rules import (
    classify_url_kind,
    extract_domain,
    extract_urls,
    is_placeholder_url,
    is_youtube_url,
    normalize_url,
    title_from_url,
    youtube_thumbnail,
    youtube_video_id,
)
from learnpath.logging_config import get_logger
from learnpath.schemas.curated import CuratedStepResources
from learnpath.schemas.requests import FetchStepResourcesRequest
from learnpath.schemas.resources import (
    AlternativeResource,
    BookResource,
    Provenance,
    ProvenanceTier,
    ReadingResource,
    ResourceOrigin,
    StepDetails,
    StepResources,
    VideoResource,
)
from learnpath.services.blacklist import BlacklistService
from learnpath.services.open_library import search_open_library
from learnpath.services.resource_cache import ResourceCacheService

logger = get_logger(__name__)

MAX_SYLLABUS_URLS = 10
MAX_SOURCE_URLS = 20
MAX_EXTRACTED_READINGS = 3
MAX_OPEN_LIBRARY_BOOKS = 2
STEP_DETAILS_MAX_TOKENS = 500
STEP_RESOURCES_MAX_TOKENS = 2000
SYNTHESIS_MAX_TOKENS = 3000


def dedupe_key(url: str) -> str:
    """YouTube videos dedupe on video id, everything else on the normalised URL."""
    if is_youtube_url(url):
        video_id = youtube_video_id(url)
        if video_id:
            return f"youtube:{video_id}"
    return normalize_url(url)


def syllabus_candidates(urls: Iterable[str]) -> StepResources:
    """Tier 1: turn cited URLs into typed candidates."""
    bundle = StepResources()
    origin = ResourceOrigin.SYLLABUS_CITED
    for url in urls:
        kind = classify_url_kind(url)
        title = title_from_url(url)
        if kind == "video":
            bundle.videos.append(VideoResource(url=url, title=title, origin=origin))
        elif kind == "book":
            bundle.books.append(BookResource(url=url, title=title, source=extract_domain(url), origin=origin))
        elif kind in ("mooc", "podcast"):
            bundle.alternatives.append(
                AlternativeResource(type=kind, url=url, title=title, source=extract_domain(url), origin=origin)
            )
        else:
            bundle.readings.append(ReadingResource(url=url, title=title, domain=extract_domain(url), origin=origin))
    return bundle


class _CandidatePool:
    """Accumulates candidates across tiers; first occurrence of a URL wins."""

    def __init__(self, blacklist: Iterable[str]):
        self.blacklisted = {normalize_url(u) for u in blacklist if u}
        self.seen: Set[str] = set()
        self.skipped_blacklisted = 0

    def _accept(self, url: str, title: str = "") -> bool:
        if not url:
            # Books may come without a link; dedupe those on title
            key = f"title:{normalize_title(title)}"
            if not title or key in self.seen:
                return False
            self.seen.add(key)
            return True
        if is_placeholder_url(url):
            return False
        if normalize_url(url) in self.blacklisted:
            self.skipped_blacklisted += 1
            return False
        key = dedupe_key(url)
        if key in self.seen:
            return False
        self.seen.add(key)
        return True

    def filter(self, bundle: StepResources) -> StepResources:
        return StepResources(
            step_details=bundle.step_details,
            videos=[v for v in bundle.videos if v.url and self._accept(v.url)],
            readings=[r for r in bundle.readings if r.url and self._accept(r.url)],
            books=[b for b in bundle.books if self._accept(b.url, b.title)],
            alternatives=[a for a in bundle.alternatives if a.url and self._accept(a.url)],
        )


def _apply_check(resource: Any, result: Optional[LinkCheckResult], *, allow_archived: bool = True) -> bool:
    """Set verification fields from a link check; False when the resource must be dropped."""
    if result is None:
        return True
    if result.status == LinkStatus.BROKEN:
        return False
    if result.status == LinkStatus.ARCHIVED:
        if not allow_archived:
            return False
        resource.verified = False
        resource.archived_url = result.archived_url
        return True
    resource.verified = True if result.status == LinkStatus.LIVE else None
    return True


def _extend(target: StepResources, other: StepResources) -> None:
    target.videos.extend(other.videos)
    target.readings.extend(other.readings)
    target.books.extend(other.books)
    target.alternatives.extend(other.alternatives)
    if target.step_details is None:
        target.step_details = other.step_details


class ResourceFetcher:
    """
    Fetch curated resources for a curriculum step.

    Backends are injectable for testing; by default they are built from
    settings and share one httpx client per fetch.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        perplexity: Optional[PerplexityClient] = None,
        gateway: Optional[GatewayClient] = None,
        validator: Optional[LinkValidator] = None,
        extractor: Optional[ContentExtractor] = None,
    ):
        self.session = session
        self.cache = ResourceCacheService(session)
        self.blacklist = BlacklistService(session)
        self.http_client = http_client
        self.perplexity = perplexity or PerplexityClient(client=http_client)
        self.gateway = gateway or GatewayClient()
        self.validator = validator or LinkValidator(client=http_client)
        self.extractor = extractor or ContentExtractor(client=http_client)

    async def fetch(self, request: FetchStepResourcesRequest) -> CuratedStepResources:
        step_title, discipline = request.step_title, request.discipline
        log_extra = {"step_title": step_title, "discipline": discipline}

        if not request.force_refresh:
            cached = await self.cache.get(step_title, discipline)
            if cached:
                logger.info("Serving step resources from cache", extra=log_extra)
                return self._from_cache(cached, request)

        blacklist = await self.blacklist.urls_for_discipline(discipline)
        pool = _CandidatePool(blacklist)
        bundle = StepResources()
        tiers_used: List[ProvenanceTier] = []
        backends: List[str] = []
        syllabus_urls = [u for u in request.syllabus_urls if u][:MAX_SYLLABUS_URLS]

        # Tier 1
        cited = list(dict.fromkeys(syllabus_urls + extract_urls(request.raw_sources_content)[:MAX_SOURCE_URLS]))
        tier1 = await self._verify(pool.filter(syllabus_candidates(cited)))
        if not tier1.is_empty:
            _extend(bundle, tier1)
            tiers_used.append(ProvenanceTier.EXTRACTION)
            backends.append("syllabus")

        # Tier 2
        tier2, tier2_backends = await self._search(step_title, discipline, syllabus_urls, blacklist)
        bundle.step_details = bundle.step_details or tier2.step_details
        tier2 = await self._verify(pool.filter(tier2))
        if not tier2.is_empty:
            _extend(bundle, tier2)
            tiers_used.append(ProvenanceTier.OER_SEARCH)
            backends.extend(tier2_backends)

        # Tier 3
        missing = self._missing_categories(bundle)
        if missing and self.gateway.configured:
            tier3 = await self._synthesize(step_title, discipline, missing, blacklist)
            tier3 = await self._verify(pool.filter(tier3))
            if not tier3.is_empty:
                _extend(bundle, tier3)
                tiers_used.append(ProvenanceTier.AI_SYNTHESIS)
                backends.append("ai_gateway")

        await self._embed_content(bundle)

        bundle.provenance = Provenance(
            tier=tiers_used[-1] if tiers_used else ProvenanceTier.OER_SEARCH,
            tiers_used=tiers_used,
            backends=backends,
        )
        logger.info(
            "Fetched step resources",
            extra={
                **log_extra,
                "videos": len(bundle.videos),
                "readings": len(bundle.readings),
                "books": len(bundle.books),
                "alternatives": len(bundle.alternatives),
                "tiers": [t.value for t in tiers_used],
                "blacklisted_skipped": pool.skipped_blacklisted,
            },
        )

        if not bundle.is_empty:
            await self._store(request, bundle, syllabus_urls)

        return curate(bundle, request.user_time_budget, step_title=step_title)

    # ------------------------------------------------------------------

    def _from_cache(self, payload: Dict[str, Any], request: FetchStepResourcesRequest) -> CuratedStepResources:
        curated = transform_to_curated_format(payload, request.user_time_budget, step_title=request.step_title)
        if curated.provenance is not None:
            curated.provenance = curated.provenance.model_copy(update={"tier": ProvenanceTier.CACHE, "cached": True})
        else:
            curated.provenance = Provenance(tier=ProvenanceTier.CACHE, cached=True)
        return curated

    async def _store(self, request: FetchStepResourcesRequest, bundle: StepResources, syllabus_urls: List[str]) -> None:
        try:
            await self.cache.put(
                request.step_title,
                request.discipline,
                bundle.model_dump(mode="json", exclude_none=True),
                syllabus_urls,
            )
        except SQLAlchemyError as e:
            logger.warning(
                "Failed to cache step resources",
                extra={"step_title": request.step_title, "error": str(e)},
            )
            await self.session.rollback()

    async def _search(
        self,
        step_title: str,
        discipline: str,
        syllabus_urls: List[str],
        blacklist: Iterable[str],
    ) -> tuple[StepResources, List[str]]:
        """Tier 2: Perplexity step details + resources and Open Library, concurrently."""
        blacklist = sorted(blacklist)
        books_query = f"{clean_step_title(step_title)} {discipline}".strip()
        tasks = [search_open_library(books_query, limit=MAX_OPEN_LIBRARY_BOOKS, client=self.http_client)]
        if self.perplexity.configured:
            tasks.append(self._step_details(step_title, discipline, syllabus_urls))
            tasks.append(self._step_resources(step_title, discipline, syllabus_urls, blacklist))
        else:
            logger.info("Perplexity not configured; skipping web search tier")

        results = await asyncio.gather(*tasks)
        books: List[BookResource] = results[0]
        found = StepResources(books=list(books))
        backends = ["openlibrary"] if books else []
        if len(results) == 3:
            details, resources = results[1], results[2]
            found.step_details = details
            if resources is not None and not resources.is_empty:
                # Search results come first so they outrank catalogue books
                found.books = resources.books + found.books
                found.videos = resources.videos
                found.readings = resources.readings
                found.alternatives = resources.alternatives
                backends.insert(0, "perplexity")

        cited = {normalize_url(u) for u in syllabus_urls}
        for group in (found.videos, found.readings, found.books, found.alternatives):
            for item in group:
                if item.url and normalize_url(item.url) in cited:
                    item.origin = ResourceOrigin.SYLLABUS_CITED
        return found, backends

    async def _step_details(self, step_title: str, discipline: str, syllabus_urls: List[str]) -> Optional[StepDetails]:
        try:
            text = await self.perplexity.complete(
                prompts.step_details_prompt(step_title, discipline, syllabus_urls),
                model=self.perplexity.fast_model,
                max_tokens=STEP_DETAILS_MAX_TOKENS,
            )
            data = extract_json(text)
        except (LLMClientError, ValueError) as e:
            logger.warning("Step details unavailable: %s", e)
            return None
        return StepResources.from_payload({"step_details": data}).step_details if isinstance(data, dict) else None

    async def _step_resources(
        self,
        step_title: str,
        discipline: str,
        syllabus_urls: List[str],
        blacklist: List[str],
    ) -> Optional[StepResources]:
        try:
            text = await self.perplexity.complete(
                prompts.step_resources_prompt(step_title, discipline, syllabus_urls, blacklist),
                model=self.perplexity.search_model,
                max_tokens=STEP_RESOURCES_MAX_TOKENS,
            )
            data = extract_json(text)
        except (LLMClientError, ValueError) as e:
            logger.warning("Web search tier failed: %s", e)
            return None
        if not isinstance(data, dict):
            logger.warning("Web search tier returned %s instead of an object", type(data).__name__)
            return None
        return StepResources.from_payload(data)

    @staticmethod
    def _missing_categories(bundle: StepResources) -> List[str]:
        missing = []
        if not any(v.verified for v in bundle.videos):
            missing.append("videos")
        if not any(r.verified for r in bundle.readings):
            missing.append("readings")
        return missing

    async def _synthesize(
        self,
        step_title: str,
        discipline: str,
        missing: List[str],
        blacklist: Iterable[str],
    ) -> StepResources:
        """Tier 3: ask the gateway model for the missing categories only."""
        try:
            text = await self.gateway.complete(
                prompts.synthesis_prompt(step_title, discipline, missing, sorted(blacklist)),
                system=prompts.SYNTHESIS_SYSTEM_PROMPT,
                max_tokens=SYNTHESIS_MAX_TOKENS,
            )
            data = extract_json(text)
        except (LLMClientError, ValueError) as e:
            logger.warning("AI synthesis tier failed: %s", e)
            return StepResources()
        if not isinstance(data, dict):
            return StepResources()
        synthesized = StepResources.from_payload(data)
        return StepResources(
            videos=synthesized.videos if "videos" in missing else [],
            readings=synthesized.readings if "readings" in missing else [],
        )

    async def _verify(self, bundle: StepResources) -> StepResources:
        """Link-check every candidate; drop broken ones and mark the rest."""
        urls = [u for u in bundle.all_urls() if u]
        if not urls:
            return bundle
        results = await self.validator.check_many(urls)

        videos = [v for v in bundle.videos if _apply_check(v, results.get(v.url), allow_archived=False)]
        for video in videos:
            if not video.thumbnail_url:
                video.thumbnail_url = youtube_thumbnail(video.url) or None
        return StepResources(
            step_details=bundle.step_details,
            videos=videos,
            readings=[r for r in bundle.readings if _apply_check(r, results.get(r.url))],
            books=[b for b in bundle.books if not b.url or _apply_check(b, results.get(b.url))],
            alternatives=[a for a in bundle.alternatives if _apply_check(a, results.get(a.url))],
        )

    async def _embed_content(self, bundle: StepResources) -> None:
        """Attach extracted article text to the top readings."""
        targets = [r for r in bundle.readings if r.verified is not False and not r.embedded_content]
        targets = targets[:MAX_EXTRACTED_READINGS]
        if not targets:
            return
        results = await asyncio.gather(*(self.extractor.extract(r.url) for r in targets))
        for reading, result in zip(targets, results):
            if result.status == "skipped":
                continue
            reading.embedded_content = result.content
            reading.content_extraction_status = result.status
