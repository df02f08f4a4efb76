"""
Link validation - confirm candidate resource URLs are live.

- YouTube links are checked through the oEmbed endpoint
- Other links get a HEAD request (GET when the server refuses HEAD)
- Dead links fall back to a Wayback Machine snapshot lookup

Results are cached in-process. Retry with exponential backoff for 5xx/timeouts.
A checker-side network failure with no archive is UNKNOWN, not BROKEN.
Rate limit (429) and persistent 5xx answers are UNKNOWN and never cached.
"""

import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import BaseModel

from learnpath.config import get_settings
from learnpath.engines.validation.url_rules import is_http_url, is_placeholder_url, is_youtube_url, youtube_video_id
from learnpath.logging_config import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 2
RETRY_BACKOFF = (0.5, 1.0)  # seconds
MAX_RETRY_AFTER = 5  # seconds; longer Retry-After values are not waited for
MAX_CACHED_LINKS = 5000
YOUTUBE_OEMBED_URL = "https://www.youtube.com/oembed"
WAYBACK_AVAILABLE_URL = "https://archive.org/wayback/available"
USER_AGENT = "Mozilla/5.0 (compatible; LearnPathLinkChecker/1.0)"


class LinkStatus(str, Enum):
    """Outcome of a link check."""
    LIVE = "live"
    ARCHIVED = "archived"
    BROKEN = "broken"
    UNKNOWN = "unknown"


class LinkCheckResult(BaseModel):
    """Result of checking one URL."""

    url: str
    status: LinkStatus
    http_status: Optional[int] = None
    archived_url: Optional[str] = None
    checked_via: str = "head"
    message: str = ""

    @property
    def live(self) -> bool:
        return self.status == LinkStatus.LIVE

    @property
    def verified(self) -> Optional[bool]:
        """True for live, False for archived/broken, None when undetermined."""
        if self.status == LinkStatus.LIVE:
            return True
        if self.status == LinkStatus.UNKNOWN:
            return None
        return False


def _is_transient(status_code: int) -> bool:
    """Rate limited or server-side failure: says nothing about the resource itself."""
    return status_code == 429 or status_code >= 500


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """Perform request with exponential backoff for 5xx and timeouts. On 429, retry once after delay."""
    last_exc: Optional[Exception] = None
    for attempt in range(MAX_RETRIES):
        try:
            response = await client.request(method, url, **kwargs)
            if response.status_code == 429 and attempt < MAX_RETRIES - 1:
                retry_after = response.headers.get("Retry-After")
                wait = int(retry_after) if retry_after and retry_after.isdigit() else RETRY_BACKOFF[attempt]
                if wait <= MAX_RETRY_AFTER:
                    await asyncio.sleep(wait)
                    continue
                return response
            if response.status_code >= 500 and attempt < MAX_RETRIES - 1:
                await asyncio.sleep(RETRY_BACKOFF[attempt])
                continue
            return response
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            last_exc = e
            if attempt < MAX_RETRIES - 1:
                await asyncio.sleep(RETRY_BACKOFF[attempt])
    if last_exc:
        raise last_exc
    return await client.request(method, url, **kwargs)


class LinkValidator:
    """
    Verify resource URLs with HEAD / oEmbed checks and Wayback fallback.

    Pass a shared ``httpx.AsyncClient`` to reuse connections across a batch;
    otherwise a client is opened per check.
    """

    _cache: Dict[str, tuple[datetime, LinkCheckResult]] = {}

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        settings = get_settings()
        self._client = client
        self.timeout = settings.link_check_timeout_seconds
        self.concurrency = max(1, settings.link_check_concurrency)
        self.cache_ttl = timedelta(hours=settings.link_cache_ttl_hours)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()

    def _cached(self, url: str) -> Optional[LinkCheckResult]:
        entry = self._cache.get(url)
        if entry is None:
            return None
        cached_time, result = entry
        if datetime.now() - cached_time >= self.cache_ttl:
            self._cache.pop(url, None)
            return None
        return result

    async def check(self, url: str) -> LinkCheckResult:
        """Check a single URL, consulting the cache first."""
        cached = self._cached(url)
        if cached is not None:
            return cached

        if not is_http_url(url) or is_placeholder_url(url):
            return LinkCheckResult(
                url=url,
                status=LinkStatus.BROKEN,
                checked_via="format",
                message="Not a usable http(s) URL",
            )

        if self._client is not None:
            result = await self._check_with(self._client, url)
        else:
            async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
                result = await self._check_with(client, url)

        # Undetermined results are retried next time
        if result.status != LinkStatus.UNKNOWN:
            self._remember(url, result)
        return result

    def _remember(self, url: str, result: LinkCheckResult) -> None:
        """Cache a result, dropping expired entries and then the oldest ones over the cap."""
        now = datetime.now()
        cache = self._cache
        for key in [k for k, (cached_time, _) in cache.items() if now - cached_time >= self.cache_ttl]:
            cache.pop(key, None)
        cache.pop(url, None)
        while len(cache) >= MAX_CACHED_LINKS:
            cache.pop(next(iter(cache)))
        cache[url] = (now, result)

    async def check_many(self, urls: Iterable[str]) -> Dict[str, LinkCheckResult]:
        """Check URLs concurrently, bounded by the configured concurrency."""
        unique = list(dict.fromkeys(u for u in urls if u))
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(u: str) -> LinkCheckResult:
            async with semaphore:
                return await self.check(u)

        results: List[LinkCheckResult] = await asyncio.gather(*(_bounded(u) for u in unique))
        logger.info(
            "Checked links",
            extra={
                "checked": len(results),
                "live": sum(1 for r in results if r.live),
                "archived": sum(1 for r in results if r.status == LinkStatus.ARCHIVED),
            },
        )
        return {r.url: r for r in results}

    async def verify_youtube_video(self, video_id: str) -> bool:
        """True when YouTube's oEmbed endpoint knows the video; False when it could not be asked."""
        if self._client is not None:
            return await self._oembed_available(self._client, video_id) is True
        async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
            return await self._oembed_available(client, video_id) is True

    # ------------------------------------------------------------------

    async def _oembed_available(self, client: httpx.AsyncClient, video_id: str) -> Optional[bool]:
        """None when YouTube gave no usable answer (network error, 429, 5xx)."""
        params = {"url": f"https://www.youtube.com/watch?v={video_id}", "format": "json"}
        try:
            response = await request_with_retry(
                client, "GET", YOUTUBE_OEMBED_URL, params=params, timeout=self.timeout
            )
        except (httpx.TimeoutException, httpx.ConnectError) as e:
            logger.warning("YouTube oEmbed check failed for %s: %s", video_id, e)
            return None
        if _is_transient(response.status_code):
            logger.warning("YouTube oEmbed returned %s for %s", response.status_code, video_id)
            return None
        return response.status_code == 200

    async def _check_with(self, client: httpx.AsyncClient, url: str) -> LinkCheckResult:
        if is_youtube_url(url):
            return await self._check_youtube(client, url)

        try:
            response = await request_with_retry(
                client, "HEAD", url, timeout=self.timeout, follow_redirects=True
            )
            checked_via = "head"
            if response.status_code in (403, 405, 501):
                # Plenty of servers refuse HEAD but serve GET
                async with client.stream("GET", url, timeout=self.timeout, follow_redirects=True) as streamed:
                    response = streamed
                checked_via = "get"
        except httpx.HTTPError as e:
            logger.info("Link check failed for %s: %s", url, e)
            archived = await self._wayback_snapshot(client, url)
            if archived:
                return LinkCheckResult(
                    url=url,
                    status=LinkStatus.ARCHIVED,
                    archived_url=archived,
                    checked_via="wayback",
                    message=f"Unreachable ({type(e).__name__}); archived copy available",
                )
            return LinkCheckResult(
                url=url,
                status=LinkStatus.UNKNOWN,
                checked_via="head",
                message=f"Could not reach host ({type(e).__name__})",
            )

        if response.status_code < 400:
            return LinkCheckResult(
                url=url,
                status=LinkStatus.LIVE,
                http_status=response.status_code,
                checked_via=checked_via,
                message="Link is live",
            )
        if _is_transient(response.status_code):
            logger.info("Link check for %s got %s; leaving undetermined", url, response.status_code)
            return LinkCheckResult(
                url=url,
                status=LinkStatus.UNKNOWN,
                http_status=response.status_code,
                checked_via=checked_via,
                message=f"Returned {response.status_code}; try again later",
            )

        archived = await self._wayback_snapshot(client, url)
        if archived:
            return LinkCheckResult(
                url=url,
                status=LinkStatus.ARCHIVED,
                http_status=response.status_code,
                archived_url=archived,
                checked_via="wayback",
                message=f"Returned {response.status_code}; archived copy available",
            )
        return LinkCheckResult(
            url=url,
            status=LinkStatus.BROKEN,
            http_status=response.status_code,
            checked_via=checked_via,
            message=f"Returned {response.status_code}",
        )

    async def _check_youtube(self, client: httpx.AsyncClient, url: str) -> LinkCheckResult:
        video_id = youtube_video_id(url)
        if not video_id:
            return LinkCheckResult(
                url=url,
                status=LinkStatus.BROKEN,
                checked_via="oembed",
                message="No YouTube video id in URL",
            )
        ok = await self._oembed_available(client, video_id)
        if ok is None:
            return LinkCheckResult(
                url=url,
                status=LinkStatus.UNKNOWN,
                checked_via="oembed",
                message="Could not reach YouTube",
            )
        return LinkCheckResult(
            url=url,
            status=LinkStatus.LIVE if ok else LinkStatus.BROKEN,
            checked_via="oembed",
            message="Video available" if ok else "Video unavailable",
        )

    async def _wayback_snapshot(self, client: httpx.AsyncClient, url: str) -> Optional[str]:
        """Closest available Wayback Machine snapshot URL, if any."""
        try:
            response = await client.get(WAYBACK_AVAILABLE_URL, params={"url": url}, timeout=self.timeout)
            if response.status_code != 200:
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info("Wayback lookup failed for %s: %s", url, e)
            return None
        closest = (data.get("archived_snapshots") or {}).get("closest") or {}
        if closest.get("available") and closest.get("url"):
            snapshot = closest["url"]
            # Wayback hands back http:// links
            return snapshot.replace("http://web.archive.org", "https://web.archive.org", 1)
        return None
