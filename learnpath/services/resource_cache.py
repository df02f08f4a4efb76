"""
Step resource cache (DB-backed).

One bundle per (step title, discipline). Entries older than
``resource_cache_ttl_days`` count as missing when the TTL is positive.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.config import get_settings
from learnpath.engines.validation.url_rules import normalize_url
from learnpath.logging_config import get_logger
from learnpath.models.step_resource import StepResourceCache

logger = get_logger(__name__)

# Bundle keys that hold resource lists (raw and curated shapes)
_RESOURCE_LIST_KEYS = (
    "videos", "readings", "books", "alternatives", "moocs",
    "core_videos", "core_readings", "deep_dive", "expansion_pack",
)
_RESOURCE_SINGLE_KEYS = ("primary_video", "deep_reading", "book", "core_video", "core_reading")


def strip_url(bundle: Dict[str, Any], url: str) -> Dict[str, Any]:
    """Copy of a bundle with every resource pointing at ``url`` removed."""
    key = normalize_url(url)

    def _matches(item: Any) -> bool:
        return isinstance(item, dict) and bool(item.get("url")) and normalize_url(item["url"]) == key

    stripped = dict(bundle)
    for name in _RESOURCE_LIST_KEYS:
        items = stripped.get(name)
        if isinstance(items, list):
            stripped[name] = [i for i in items if not _matches(i)]
    for name in _RESOURCE_SINGLE_KEYS:
        if _matches(stripped.get(name)):
            stripped[name] = None
    return stripped


class ResourceCacheService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.ttl_days = get_settings().resource_cache_ttl_days

    async def _row(self, step_title: str, discipline: str) -> Optional[StepResourceCache]:
        q = select(StepResourceCache).where(
            StepResourceCache.step_title == step_title,
            StepResourceCache.discipline == discipline,
        )
        result = await self.session.execute(q)
        return result.scalar_one_or_none()

    def _expired(self, row: StepResourceCache) -> bool:
        if self.ttl_days <= 0 or row.updated_at is None:
            return False
        updated = row.updated_at
        if updated.tzinfo is None:
            # SQLite hands back naive UTC timestamps
            updated = updated.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) - updated > timedelta(days=self.ttl_days)

    async def get(self, step_title: str, discipline: str) -> Optional[Dict[str, Any]]:
        row = await self._row(step_title, discipline)
        if row is None:
            return None
        if self._expired(row):
            logger.info("Cache entry expired", extra={"step_title": step_title, "discipline": discipline})
            return None
        return row.resources

    async def put(
        self,
        step_title: str,
        discipline: str,
        bundle: Dict[str, Any],
        syllabus_urls: Optional[List[str]] = None,
    ) -> StepResourceCache:
        row = await self._row(step_title, discipline)
        if row:
            row.resources = bundle
            row.syllabus_urls = list(syllabus_urls or [])
            row.updated_at = datetime.now(timezone.utc)
        else:
            row = StepResourceCache(
                step_title=step_title,
                discipline=discipline,
                resources=bundle,
                syllabus_urls=list(syllabus_urls or []),
            )
            self.session.add(row)
        await self.session.flush()
        logger.info("Cached step resources", extra={"step_title": step_title, "discipline": discipline})
        return row

    async def invalidate(self, step_title: str, discipline: str) -> bool:
        result = await self.session.execute(
            delete(StepResourceCache).where(
                StepResourceCache.step_title == step_title,
                StepResourceCache.discipline == discipline,
            )
        )
        await self.session.flush()
        return bool(result.rowcount)

    async def remove_url(self, step_title: str, discipline: str, url: str) -> bool:
        """Strip a reported URL from the cached bundle; True when something was removed."""
        row = await self._row(step_title, discipline)
        if row is None:
            return False
        stripped = strip_url(row.resources or {}, url)
        if stripped == row.resources:
            return False
        # New dict so the JSON column is marked dirty
        row.resources = stripped
        row.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        logger.info("Removed reported URL from cache", extra={"url": url, "step_title": step_title})
        return True
