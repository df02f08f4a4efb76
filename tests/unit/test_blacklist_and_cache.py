"""Unit tests for the reported-link blacklist and the step resource cache."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect

from learnpath.config import get_settings
from learnpath.services.blacklist import BlacklistService, is_blacklisted
from learnpath.services.resource_cache import ResourceCacheService, strip_url

BUNDLE = {
    "videos": [
        {"url": "https://youtu.be/dQw4w9WgXcQ", "title": "Keep"},
        {"url": "https://www.dead.test/video/", "title": "Drop"},
    ],
    "readings": [{"url": "https://nngroup.com/a", "title": "Reading"}],
    "core_video": {"url": "https://dead.test/video", "title": "Drop"},
}


def test_is_blacklisted_compares_normalised_urls():
    assert is_blacklisted("https://www.Dead.test/page/", ["https://dead.test/page"])
    assert not is_blacklisted("https://dead.test/other", ["https://dead.test/page"])
    assert not is_blacklisted("", ["https://dead.test/page"])


def test_strip_url_handles_lists_and_single_fields():
    stripped = strip_url(BUNDLE, "https://dead.test/video")
    assert [v["title"] for v in stripped["videos"]] == ["Keep"]
    assert stripped["core_video"] is None
    assert stripped["readings"] == BUNDLE["readings"]
    # original untouched
    assert len(BUNDLE["videos"]) == 2


class TestBlacklistService:
    @pytest.mark.asyncio
    async def test_report_inserts_then_increments(self, db_session):
        service = BlacklistService(db_session)
        first = await service.report("https://dead.test/a", "video", step_title="Step", discipline="UX")
        assert first.report_count == 1
        assert first.report_reason == "Broken link"

        again = await service.report("https://dead.test/a", "video", discipline="UX", reason="Paywalled")
        assert isinstance(first.id, uuid.UUID)
        assert again.id == first.id
        assert again.report_count == 2

    @pytest.mark.asyncio
    async def test_lists_are_scoped_to_discipline(self, db_session):
        service = BlacklistService(db_session)
        await service.report("https://dead.test/a", "video", discipline="UX")
        await service.report("https://dead.test/b", "reading", discipline="UX")
        await service.report("https://dead.test/b", "reading", discipline="UX")
        await service.report("https://dead.test/c", "reading", discipline="Philosophy")

        assert await service.urls_for_discipline("UX") == {"https://dead.test/a", "https://dead.test/b"}
        rows = await service.list_for_discipline("UX")
        assert [r.url for r in rows] == ["https://dead.test/b", "https://dead.test/a"]
        assert await service.urls_for_discipline("Chemistry") == set()


class TestResourceCacheService:
    @pytest.mark.asyncio
    async def test_put_get_and_overwrite(self, db_session):
        cache = ResourceCacheService(db_session)
        assert await cache.get("Step", "UX") is None

        await cache.put("Step", "UX", {"videos": []}, ["https://syllabus.test"])
        assert await cache.get("Step", "UX") == {"videos": []}

        await cache.put("Step", "UX", BUNDLE)
        assert (await cache.get("Step", "UX"))["readings"] == BUNDLE["readings"]
        assert await cache.get("Step", "Philosophy") is None

    @pytest.mark.asyncio
    async def test_invalidate(self, db_session):
        cache = ResourceCacheService(db_session)
        await cache.put("Step", "UX", BUNDLE)
        assert await cache.invalidate("Step", "UX") is True
        assert await cache.get("Step", "UX") is None
        assert await cache.invalidate("Step", "UX") is False

    @pytest.mark.asyncio
    async def test_remove_url_persists(self, db_session):
        cache = ResourceCacheService(db_session)
        await cache.put("Step", "UX", BUNDLE)
        await db_session.commit()

        assert await cache.remove_url("Step", "UX", "https://dead.test/video") is True
        await db_session.commit()
        db_session.expire_all()

        stored = await cache.get("Step", "UX")
        assert [v["title"] for v in stored["videos"]] == ["Keep"]
        assert await cache.remove_url("Step", "UX", "https://dead.test/video") is False
        assert await cache.remove_url("Other", "UX", "https://dead.test/video") is False

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, db_session, monkeypatch):
        monkeypatch.setenv("RESOURCE_CACHE_TTL_DAYS", "1")
        get_settings.cache_clear()
        cache = ResourceCacheService(db_session)
        row = await cache.put("Step", "UX", BUNDLE)
        await db_session.commit()
        assert await cache.get("Step", "UX") is not None

        row.updated_at = datetime.now(timezone.utc) - timedelta(days=2)
        await db_session.commit()
        assert await cache.get("Step", "UX") is None


@pytest.mark.asyncio
async def test_schema_uses_conventional_names(db_engine):
    def _names(conn):
        inspector = inspect(conn)
        return (
            {ix["name"] for ix in inspector.get_indexes("step_resources")},
            {uq["name"] for uq in inspector.get_unique_constraints("reported_links")},
        )

    async with db_engine.connect() as conn:
        indexes, uniques = await conn.run_sync(_names)
    assert {"ix_step_resources_step_title", "ix_step_resources_discipline"} <= indexes
    assert uniques == {"uq_reported_links_url"}
