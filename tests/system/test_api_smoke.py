"""
System smoke test: full API flow in-process against the SQLite file set up
in conftest. External backends are replaced through dependency overrides.
"""

import json

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import FakeExtractor, FakeGateway, FakePerplexity, FakeValidator
from learnpath.api.deps import (
    DbSession,
    get_link_recovery,
    get_link_validator,
    get_resource_fetcher,
)
from learnpath.database import engine, init_db
from learnpath.engines.validation.link_validator import LinkStatus
from learnpath.main import app
from learnpath.models import Base
from learnpath.services.link_recovery import LinkRecoveryService
from learnpath.services.resource_fetcher import ResourceFetcher

SEP_URL = "https://plato.stanford.edu/entries/ethics-virtue/"
VIDEO_URL = "https://www.youtube.com/watch?v=abcdefghijk"
BROKEN_URL = "https://dead.test/article"
REPLACEMENT_URL = "https://plato.stanford.edu/entries/aristotle-ethics/"


@pytest_asyncio.fixture
async def client():
    """Async client with fresh tables and faked search backends."""
    await init_db()
    open_library = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"docs": []}))
    )

    def fetcher(db: DbSession) -> ResourceFetcher:
        return ResourceFetcher(
            db,
            http_client=open_library,
            perplexity=FakePerplexity(configured=False),
            gateway=FakeGateway(configured=False),
            validator=FakeValidator(),
            extractor=FakeExtractor(),
        )

    def recovery(db: DbSession) -> LinkRecoveryService:
        reply = json.dumps({"url": REPLACEMENT_URL, "title": "Aristotle's Ethics"})
        return LinkRecoveryService(
            db,
            perplexity=FakePerplexity(reply),
            validator=FakeValidator({"https://dead.test/podcast": LinkStatus.BROKEN}),
        )

    app.dependency_overrides[get_resource_fetcher] = fetcher
    app.dependency_overrides[get_link_recovery] = recovery
    app.dependency_overrides[get_link_validator] = lambda: FakeValidator({BROKEN_URL: LinkStatus.BROKEN})
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
        await open_library.aclose()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"
    assert data["search_configured"] is False
    assert data["ai_gateway_configured"] is False
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    r = await client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert r.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_fetch_step_then_serve_from_cache(client: AsyncClient):
    body = {"step_title": "Virtue Ethics", "discipline": "Philosophy", "syllabus_urls": [SEP_URL, VIDEO_URL]}
    r = await client.post("/api/v1/resources/step", json=body)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["core_video"]["url"] == VIDEO_URL
    assert data["core_readings"][0]["url"] == SEP_URL
    assert data["provenance"]["tier"] == "extraction"

    r = await client.post("/api/v1/resources/step", json={"step_title": "Virtue Ethics", "discipline": "Philosophy"})
    assert r.json()["provenance"]["tier"] == "cache"

    r = await client.delete(
        "/api/v1/resources/cache", params={"step_title": "Virtue Ethics", "discipline": "Philosophy"}
    )
    assert r.status_code == 204

    r = await client.post("/api/v1/resources/step", json={"step_title": "Virtue Ethics", "discipline": "Philosophy"})
    data = r.json()
    assert data["provenance"]["tier"] == "oer_search"
    assert data["availability_report"]["was_limited_by_availability"] is True


@pytest.mark.asyncio
async def test_validation_error_shape(client: AsyncClient):
    r = await client.post("/api/v1/resources/step", json={"discipline": "Philosophy"})
    assert r.status_code == 422
    data = r.json()
    assert data["detail"] == "Validation error"
    assert any(e["field"].endswith("step_title") for e in data["errors"])
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_transform_legacy_payload(client: AsyncClient):
    payload = {"primaryVideo": {"url": VIDEO_URL, "title": "Intro"}, "deepReading": {"url": SEP_URL, "title": "SEP"}}
    r = await client.post(
        "/api/v1/resources/transform", json={"payload": payload, "step_title": "Module 1 - Step 2: Virtue Ethics"}
    )
    assert r.status_code == 200
    data = r.json()
    assert data["core_video"]["title"] == "Intro"
    assert data["core_reading"]["title"] == "SEP"
    assert '"Virtue Ethics"' in data["knowledge_check"]["question"]

    r = await client.post("/api/v1/resources/transform", json={"payload": payload})
    assert "Virtue Ethics" not in r.json()["knowledge_check"]["question"]


@pytest.mark.asyncio
async def test_report_then_list_reported(client: AsyncClient):
    r = await client.post(
        "/api/v1/resources/report",
        json={
            "broken_url": BROKEN_URL,
            "resource_type": "reading",
            "step_title": "Virtue Ethics",
            "discipline": "Philosophy",
        },
    )
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["verified"] is True
    assert data["replacement"]["url"] == REPLACEMENT_URL

    r = await client.get("/api/v1/resources/reported", params={"discipline": "Philosophy"})
    assert r.status_code == 200
    assert [row["url"] for row in r.json()] == [BROKEN_URL]
    assert r.json()[0]["report_count"] == 1


@pytest.mark.asyncio
async def test_find_more_without_search_key_is_503(client: AsyncClient):
    r = await client.post(
        "/api/v1/resources/additional",
        json={"resource_type": "video", "step_title": "Virtue Ethics", "discipline": "Philosophy"},
    )
    assert r.status_code == 503
    assert "PERPLEXITY_API_KEY" in r.json()["detail"]


@pytest.mark.asyncio
async def test_recover_podcast(client: AsyncClient):
    r = await client.post(
        "/api/v1/resources/recover-podcast",
        json={"title": "Ethics", "source": "Philosophy Bites", "original_url": "https://dead.test/podcast"},
    )
    assert r.status_code == 200
    assert r.json()["recovered_url"] == REPLACEMENT_URL
    assert r.json()["was_recovered"] is True


@pytest.mark.asyncio
async def test_check_links(client: AsyncClient):
    r = await client.post("/api/v1/resources/check-links", json={"urls": [SEP_URL, BROKEN_URL, SEP_URL]})
    assert r.status_code == 200
    assert [(c["url"], c["status"]) for c in r.json()] == [(SEP_URL, "live"), (BROKEN_URL, "broken")]

    r = await client.post("/api/v1/resources/check-links", json={"urls": []})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_learning_path_planning(client: AsyncClient):
    r = await client.post(
        "/api/v1/learning-path/feasibility",
        json={"hours_per_week": 5, "duration_weeks": 4, "skill_level": "intermediate"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["total_hours"] == 20
    assert data["feasibility"]["status"] == "valid"
    assert data["recommended"]["depth"] == "standard"
    assert data["depth_description"]

    r = await client.post(
        "/api/v1/learning-path/prune",
        json={
            "depth": "overview",
            "modules": [{"title": "Ethics", "steps": [{"title": f"Step {i}"} for i in range(1, 6)]}],
        },
    )
    assert r.status_code == 200
    data = r.json()
    assert [s["title"] for s in data["modules"][0]["steps"]] == ["Step 1", "Step 2"]
    assert data["pruned_steps"] == ["Step 3", "Step 4", "Step 5"]
    assert data["coverage_percentage"] == 40
