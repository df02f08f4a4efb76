"""Unit tests for link validation (HEAD / oEmbed checks, Wayback fallback)."""

import httpx
import pytest

from learnpath.config import get_settings
from learnpath.engines.validation import link_validator
from learnpath.engines.validation.link_validator import LinkStatus, LinkValidator

WAYBACK_HIT = {
    "archived_snapshots": {
        "closest": {
            "available": True,
            "url": "http://web.archive.org/web/20200101000000/https://dead.test/page",
        }
    }
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHeadChecks:
    @pytest.mark.asyncio
    async def test_live_link(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "HEAD"
            return httpx.Response(200)

        async with _client(handler) as client:
            result = await LinkValidator(client).check("https://nngroup.com/articles/a")
        assert result.status == LinkStatus.LIVE
        assert result.verified is True
        assert result.http_status == 200
        assert result.checked_via == "head"

    @pytest.mark.asyncio
    async def test_head_refused_falls_back_to_get(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.method)
            if request.method == "HEAD":
                return httpx.Response(405)
            return httpx.Response(200, text="ok")

        async with _client(handler) as client:
            result = await LinkValidator(client).check("https://nngroup.com/articles/b")
        assert seen == ["HEAD", "GET"]
        assert result.status == LinkStatus.LIVE
        assert result.checked_via == "get"

    @pytest.mark.asyncio
    async def test_dead_link_with_snapshot_is_archived(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "archive.org":
                return httpx.Response(200, json=WAYBACK_HIT)
            return httpx.Response(404)

        async with _client(handler) as client:
            result = await LinkValidator(client).check("https://dead.test/page")
        assert result.status == LinkStatus.ARCHIVED
        assert result.verified is False
        assert result.archived_url.startswith("https://web.archive.org/")

    @pytest.mark.asyncio
    async def test_dead_link_without_snapshot_is_broken(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "archive.org":
                return httpx.Response(200, json={"archived_snapshots": {}})
            return httpx.Response(404)

        async with _client(handler) as client:
            result = await LinkValidator(client).check("https://dead.test/gone")
        assert result.status == LinkStatus.BROKEN
        assert result.http_status == 404

    @pytest.mark.asyncio
    async def test_unreachable_host_is_unknown_and_not_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            validator = LinkValidator(client)
            first = await validator.check("https://flaky.test/a")
            second = await validator.check("https://flaky.test/a")
        assert first.status == LinkStatus.UNKNOWN
        assert first.verified is None
        assert second.status == LinkStatus.UNKNOWN
        assert calls.count("flaky.test") > 2

    @pytest.mark.asyncio
    async def test_rate_limited_link_is_unknown_and_not_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            if request.url.host == "archive.org":
                return httpx.Response(200, json={"archived_snapshots": {}})
            return httpx.Response(429, headers={"Retry-After": "3600"})

        async with _client(handler) as client:
            validator = LinkValidator(client)
            first = await validator.check("https://busy.test/page")
            await validator.check("https://busy.test/page")
        assert first.status == LinkStatus.UNKNOWN
        assert first.http_status == 429
        assert first.verified is None
        assert "archive.org" not in calls
        assert calls.count("busy.test") == 2
        assert "https://busy.test/page" not in LinkValidator._cache

    @pytest.mark.asyncio
    async def test_server_error_after_retries_is_unknown(self, monkeypatch):
        monkeypatch.setattr(link_validator, "RETRY_BACKOFF", (0, 0))

        async with _client(lambda request: httpx.Response(503)) as client:
            result = await LinkValidator(client).check("https://down.test/page")
        assert result.status == LinkStatus.UNKNOWN
        assert result.http_status == 503

    @pytest.mark.asyncio
    async def test_format_failures_skip_the_network(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with _client(handler) as client:
            validator = LinkValidator(client)
            assert (await validator.check("not-a-url")).status == LinkStatus.BROKEN
            placeholder = await validator.check("https://www.youtube.com/watch?v=VIDEO_ID")
        assert placeholder.status == LinkStatus.BROKEN
        assert placeholder.checked_via == "format"


class TestYouTubeAndCache:
    @pytest.mark.asyncio
    async def test_youtube_uses_oembed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/oembed"
            return httpx.Response(200, json={"title": "Video"})

        async with _client(handler) as client:
            result = await LinkValidator(client).check("https://youtu.be/dQw4w9WgXcQ")
        assert result.status == LinkStatus.LIVE
        assert result.checked_via == "oembed"

    @pytest.mark.asyncio
    async def test_removed_youtube_video_is_broken(self):
        async with _client(lambda request: httpx.Response(404)) as client:
            validator = LinkValidator(client)
            assert not await validator.verify_youtube_video("dQw4w9WgXcQ")
            result = await validator.check("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        assert result.status == LinkStatus.BROKEN

    @pytest.mark.asyncio
    async def test_youtube_unreachable_is_unknown_not_broken(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            validator = LinkValidator(client)
            result = await validator.check("https://www.youtube.com/watch?v=abcdefghijk")
            assert not await validator.verify_youtube_video("abcdefghijk")
        assert result.status == LinkStatus.UNKNOWN
        assert result.checked_via == "oembed"
        assert "https://www.youtube.com/watch?v=abcdefghijk" not in LinkValidator._cache

    @pytest.mark.asyncio
    async def test_youtube_rate_limited_is_unknown(self):
        async with _client(lambda request: httpx.Response(429, headers={"Retry-After": "60"})) as client:
            result = await LinkValidator(client).check("https://youtu.be/dQw4w9WgXcQ")
        assert result.status == LinkStatus.UNKNOWN

    @pytest.mark.asyncio
    async def test_results_are_cached_across_instances(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            return httpx.Response(200)

        async with _client(handler) as client:
            await LinkValidator(client).check("https://nngroup.com/cached")
            await LinkValidator(client).check("https://nngroup.com/cached")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_check_many_dedupes(self):
        async with _client(lambda request: httpx.Response(200)) as client:
            results = await LinkValidator(client).check_many(
                ["https://nngroup.com/1", "https://nngroup.com/2", "https://nngroup.com/1", ""]
            )
        assert set(results) == {"https://nngroup.com/1", "https://nngroup.com/2"}
        assert all(r.live for r in results.values())


class TestCacheBounds:
    @pytest.mark.asyncio
    async def test_expired_entries_are_pruned_on_insert(self, monkeypatch):
        monkeypatch.setenv("LINK_CACHE_TTL_HOURS", "0")
        get_settings.cache_clear()

        async with _client(lambda request: httpx.Response(200)) as client:
            validator = LinkValidator(client)
            await validator.check("https://nngroup.com/old")
            await validator.check("https://nngroup.com/new")
        assert list(LinkValidator._cache) == ["https://nngroup.com/new"]

    @pytest.mark.asyncio
    async def test_oldest_entries_are_evicted_over_the_cap(self, monkeypatch):
        monkeypatch.setattr(link_validator, "MAX_CACHED_LINKS", 2)

        async with _client(lambda request: httpx.Response(200)) as client:
            validator = LinkValidator(client)
            for path in ("a", "b", "c"):
                await validator.check(f"https://nngroup.com/{path}")
        assert list(LinkValidator._cache) == ["https://nngroup.com/b", "https://nngroup.com/c"]
