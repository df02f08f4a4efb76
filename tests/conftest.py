"""
Pytest fixtures for the learnpath tests.

The environment is pinned before any learnpath import so the module-level
engine and settings pick up a throwaway SQLite database.
"""

import os
import tempfile
from typing import AsyncGenerator, Dict, Iterable, List, Optional

_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp.name}"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PERPLEXITY_API_KEY"] = ""
os.environ["AI_GATEWAY_API_KEY"] = ""
os.environ["FIRECRAWL_API_KEY"] = ""
os.environ["PERPLEXITY_MIN_INTERVAL_SECONDS"] = "0"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from learnpath.config import get_settings
from learnpath.engines.extraction.content_extractor import ExtractionResult
from learnpath.engines.validation.link_validator import LinkCheckResult, LinkStatus, LinkValidator
from learnpath.models import Base


def pytest_sessionfinish(session, exitstatus):
    """Clean up temp DB file after test run."""
    if os.path.exists(_tmp.name):
        os.unlink(_tmp.name)


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Settings and the link cache are process-wide; start every test clean."""
    get_settings.cache_clear()
    LinkValidator.clear_cache()
    yield
    get_settings.cache_clear()
    LinkValidator.clear_cache()


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session
        await session.rollback()


# ── Fakes for the external backends ─────────────────────────────────────


class FakePerplexity:
    """Records calls; answers per model when ``by_model`` has an entry."""

    search_model = "sonar-pro"
    fast_model = "sonar"

    def __init__(
        self,
        reply: str = "",
        *,
        by_model: Optional[Dict[str, str]] = None,
        error: Optional[Exception] = None,
        configured: bool = True,
    ):
        self.reply = reply
        self.by_model = by_model or {}
        self.error = error
        self.configured = configured
        self.calls: List[dict] = []

    async def complete(self, prompt: str, *, model: Optional[str] = None, **kwargs) -> str:
        self.calls.append({"prompt": prompt, "model": model, **kwargs})
        if self.error is not None:
            raise self.error
        return self.by_model.get(model, self.reply)


class FakeGateway:
    def __init__(self, reply: str = "", *, configured: bool = True):
        self.reply = reply
        self.configured = configured
        self.calls: List[str] = []

    async def complete(self, prompt: str, **kwargs) -> str:
        self.calls.append(prompt)
        return self.reply


class FakeValidator:
    """Every URL is live unless listed in ``statuses``."""

    def __init__(
        self,
        statuses: Optional[Dict[str, LinkStatus]] = None,
        *,
        default: LinkStatus = LinkStatus.LIVE,
        youtube_ok: bool = True,
    ):
        self.statuses = statuses or {}
        self.default = default
        self.youtube_ok = youtube_ok
        self.checked: List[str] = []

    async def check(self, url: str) -> LinkCheckResult:
        self.checked.append(url)
        status = self.statuses.get(url, self.default)
        return LinkCheckResult(
            url=url,
            status=status,
            archived_url=f"https://web.archive.org/web/2020/{url}" if status == LinkStatus.ARCHIVED else None,
            checked_via="fake",
        )

    async def check_many(self, urls: Iterable[str]) -> Dict[str, LinkCheckResult]:
        return {u: await self.check(u) for u in dict.fromkeys(u for u in urls if u)}

    async def verify_youtube_video(self, video_id: str) -> bool:
        return self.youtube_ok


class FakeExtractor:
    def __init__(self, content: Optional[str] = "Extracted article text. " * 10):
        self.content = content
        self.extracted: List[str] = []

    async def extract(self, url: str) -> ExtractionResult:
        self.extracted.append(url)
        if self.content is None:
            return ExtractionResult(content=None, status="skipped")
        return ExtractionResult(content=self.content, status="success", method="fake")


@pytest.fixture
def fake_validator() -> FakeValidator:
    return FakeValidator()


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor()
