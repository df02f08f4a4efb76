"""
Content extraction - pull readable text out of reading URLs so it can be
embedded next to the resource.

Sources:
  - plato.stanford.edu -- entry preamble, scraped from raw HTML
  - *.wikipedia.org -- article body paragraphs, scraped from raw HTML
  - anything else -- Firecrawl scrape API (markdown), when a key is configured

Extraction never raises: failures come back as status "failed".
"""

import html
import re
from dataclasses import dataclass
from typing import List, Literal, Optional

import httpx

from learnpath.config import get_settings
from learnpath.engines.validation.url_rules import NON_ARTICLE_DOMAINS, extract_domain
from learnpath.logging_config import get_logger

logger = get_logger(__name__)

FIRECRAWL_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"
MIN_CONTENT_CHARS = 100
TRUNCATION_MARKER = "\n\n[Content truncated...]"
MAX_FALLBACK_PARAGRAPHS = 5
USER_AGENT = "Mozilla/5.0 (compatible; LearnPathContentExtractor/1.0)"

ExtractionStatus = Literal["success", "partial", "failed", "skipped"]

_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_PARAGRAPH = re.compile(r"<p\b[^>]*>(.*?)</p>", re.IGNORECASE | re.DOTALL)
_SEP_PREAMBLE = re.compile(r'<div[^>]*id="preamble"[^>]*>(.*?)</div>', re.IGNORECASE | re.DOTALL)
_SEP_MAIN_TEXT = re.compile(r'<div[^>]*id="main-text"[^>]*>(.*)', re.IGNORECASE | re.DOTALL)
_WIKI_CONTENT = re.compile(
    r'<div[^>]*class="[^"]*mw-content-(?:output|text)[^"]*"[^>]*>(.*)', re.IGNORECASE | re.DOTALL
)
_WIKI_CONTENT_BY_ID = re.compile(r'<div[^>]*id="mw-content-text"[^>]*>(.*)', re.IGNORECASE | re.DOTALL)


@dataclass
class ExtractionResult:
    """Extracted text and how it was obtained."""
    content: Optional[str]
    status: ExtractionStatus
    method: str = ""  # "sep" | "wikipedia" | "firecrawl"

    @property
    def ok(self) -> bool:
        return self.status in ("success", "partial")


def clean_html_text(fragment: str) -> str:
    """Strip tags, unescape entities and collapse whitespace."""
    text = _TAG.sub(" ", fragment)
    text = html.unescape(text)
    return _WHITESPACE.sub(" ", text).strip()


def _paragraphs(fragment: str) -> List[str]:
    return [p for p in (clean_html_text(m) for m in _PARAGRAPH.findall(fragment)) if p]


def parse_sep_html(page: str) -> str:
    """Stanford Encyclopedia of Philosophy: preamble, else the opening of main-text."""
    match = _SEP_PREAMBLE.search(page)
    if match:
        paragraphs = _paragraphs(match.group(1))
        if paragraphs:
            return "\n\n".join(paragraphs)
    match = _SEP_MAIN_TEXT.search(page)
    if match:
        return "\n\n".join(_paragraphs(match.group(1))[:MAX_FALLBACK_PARAGRAPHS])
    return ""


def parse_wikipedia_html(page: str) -> str:
    """Wikipedia: non-empty paragraphs of the article body."""
    match = _WIKI_CONTENT.search(page) or _WIKI_CONTENT_BY_ID.search(page)
    if not match:
        return ""
    return "\n\n".join(_paragraphs(match.group(1)))


def finalize_content(text: Optional[str], method: str, max_chars: int) -> ExtractionResult:
    """Apply the minimum-length and truncation rules to extracted text."""
    text = (text or "").strip()
    if len(text) < MIN_CONTENT_CHARS:
        return ExtractionResult(content=None, status="failed", method=method)
    if len(text) > max_chars:
        return ExtractionResult(content=text[:max_chars] + TRUNCATION_MARKER, status="partial", method=method)
    return ExtractionResult(content=text, status="success", method=method)


class ContentExtractor:
    """Extract article text for reading resources."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        settings = get_settings()
        self._client = client
        self.max_chars = settings.extraction_max_chars
        self.timeout = max(settings.link_check_timeout_seconds, 10.0)
        self.firecrawl_api_key = settings.firecrawl_api_key if settings.firecrawl_configured else ""

    async def extract(self, url: str) -> ExtractionResult:
        lowered = (url or "").lower()
        if not lowered or any(d in lowered for d in NON_ARTICLE_DOMAINS):
            return ExtractionResult(content=None, status="skipped")

        domain = extract_domain(url)
        if domain == "plato.stanford.edu":
            method = "sep"
        elif domain.endswith("wikipedia.org"):
            method = "wikipedia"
        elif self.firecrawl_api_key:
            method = "firecrawl"
        else:
            logger.debug("No extractor for %s and Firecrawl is not configured", domain)
            return ExtractionResult(content=None, status="skipped")

        try:
            if self._client is not None:
                text = await self._run(self._client, method, url)
            else:
                async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as client:
                    text = await self._run(client, method, url)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Content extraction failed", extra={"url": url, "method": method, "error": str(e)})
            return ExtractionResult(content=None, status="failed", method=method)

        result = finalize_content(text, method, self.max_chars)
        logger.info(
            "Content extracted",
            extra={"url": url, "method": method, "status": result.status, "chars": len(result.content or "")},
        )
        return result

    async def _run(self, client: httpx.AsyncClient, method: str, url: str) -> str:
        if method == "firecrawl":
            return await self._firecrawl(client, url)
        response = await client.get(url, timeout=self.timeout, follow_redirects=True)
        if response.status_code != 200:
            logger.info("Extraction fetch returned %s for %s", response.status_code, url)
            return ""
        if method == "sep":
            return parse_sep_html(response.text)
        return parse_wikipedia_html(response.text)

    async def _firecrawl(self, client: httpx.AsyncClient, url: str) -> str:
        response = await client.post(
            FIRECRAWL_SCRAPE_URL,
            headers={"Authorization": f"Bearer {self.firecrawl_api_key}"},
            json={"url": url, "formats": ["markdown"], "onlyMainContent": True, "waitFor": 2000},
            timeout=max(self.timeout, 30.0),
        )
        if response.status_code != 200:
            logger.info("Firecrawl request failed: %s", response.status_code)
            return ""
        data = response.json()
        return data.get("markdown") or (data.get("data") or {}).get("markdown") or ""
