"""
Perplexity chat completions client (web-grounded search).

Calls are throttled to a minimum interval and retried with exponential
backoff; rate limiting (429) and transient failures count as retryable.
"""

import asyncio
import time
import weakref
from typing import Any, Dict, Optional

import httpx

from learnpath.ai.errors import LLMClientError, LLMNotConfiguredError
from learnpath.config import Settings, get_settings
from learnpath.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a learning resource curator. Return ONLY valid JSON with no markdown formatting or explanation."
)
REQUEST_TIMEOUT = 60.0  # seconds


class PerplexityClient:
    """Thin async wrapper around ``POST {base_url}/chat/completions``."""

    # Shared across instances so concurrent services respect one interval.
    # asyncio locks belong to one event loop, so there is one lock per loop.
    _last_call: float = 0.0
    _throttle_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self._client = client
        self.min_interval = self.settings.perplexity_min_interval_seconds
        self.max_retries = max(1, self.settings.perplexity_max_retries)

    @property
    def configured(self) -> bool:
        return self.settings.perplexity_configured

    @property
    def search_model(self) -> str:
        return self.settings.perplexity_search_model

    @property
    def fast_model(self) -> str:
        return self.settings.perplexity_fast_model

    @classmethod
    def throttle_lock(cls) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        lock = cls._throttle_locks.get(loop)
        if lock is None:
            lock = cls._throttle_locks[loop] = asyncio.Lock()
        return lock

    async def _throttle(self) -> None:
        cls = type(self)
        async with cls.throttle_lock():
            wait = cls._last_call + self.min_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
            cls._last_call = time.monotonic()

    async def complete(
        self,
        prompt: str,
        *,
        system: str = DEFAULT_SYSTEM_PROMPT,
        model: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.2,
        search_recency_filter: Optional[str] = None,
        return_citations: bool = False,
    ) -> str:
        """Run one chat completion and return the assistant message content."""
        if not self.configured:
            raise LLMNotConfiguredError("PERPLEXITY_API_KEY not configured")

        body: Dict[str, Any] = {
            "model": model or self.search_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if search_recency_filter:
            body["search_recency_filter"] = search_recency_filter
        if return_citations:
            body["return_citations"] = True

        if self._client is not None:
            return await self._post_with_retry(self._client, body)
        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
            return await self._post_with_retry(client, body)

    async def _post_with_retry(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> str:
        url = f"{self.settings.perplexity_base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.settings.perplexity_api_key}"}
        last_error: Optional[LLMClientError] = None

        for attempt in range(self.max_retries):
            if attempt > 0:
                backoff = self.min_interval * 2 ** (attempt - 1)
                logger.info("Perplexity retry %d, waiting %.1fs", attempt + 1, backoff)
                await asyncio.sleep(backoff)
            await self._throttle()

            try:
                response = await client.post(url, json=body, headers=headers, timeout=REQUEST_TIMEOUT)
            except httpx.HTTPError as e:
                last_error = LLMClientError(f"Perplexity request failed: {e}")
                logger.warning("Perplexity attempt %d failed: %s", attempt + 1, e)
                continue

            if response.status_code == 429 or response.status_code >= 500:
                last_error = LLMClientError(f"Perplexity API error: {response.status_code}")
                logger.warning("Perplexity attempt %d returned %s", attempt + 1, response.status_code)
                continue
            if response.status_code >= 400:
                logger.error(
                    "Perplexity API error",
                    extra={"status_code": response.status_code, "body": response.text[:500]},
                )
                raise LLMClientError(f"Perplexity API error: {response.status_code}")

            content_type = response.headers.get("content-type", "")
            if "application/json" not in content_type:
                logger.error("Perplexity returned non-JSON response", extra={"content_type": content_type})
                raise LLMClientError("Perplexity API returned non-JSON response")

            try:
                data = response.json()
                content = data["choices"][0]["message"]["content"]
            except (ValueError, KeyError, IndexError, TypeError) as e:
                raise LLMClientError("Invalid response structure from Perplexity API") from e
            if not content:
                raise LLMClientError("Empty completion from Perplexity API")

            logger.debug("Perplexity call succeeded", extra={"attempt": attempt + 1, "model": body["model"]})
            return content

        raise last_error or LLMClientError("Perplexity max retries exceeded")
