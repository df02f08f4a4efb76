"""
AI gateway client - an OpenAI-compatible endpoint serving Gemini models,
used to synthesise resources when search comes back short.
"""

from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from learnpath.ai.errors import LLMClientError, LLMNotConfiguredError
from learnpath.config import Settings, get_settings
from learnpath.logging_config import get_logger

logger = get_logger(__name__)


class GatewayClient:
    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def configured(self) -> bool:
        return self.settings.ai_gateway_configured

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.ai_gateway_api_key.strip(),
                base_url=self.settings.ai_gateway_base_url,
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        *,
        system: str,
        max_tokens: int = 3000,
        temperature: float = 0.3,
    ) -> str:
        if not self.configured:
            raise LLMNotConfiguredError("AI_GATEWAY_API_KEY not configured")
        try:
            response = await self._get_client().chat.completions.create(
                model=self.settings.ai_gateway_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            logger.warning("AI gateway call failed: %s", e)
            raise LLMClientError(f"AI gateway call failed: {e}") from e

        if not response.choices:
            raise LLMClientError("AI gateway returned no choices")
        content = (response.choices[0].message.content or "").strip()
        if not content:
            raise LLMClientError("AI gateway returned an empty completion")
        return content
