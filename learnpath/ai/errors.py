"""Errors raised by the LLM backend clients."""


class LLMClientError(Exception):
    """An LLM backend call failed after retries or returned an unusable body."""


class LLMNotConfiguredError(LLMClientError):
    """The backend's API key is missing or still a placeholder."""
