"""
LLM backends for resource discovery.

- Perplexity (web-grounded search) for step resources, replacements and recovery
- OpenAI-compatible AI gateway for synthesis when search comes back short

Responses are JSON embedded in free text; ``extract_json`` recovers it.
"""

from learnpath.ai.errors import LLMClientError, LLMNotConfiguredError
from learnpath.ai.gateway_client import GatewayClient
from learnpath.ai.parsing import as_object_list, extract_json
from learnpath.ai.perplexity_client import PerplexityClient

__all__ = [
    "LLMClientError",
    "LLMNotConfiguredError",
    "GatewayClient",
    "PerplexityClient",
    "extract_json",
    "as_object_list",
]
