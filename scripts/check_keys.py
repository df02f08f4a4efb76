"""Print which backends the current environment (.env included) configures."""

from learnpath.config import get_settings

s = get_settings()
for name, key, configured in (
    ("Perplexity", s.perplexity_api_key, s.perplexity_configured),
    ("AI gateway", s.ai_gateway_api_key, s.ai_gateway_configured),
    ("Firecrawl", s.firecrawl_api_key, s.firecrawl_configured),
):
    key = key or ""
    print(f"{name}: configured={configured} length={len(key)} first 6 chars: {key[:6]}...")
print(f"Database: {s.database_url.split('://')[0]}")
