"""
Validation Engine - confirm resource links before they reach a learner.

Layers:
1. URL rules (local) - domain, normalisation, placeholder detection
2. Link check (network) - HEAD / oEmbed with retry
3. Archive fallback (network) - Wayback Machine snapshot for dead links
"""

from learnpath.engines.validation.link_validator import LinkCheckResult, LinkStatus, LinkValidator

__all__ = [
    "LinkValidator",
    "LinkCheckResult",
    "LinkStatus",
]
