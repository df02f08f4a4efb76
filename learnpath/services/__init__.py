"""
Services - database-backed workflows behind the API.

- Blacklist and step resource cache
- Resource fetching across extraction, search and synthesis tiers
- Find-more and link-rot recovery
"""

from learnpath.services.additional_resource import AdditionalResourceFinder
from learnpath.services.blacklist import BlacklistService, is_blacklisted
from learnpath.services.link_recovery import LinkRecoveryService
from learnpath.services.resource_cache import ResourceCacheService
from learnpath.services.resource_fetcher import ResourceFetcher

__all__ = [
    "AdditionalResourceFinder",
    "BlacklistService",
    "is_blacklisted",
    "LinkRecoveryService",
    "ResourceCacheService",
    "ResourceFetcher",
]
