"""
FastAPI dependencies for database sessions and service wiring.

Services are built per request on top of the request's session; tests
swap them through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from learnpath.database import get_db
from learnpath.engines.validation.link_validator import LinkValidator
from learnpath.services.additional_resource import AdditionalResourceFinder
from learnpath.services.blacklist import BlacklistService
from learnpath.services.link_recovery import LinkRecoveryService
from learnpath.services.resource_cache import ResourceCacheService
from learnpath.services.resource_fetcher import ResourceFetcher


DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_resource_fetcher(db: DbSession) -> ResourceFetcher:
    return ResourceFetcher(db)


def get_additional_finder(db: DbSession) -> AdditionalResourceFinder:
    return AdditionalResourceFinder(db)


def get_link_recovery(db: DbSession) -> LinkRecoveryService:
    return LinkRecoveryService(db)


def get_blacklist_service(db: DbSession) -> BlacklistService:
    return BlacklistService(db)


def get_cache_service(db: DbSession) -> ResourceCacheService:
    return ResourceCacheService(db)


def get_link_validator() -> LinkValidator:
    return LinkValidator()


Fetcher = Annotated[ResourceFetcher, Depends(get_resource_fetcher)]
AdditionalFinder = Annotated[AdditionalResourceFinder, Depends(get_additional_finder)]
Recovery = Annotated[LinkRecoveryService, Depends(get_link_recovery)]
Blacklist = Annotated[BlacklistService, Depends(get_blacklist_service)]
ResourceCache = Annotated[ResourceCacheService, Depends(get_cache_service)]
Validator = Annotated[LinkValidator, Depends(get_link_validator)]


def get_client_ip(request: Request) -> str:
    """Client IP from X-Forwarded-For or the direct peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
