"""FastAPI dependencies for the redirect endpoints."""

import functools

import redis
from fastapi import Depends
from sqlalchemy.orm import Session

from basecore.clock import utcnow
from basecore.db import get_appchat_db, get_db
from basecore.redis import get_redis_client
from basecore.settings import get_settings
from chat_redirects.directory import DirectoryGateway, SectorOwnerIndex, build_directory_gateway
from chat_redirects.service import RedirectOrchestrator, RedirectReconciler


@functools.lru_cache()
def get_directory() -> DirectoryGateway:
    """Process-wide directory gateway (one HTTP connection pool)."""
    return build_directory_gateway()


@functools.lru_cache()
def get_sector_index() -> SectorOwnerIndex:
    """Process-wide sector owner index, so its cache outlives a request."""
    return SectorOwnerIndex(get_directory(), ttl_seconds=get_settings().SECTOR_INDEX_TTL_SEC)


def get_redis() -> redis.Redis | None:
    return get_redis_client()


def get_orchestrator(
    db: Session = Depends(get_db),
    appchat_db: Session = Depends(get_appchat_db),
    directory: DirectoryGateway = Depends(get_directory),
    sector_index: SectorOwnerIndex = Depends(get_sector_index),
) -> RedirectOrchestrator:
    return RedirectOrchestrator(
        db,
        appchat_db,
        directory,
        clock=utcnow,
        sector_index=sector_index,
    )


def get_reconciler(
    orchestrator: RedirectOrchestrator = Depends(get_orchestrator),
    redis_client: redis.Redis | None = Depends(get_redis),
) -> RedirectReconciler:
    return RedirectReconciler(
        orchestrator.db,
        orchestrator.appchat_db,
        orchestrator.directory,
        clock=orchestrator.clock,
        redis_client=redis_client,
        orchestrator=orchestrator,
    )
