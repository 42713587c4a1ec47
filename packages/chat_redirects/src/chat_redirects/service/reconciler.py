"""
Redirect Reconciler

One reconciliation cycle:
1. Activation pass: SCHEDULED records whose start date has been reached
2. Deactivation pass: ACTIVE records whose end date has passed

Each record is processed on its own. A failure is rolled back, logged, and
leaves the record in its current status so the next cycle retries it; the
rest of the batch carries on.

Only one cycle runs at a time: a process-wide lock, plus a Redis lock when
several workers share the databases.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

import redis
from sqlalchemy.orm import Session

from basecore.clock import Clock, as_utc_naive, utcnow
from basecore.settings import get_settings
from chat_redirects.directory.base import DirectoryGateway
from chat_redirects.persistence.models import ScheduledRedirect
from chat_redirects.persistence.repo import RedirectRepository
from chat_redirects.service.orchestrator import RedirectOrchestrator

logger = logging.getLogger(__name__)

LOCK_NAME = "redirects:reconcile:lock"

# Shared by every reconciler in the process
_CYCLE_LOCK = threading.Lock()


@dataclass
class CycleResult:
    """Outcome of one reconciliation cycle."""

    skipped: bool = False
    activated: int = 0
    completed: int = 0
    failed: int = 0
    errors: dict[str, str] = field(default_factory=dict)


class RedirectReconciler:
    """
    Drives scheduled redirects through their lifecycle.

    Args:
        db: Backoffice session
        appchat_db: App-chat session
        directory: User directory gateway
        clock: Returns "now" as naive UTC
        redis_client: Enables the distributed single-flight lock when set
        lock_ttl: Redis lock expiry in seconds (defaults to REDIRECTS_LOCK_TTL_SEC)
        cycle_lock: In-process lock (defaults to the module-wide one)
    """

    def __init__(
        self,
        db: Session,
        appchat_db: Session,
        directory: DirectoryGateway,
        clock: Clock = utcnow,
        redis_client: redis.Redis | None = None,
        lock_ttl: int | None = None,
        cycle_lock: threading.Lock | None = None,
        orchestrator: RedirectOrchestrator | None = None,
    ):
        self.db = db
        self.appchat_db = appchat_db
        self.clock = clock
        self.redis = redis_client
        self.lock_ttl = lock_ttl or get_settings().REDIRECTS_LOCK_TTL_SEC
        self.cycle_lock = cycle_lock or _CYCLE_LOCK
        self.repo = RedirectRepository(db)
        self.orchestrator = orchestrator or RedirectOrchestrator(
            db, appchat_db, directory, clock=clock
        )

    def run_cycle(self, now: datetime | None = None) -> CycleResult:
        """
        Run one cycle unless another one is in progress.

        Args:
            now: Reference time (defaults to the clock)

        Returns:
            CycleResult; skipped=True when the cycle could not take the lock
        """
        now = as_utc_naive(now) if now is not None else self.clock()

        if not self.cycle_lock.acquire(blocking=False):
            logger.info("Reconciliation cycle already running in this process, skipping")
            return CycleResult(skipped=True)

        try:
            distributed_lock = None
            if self.redis is not None:
                distributed_lock = self.redis.lock(LOCK_NAME, timeout=self.lock_ttl)
                try:
                    acquired = distributed_lock.acquire(blocking=False)
                except redis.RedisError as e:
                    logger.error(f"Could not take reconciliation lock: {e}", exc_info=True)
                    return CycleResult(skipped=True)
                if not acquired:
                    logger.info("Reconciliation cycle already running elsewhere, skipping")
                    return CycleResult(skipped=True)

            try:
                return self._reconcile(now)
            finally:
                if distributed_lock is not None:
                    self._release(distributed_lock)
        finally:
            self.cycle_lock.release()

    def _reconcile(self, now: datetime) -> CycleResult:
        result = CycleResult()
        logger.info("Processing scheduled redirects", extra={"now": now.isoformat()})

        for record in self.repo.list_due_for_activation(now):
            if self._process(record, self.orchestrator.activate, result):
                result.activated += 1

        for record in self.repo.list_due_for_completion(now):
            if self._process(record, self.orchestrator.deactivate, result):
                result.completed += 1

        logger.info(
            "Scheduled redirects processed",
            extra={
                "activated": result.activated,
                "completed": result.completed,
                "failed": result.failed,
            },
        )
        return result

    def _process(self, record: ScheduledRedirect, step, result: CycleResult) -> bool:
        redirect_id = record.id
        try:
            step(record)
            return True
        except Exception as e:
            self.db.rollback()
            self.appchat_db.rollback()
            result.failed += 1
            result.errors[redirect_id] = str(e)
            logger.error(
                f"Failed to process scheduled redirect: {e}",
                extra={"redirect_id": redirect_id, "step": step.__name__},
                exc_info=True,
            )
            return False

    @staticmethod
    def _release(lock) -> None:
        try:
            if lock.owned():
                lock.release()
        except redis.RedisError as e:
            logger.warning(f"Could not release reconciliation lock: {e}")
