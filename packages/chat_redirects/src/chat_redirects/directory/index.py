"""
Sector Owner Index

Reverse lookup from sector code to a user who belongs to that sector.

The directory has no "users by sector" query, so the index is built by
walking every user and loading each profile. The result is cached for a
TTL so repeated override removals do not rescan the directory.
"""

import logging
import threading
import time

from chat_redirects.directory.base import DirectoryError, DirectoryGateway

logger = logging.getLogger(__name__)


class SectorOwnerIndex:
    """Cached sector -> [user ids] map built from the directory."""

    def __init__(self, directory: DirectoryGateway, ttl_seconds: int = 600):
        self.directory = directory
        self.ttl_seconds = ttl_seconds
        self._members: dict[str, list[str]] = {}
        self._built_at: float | None = None
        self._lock = threading.Lock()

    @property
    def is_stale(self) -> bool:
        if self._built_at is None:
            return True
        return time.monotonic() - self._built_at > self.ttl_seconds

    def invalidate(self) -> None:
        with self._lock:
            self._built_at = None

    def rebuild(self) -> None:
        """Scan the directory and rebuild the index."""
        members: dict[str, list[str]] = {}
        scanned = 0

        for summary in self.directory.iter_users():
            scanned += 1
            try:
                user = self.directory.get_user(summary.id)
            except DirectoryError as e:
                logger.warning(f"Skipping user {summary.id} while indexing sectors: {e}")
                continue
            if user is None:
                continue
            for sector in user.sectors:
                members.setdefault(sector.code, []).append(user.id)

        self._members = members
        self._built_at = time.monotonic()

        logger.info(
            f"Sector owner index rebuilt",
            extra={"users_scanned": scanned, "sectors": len(members)},
        )

    def find_owner(self, sector_code: str, exclude: set[str] | None = None) -> str | None:
        """
        First user belonging to the sector, skipping excluded IDs.

        Returns:
            User ID, or None if nobody (else) belongs to the sector
        """
        with self._lock:
            if self.is_stale:
                self.rebuild()
            candidates = list(self._members.get(sector_code, []))

        exclude = exclude or set()
        for user_id in candidates:
            if user_id not in exclude:
                return user_id
        return None
