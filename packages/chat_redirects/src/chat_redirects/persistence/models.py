"""
Backoffice Database Models

Tables owned by the backoffice.

Tables:
- scheduled_redirects: durable intent to move a sector's chats for a time window
"""

from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.orm import declarative_base

from basecore.clock import utcnow

BackofficeBase = declarative_base()


class RedirectStatus(str, Enum):
    """Lifecycle of a scheduled redirect."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (RedirectStatus.COMPLETED, RedirectStatus.CANCELLED)


# Allowed lifecycle moves; terminal states have none.
ALLOWED_TRANSITIONS: dict[RedirectStatus, frozenset[RedirectStatus]] = {
    RedirectStatus.SCHEDULED: frozenset({RedirectStatus.ACTIVE, RedirectStatus.CANCELLED}),
    RedirectStatus.ACTIVE: frozenset({RedirectStatus.COMPLETED}),
    RedirectStatus.COMPLETED: frozenset(),
    RedirectStatus.CANCELLED: frozenset(),
}


class ScheduledRedirect(BackofficeBase):
    """
    A sector redirect from one agent to another over a time window.

    end_date = None means open-ended: active until explicitly cancelled.
    Rows are never deleted; status is the only removal signal.
    """

    __tablename__ = "scheduled_redirects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    source_user_id = Column(Text, nullable=False)
    destination_user_id = Column(Text, nullable=False)
    sector_code = Column(Text, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    status = Column(String(20), nullable=False, default=RedirectStatus.SCHEDULED.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_scheduled_redirects_status_start", "status", "start_date"),
        Index("idx_scheduled_redirects_status_end", "status", "end_date"),
    )

    @property
    def lifecycle(self) -> RedirectStatus:
        return RedirectStatus(self.status)

    def __repr__(self) -> str:
        return (
            f"<ScheduledRedirect {self.id} {self.sector_code} "
            f"{self.source_user_id}->{self.destination_user_id} {self.status}>"
        )
