"""
Redirect Repositories

Repository pattern for the two databases the redirect engine touches:
- RedirectRepository: scheduled_redirects (backoffice DB, owned)
- AppChatRepository: accounts, chats, chats_tags (app-chat DB, consumed)

Repositories flush but never commit; services own the transaction boundaries.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from basecore.clock import utcnow
from chat_redirects.errors import ConflictError
from chat_redirects.persistence.appchat import Account, Chat, ChatTag
from chat_redirects.persistence.models import (
    ALLOWED_TRANSITIONS,
    RedirectStatus,
    ScheduledRedirect,
)

NON_TERMINAL_STATUSES = (RedirectStatus.SCHEDULED, RedirectStatus.ACTIVE)


class RedirectRepository:
    """Repository for scheduled redirect records."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        source_user_id: str,
        destination_user_id: str,
        sector_code: str,
        start_date: datetime,
        end_date: datetime | None = None,
    ) -> ScheduledRedirect:
        """Create a new record in status SCHEDULED."""
        record = ScheduledRedirect(
            source_user_id=source_user_id,
            destination_user_id=destination_user_id,
            sector_code=sector_code,
            start_date=start_date,
            end_date=end_date,
            status=RedirectStatus.SCHEDULED.value,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get(self, redirect_id: str) -> ScheduledRedirect | None:
        """Get a record by ID."""
        return (
            self.db.query(ScheduledRedirect)
            .filter(ScheduledRedirect.id == redirect_id)
            .first()
        )

    def list_by_status(
        self,
        statuses: tuple[RedirectStatus, ...] = NON_TERMINAL_STATUSES,
    ) -> list[ScheduledRedirect]:
        """List records in the given statuses, earliest start first."""
        return (
            self.db.query(ScheduledRedirect)
            .filter(ScheduledRedirect.status.in_([s.value for s in statuses]))
            .order_by(ScheduledRedirect.start_date.asc())
            .all()
        )

    def list_due_for_activation(self, now: datetime) -> list[ScheduledRedirect]:
        """SCHEDULED records whose start date has been reached."""
        return (
            self.db.query(ScheduledRedirect)
            .filter(
                ScheduledRedirect.status == RedirectStatus.SCHEDULED.value,
                ScheduledRedirect.start_date <= now,
            )
            .order_by(ScheduledRedirect.start_date.asc())
            .all()
        )

    def list_due_for_completion(self, now: datetime) -> list[ScheduledRedirect]:
        """ACTIVE records with an end date that has passed. Open-ended records never match."""
        return (
            self.db.query(ScheduledRedirect)
            .filter(
                ScheduledRedirect.status == RedirectStatus.ACTIVE.value,
                ScheduledRedirect.end_date.isnot(None),
                ScheduledRedirect.end_date <= now,
            )
            .order_by(ScheduledRedirect.end_date.asc())
            .all()
        )

    def find_duplicate(
        self,
        source_user_id: str,
        destination_user_id: str,
        sector_code: str,
        start_date: datetime,
    ) -> ScheduledRedirect | None:
        """Find an identical non-terminal record (double submission)."""
        return (
            self.db.query(ScheduledRedirect)
            .filter(
                ScheduledRedirect.source_user_id == source_user_id,
                ScheduledRedirect.destination_user_id == destination_user_id,
                ScheduledRedirect.sector_code == sector_code,
                ScheduledRedirect.start_date == start_date,
                ScheduledRedirect.status.in_([s.value for s in NON_TERMINAL_STATUSES]),
            )
            .first()
        )

    def transition(self, record: ScheduledRedirect, new_status: RedirectStatus) -> None:
        """
        Move a record to a new status.

        Raises:
            ConflictError: if the move is not allowed by the lifecycle
        """
        current = record.lifecycle
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise ConflictError(
                f"Redirect {record.id} cannot move from {current.value} to {new_status.value}",
                code="ILLEGAL_TRANSITION",
                details={"from": current.value, "to": new_status.value},
            )
        record.status = new_status.value
        record.updated_at = utcnow()
        self.db.flush()

    def set_end_date(self, record: ScheduledRedirect, end_date: datetime | None) -> None:
        """Update the end date; callers validate ordering."""
        record.end_date = end_date
        record.updated_at = utcnow()
        self.db.flush()


class AppChatRepository:
    """Repository for chat-platform accounts, chats and tags."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Chats
    # =========================================================================

    def user_has_chats(self, user_id: str) -> bool:
        """Check if the user owns at least one chat."""
        return (
            self.db.query(Chat.id).filter(Chat.user_id == user_id).first()
            is not None
        )

    def reassign_chats(
        self,
        source_user_id: str,
        destination_user_id: str,
        sector_code: str | None = None,
    ) -> int:
        """
        Move chat ownership in bulk.

        Tags of the affected chats are deleted first; they are meaningless once
        the owner changes. Matching zero rows is a no-op.

        Args:
            source_user_id: Current owner
            destination_user_id: New owner
            sector_code: Restrict to chats of this sector (all chats when None)

        Returns:
            Number of chats updated
        """
        criteria = [Chat.user_id == source_user_id]
        if sector_code is not None:
            criteria.append(Chat.sector_code == sector_code)

        chat_ids = select(Chat.id).where(*criteria)

        (
            self.db.query(ChatTag)
            .filter(ChatTag.chat_id.in_(chat_ids))
            .delete(synchronize_session=False)
        )

        updated = (
            self.db.query(Chat)
            .filter(*criteria)
            .update({Chat.user_id: destination_user_id}, synchronize_session=False)
        )
        self.db.flush()
        return updated

    # =========================================================================
    # Accounts
    # =========================================================================

    def get_account(self, account_id: str) -> Account | None:
        """Get account by ID."""
        return self.db.query(Account).filter(Account.id == account_id).first()

    def list_accounts(self) -> list[Account]:
        """All accounts, ordered by ID."""
        return self.db.query(Account).order_by(Account.id.asc()).all()

    def find_account_by_group(self, group_id: str) -> Account | None:
        """
        First account whose allowed groups contain the group.

        The accounts table is small, so membership is checked in Python
        to stay portable across the ARRAY and JSON column variants.
        """
        for account in self.list_accounts():
            if group_id in (account.allowed_groups or []):
                return account
        return None

    def get_override(self, account: Account, sector_code: str) -> str | None:
        """Current destination of the sector override, if any, as a string."""
        current = account.overrides.get(sector_code)
        return str(current) if current is not None else None

    def set_override(self, account: Account, sector_code: str, destination_user_id: str) -> str | None:
        """
        Install a sector override, replacing whatever was there.

        Returns:
            The previous destination for the sector, if any
        """
        overrides = account.overrides
        previous = overrides.get(sector_code)
        overrides[sector_code] = destination_user_id
        account.replace_overrides(overrides)
        self.db.flush()
        return previous

    def remove_override(
        self,
        account: Account,
        sector_code: str,
        expected_destination: str | None = None,
    ) -> str | None:
        """
        Remove a sector override.

        When expected_destination is given, the entry is only removed if it
        still points there.

        Returns:
            The removed destination, or None if nothing was removed
        """
        overrides = account.overrides
        current = overrides.get(sector_code)
        if current is None:
            return None
        if expected_destination is not None and str(current) != expected_destination:
            return None

        del overrides[sector_code]
        account.replace_overrides(overrides)
        self.db.flush()
        return str(current)
