"""
Redirect Orchestrator

Moves ownership of a sector's chats from one agent to another:
1. Immediately (reassign existing chats + install a sector override)
2. Over a scheduled window (persist a record; the reconciler activates and
   deactivates it through activate() / deactivate())

The backoffice DB (records) and the app-chat DB (accounts, chats) are not
covered by one transaction. Every step commits on its own and is safe to
repeat: re-installing the same override replaces the value, and a bulk
reassignment that matches no rows does nothing.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from basecore.clock import Clock, as_utc_naive, utcnow
from basecore.settings import get_settings
from chat_redirects.contracts.refs import ScheduledRedirectRef, parse_redirect_ref
from chat_redirects.contracts.schemas import RedirectSummary
from chat_redirects.directory.base import DirectoryError, DirectoryGateway, DirectoryUser, UserPage
from chat_redirects.directory.index import SectorOwnerIndex
from chat_redirects.errors import BadRequestError, ConflictError, NotFoundError
from chat_redirects.persistence.models import RedirectStatus, ScheduledRedirect
from chat_redirects.persistence.repo import (
    NON_TERMINAL_STATUSES,
    AppChatRepository,
    RedirectRepository,
)
from chat_redirects.routing.account_resolver import AccountResolver, OverrideEntry

logger = logging.getLogger(__name__)


class RedirectOrchestrator:
    """
    Entry point for every redirect operation.

    Args:
        db: Backoffice session (scheduled_redirects)
        appchat_db: App-chat session (accounts, chats, chats_tags)
        directory: User directory gateway
        clock: Returns "now" as naive UTC
        sector_index: Reverse sector lookup used when an override is removed
    """

    def __init__(
        self,
        db: Session,
        appchat_db: Session,
        directory: DirectoryGateway,
        clock: Clock = utcnow,
        sector_index: SectorOwnerIndex | None = None,
    ):
        self.db = db
        self.appchat_db = appchat_db
        self.directory = directory
        self.clock = clock
        self.redirects = RedirectRepository(db)
        self.chats = AppChatRepository(appchat_db)
        self.accounts = AccountResolver(appchat_db, directory)
        self.sector_index = sector_index or SectorOwnerIndex(
            directory, ttl_seconds=get_settings().SECTOR_INDEX_TTL_SEC
        )

    # =========================================================================
    # Immediate redirect
    # =========================================================================

    def redirect_immediately(self, source_user_id: str, destination_user_id: str) -> dict[str, str]:
        """
        Redirect a user's chats right now.

        Existing chats (and their tags) move first and are committed; the
        account lookup and application check come after, so a failure there
        leaves the chats with the destination.

        Raises:
            NotFoundError: source without sector/group, unknown destination,
                no account for the source's group, or application mismatch
        """
        source = self._require_user(source_user_id)
        if source.primary_sector is None or source.primary_group is None:
            raise NotFoundError(
                f"User {source_user_id} has no valid sector or group membership",
                code="SOURCE_WITHOUT_MEMBERSHIP",
                details={"user_id": source_user_id},
            )
        destination = self._require_user(destination_user_id)

        if self.chats.user_has_chats(source.id):
            moved = self.chats.reassign_chats(source.id, destination.id)
            self.appchat_db.commit()
            logger.info(
                f"Existing chats redirected",
                extra={
                    "source_user_id": source.id,
                    "destination_user_id": destination.id,
                    "chats_moved": moved,
                },
            )
        else:
            logger.warning(f"Source user {source.id} has no chats to redirect")

        account = self.accounts.require_account_for_user(source)
        self.accounts.ensure_application(source, account)

        sector_code = source.primary_sector.code
        previous = self.chats.set_override(account, sector_code, destination.id)
        self.appchat_db.commit()

        logger.info(
            f"Sector override installed",
            extra={
                "account_id": account.id,
                "sector_code": sector_code,
                "destination_user_id": destination.id,
                "previous_destination": previous,
            },
        )

        return {"message": f"Chats of {source.id} redirected to {destination.id}."}

    # =========================================================================
    # Scheduled redirects
    # =========================================================================

    def create_scheduled_redirect(
        self,
        source_user_id: str,
        destination_user_id: str,
        sector_code: str,
        start_date: datetime,
        end_date: datetime | None = None,
    ) -> ScheduledRedirect:
        """
        Persist a redirect to be activated by the reconciler.

        No routing or chat changes happen here.

        Raises:
            NotFoundError: if either user is unknown to the directory
            BadRequestError: start in the past, end not after start, same
                source and destination, empty sector
            ConflictError: an identical record is already scheduled or active
        """
        self._require_user(source_user_id)
        self._require_user(destination_user_id)

        sector_code = (sector_code or "").strip()
        if not sector_code:
            raise BadRequestError("Sector code is required", code="EMPTY_SECTOR")
        if source_user_id == destination_user_id:
            raise BadRequestError(
                "Source and destination must be different users",
                code="SAME_USER",
                details={"user_id": source_user_id},
            )

        start_date = as_utc_naive(start_date)
        end_date = as_utc_naive(end_date) if end_date is not None else None

        if start_date < self.clock():
            raise BadRequestError(
                "Start date cannot be in the past",
                code="START_DATE_IN_PAST",
                details={"start_date": start_date.isoformat()},
            )
        self._validate_end_date(start_date, end_date)

        duplicate = self.redirects.find_duplicate(
            source_user_id, destination_user_id, sector_code, start_date
        )
        if duplicate is not None:
            raise ConflictError(
                f"An identical redirect already exists: {duplicate.id}",
                code="DUPLICATE_REDIRECT",
                details={"redirect_id": duplicate.id},
            )

        record = self.redirects.create(
            source_user_id=source_user_id,
            destination_user_id=destination_user_id,
            sector_code=sector_code,
            start_date=start_date,
            end_date=end_date,
        )
        self.db.commit()

        logger.info(
            f"Scheduled redirect created",
            extra={
                "redirect_id": record.id,
                "sector_code": sector_code,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat() if end_date else None,
            },
        )
        return record

    def update_end_date(self, redirect_id: str, end_date: datetime) -> ScheduledRedirect:
        """
        Change the end date of a scheduled or active record. Status is unchanged.

        Raises:
            NotFoundError: unknown ID
            ConflictError: record already completed or cancelled
            BadRequestError: end date not after the start date
        """
        record = self._require_record(redirect_id)
        if record.lifecycle.is_terminal:
            raise ConflictError(
                f"Redirect {redirect_id} is {record.status} and can no longer change",
                code="TERMINAL_REDIRECT",
                details={"status": record.status},
            )

        end_date = as_utc_naive(end_date)
        self._validate_end_date(record.start_date, end_date)

        self.redirects.set_end_date(record, end_date)
        self.db.commit()

        logger.info(
            f"Redirect end date updated",
            extra={"redirect_id": record.id, "end_date": end_date.isoformat()},
        )
        return record

    # =========================================================================
    # Removal
    # =========================================================================

    def cancel_or_remove(self, redirect_id: str, scheduled: bool) -> dict[str, str]:
        """
        Remove either a scheduled record or an ad-hoc override.

        Args:
            redirect_id: Record ID, or "sectorCode:destinationUserId" for an override
            scheduled: True if redirect_id is a record ID

        Raises:
            BadRequestError: malformed override key
            NotFoundError: nothing matches
        """
        ref = parse_redirect_ref(redirect_id, scheduled)

        if isinstance(ref, ScheduledRedirectRef):
            record = self.cancel_scheduled_redirect(ref.redirect_id)
            return {"message": f"Redirect {record.id} is {record.status}."}

        entry = self.remove_override(ref.sector_code, ref.destination_user_id)
        return {"message": f"Override {entry.key} removed from account {entry.account_id}."}

    def cancel_scheduled_redirect(self, redirect_id: str) -> ScheduledRedirect:
        """
        Cancel a scheduled record.

        - SCHEDULED: moves to CANCELLED, no routing change (nothing was installed)
        - ACTIVE: ended early through the deactivation sequence, ends COMPLETED
        - COMPLETED / CANCELLED: returned unchanged

        Raises:
            NotFoundError: unknown ID
        """
        record = self._require_record(redirect_id)
        status = record.lifecycle

        if status.is_terminal:
            logger.info(
                f"Redirect already terminal, nothing to cancel",
                extra={"redirect_id": record.id, "status": record.status},
            )
            return record

        if status == RedirectStatus.ACTIVE:
            self.deactivate(record)
            return record

        self.redirects.transition(record, RedirectStatus.CANCELLED)
        self.db.commit()

        logger.info(f"Scheduled redirect cancelled", extra={"redirect_id": record.id})
        return record

    def remove_override(self, sector_code: str, destination_user_id: str) -> OverrideEntry:
        """
        Remove an ad-hoc sector override.

        The destination's chats in the sector are then handed back to another
        member of the sector. That hand-back is best-effort: a failure is
        logged and the override stays removed.

        Raises:
            NotFoundError: no account holds exactly this override
        """
        account = self.accounts.find_override_holder(sector_code, destination_user_id)
        if account is None:
            raise NotFoundError(
                f"No override for sector {sector_code} pointing to {destination_user_id}",
                code="OVERRIDE_NOT_FOUND",
                details={"sector_code": sector_code, "destination_user_id": destination_user_id},
            )

        self.chats.remove_override(account, sector_code, expected_destination=destination_user_id)
        self.appchat_db.commit()

        logger.info(
            f"Sector override removed",
            extra={
                "account_id": account.id,
                "sector_code": sector_code,
                "destination_user_id": destination_user_id,
            },
        )

        self._hand_back_sector_chats(sector_code, destination_user_id)

        return OverrideEntry(
            account_id=account.id,
            sector_code=sector_code,
            destination_user_id=destination_user_id,
        )

    def _hand_back_sector_chats(self, sector_code: str, destination_user_id: str) -> None:
        try:
            owner_id = self.sector_index.find_owner(sector_code, exclude={destination_user_id})
            if owner_id is None:
                logger.warning(
                    f"No sector member found to take chats back",
                    extra={"sector_code": sector_code, "destination_user_id": destination_user_id},
                )
                return

            moved = self.chats.reassign_chats(destination_user_id, owner_id, sector_code)
            self.appchat_db.commit()

            logger.info(
                f"Sector chats handed back",
                extra={
                    "sector_code": sector_code,
                    "from_user_id": destination_user_id,
                    "to_user_id": owner_id,
                    "chats_moved": moved,
                },
            )
        except Exception as e:
            self.appchat_db.rollback()
            logger.error(
                f"Failed to hand back chats after override removal: {e}",
                extra={"sector_code": sector_code, "destination_user_id": destination_user_id},
                exc_info=True,
            )

    # =========================================================================
    # Listing
    # =========================================================================

    def list_all(self) -> list[RedirectSummary]:
        """
        Every redirect currently in effect or pending.

        Ad-hoc overrides come first (status "active"), followed by SCHEDULED
        and ACTIVE records (status "scheduled"). Name lookups are best-effort:
        a user the directory cannot resolve is shown by ID.
        """
        users: dict[str, DirectoryUser | None] = {}
        summaries: list[RedirectSummary] = []

        for entry in self.accounts.list_overrides():
            destination = self._lookup_user(entry.destination_user_id, users)
            summaries.append(
                RedirectSummary(
                    id=entry.key,
                    status="active",
                    sector_code=entry.sector_code,
                    sector_name=entry.sector_code,
                    destination_user_id=entry.destination_user_id,
                    destination_user_name=(
                        destination.display_name if destination else entry.destination_user_id
                    ),
                )
            )

        for record in self.redirects.list_by_status(NON_TERMINAL_STATUSES):
            source = self._lookup_user(record.source_user_id, users)
            destination = self._lookup_user(record.destination_user_id, users)
            sector_name = source.sector_name(record.sector_code) if source else None
            summaries.append(
                RedirectSummary(
                    id=record.id,
                    status="scheduled",
                    record_status=record.status,
                    sector_code=record.sector_code,
                    sector_name=sector_name or record.sector_code,
                    source_user_id=record.source_user_id,
                    source_user_name=source.display_name if source else record.source_user_id,
                    destination_user_id=record.destination_user_id,
                    destination_user_name=(
                        destination.display_name if destination else record.destination_user_id
                    ),
                    start_date=record.start_date,
                    end_date=record.end_date,
                )
            )

        return summaries

    def list_user_sectors(self, user_id: str) -> list[dict[str, str]]:
        """Sectors the user belongs to, as {code, name}."""
        user = self._require_user(user_id)
        return [{"code": sector.code, "name": sector.name} for sector in user.sectors]

    def list_directory_users(
        self,
        filter: str | None = None,
        per_page: int = 25,
        cursor: str | None = None,
    ) -> UserPage:
        """Pass-through to the directory listing."""
        return self.directory.list_users(filter=filter, per_page=per_page, cursor=cursor)

    # =========================================================================
    # Activation / deactivation (driven by the reconciler)
    # =========================================================================

    def activate(self, record: ScheduledRedirect) -> int:
        """
        Put a SCHEDULED record into effect.

        Steps, each committed on its own:
        1. Resolve source and destination
        2. Resolve the source's account and check its application
        3. Move all of the source's chats (tags dropped), as the immediate path does
        4. Install the sector override
        5. Mark the record ACTIVE

        Returns:
            Number of chats moved
        """
        source = self._require_user(record.source_user_id)
        destination = self._require_user(record.destination_user_id)

        account = self.accounts.require_account_for_user(source)
        self.accounts.ensure_application(source, account)

        moved = self.chats.reassign_chats(source.id, destination.id)
        self.appchat_db.commit()

        self.chats.set_override(account, record.sector_code, destination.id)
        self.appchat_db.commit()

        self.redirects.transition(record, RedirectStatus.ACTIVE)
        self.db.commit()

        logger.info(
            f"Redirect activated",
            extra={
                "redirect_id": record.id,
                "account_id": account.id,
                "sector_code": record.sector_code,
                "chats_moved": moved,
            },
        )
        return moved

    def deactivate(self, record: ScheduledRedirect) -> int:
        """
        End an ACTIVE record.

        The override is removed only if it still points at this record's
        destination; a replaced or missing entry is left alone. All of the
        destination's chats in the sector go back to the source, including
        chats that arrived during the window.

        Returns:
            Number of chats moved back
        """
        source = self._require_user(record.source_user_id)
        account = self.accounts.require_account_for_user(source)

        removed = self.chats.remove_override(
            account,
            record.sector_code,
            expected_destination=record.destination_user_id,
        )
        self.appchat_db.commit()
        if removed is None:
            logger.info(
                f"Override already absent or replaced, leaving it",
                extra={"redirect_id": record.id, "sector_code": record.sector_code},
            )

        moved = self.chats.reassign_chats(record.destination_user_id, source.id, record.sector_code)
        self.appchat_db.commit()

        self.redirects.transition(record, RedirectStatus.COMPLETED)
        self.db.commit()

        logger.info(
            f"Redirect completed",
            extra={
                "redirect_id": record.id,
                "account_id": account.id,
                "sector_code": record.sector_code,
                "chats_moved": moved,
            },
        )
        return moved

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_user(self, user_id: str) -> DirectoryUser:
        user = self.directory.get_user(user_id)
        if user is None:
            raise NotFoundError(
                f"User {user_id} not found in directory",
                code="USER_NOT_FOUND",
                details={"user_id": user_id},
            )
        return user

    def _require_record(self, redirect_id: str) -> ScheduledRedirect:
        record = self.redirects.get(redirect_id)
        if record is None:
            raise NotFoundError(
                f"Scheduled redirect {redirect_id} not found",
                code="REDIRECT_NOT_FOUND",
                details={"redirect_id": redirect_id},
            )
        return record

    def _lookup_user(
        self,
        user_id: str,
        cache: dict[str, DirectoryUser | None],
    ) -> DirectoryUser | None:
        if user_id not in cache:
            try:
                cache[user_id] = self.directory.get_user(user_id)
            except DirectoryError as e:
                logger.warning(f"Could not resolve user {user_id} for listing: {e}")
                cache[user_id] = None
        return cache[user_id]

    @staticmethod
    def _validate_end_date(start_date: datetime, end_date: datetime | None) -> None:
        if end_date is not None and end_date <= start_date:
            raise BadRequestError(
                "End date must be after the start date",
                code="INVALID_END_DATE",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
