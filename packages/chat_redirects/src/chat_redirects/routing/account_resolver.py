"""
Account Resolver

Resolves which routing account a user belongs to (through group membership)
and finds accounts currently holding a given sector override.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from chat_redirects.directory.base import DirectoryGateway, DirectoryUser
from chat_redirects.errors import NotFoundError
from chat_redirects.persistence.appchat import Account
from chat_redirects.persistence.repo import AppChatRepository

logger = logging.getLogger(__name__)


@dataclass
class OverrideEntry:
    """A live sector override inside an account's pool config."""

    account_id: str
    sector_code: str
    destination_user_id: str

    @property
    def key(self) -> str:
        """Composite key used to address the override from the outside."""
        return f"{self.sector_code}:{self.destination_user_id}"


class AccountResolver:
    """
    Resolves routing accounts.

    Uses the user's primary group to look up the account whose allowed
    groups contain it.
    """

    def __init__(self, db: Session, directory: DirectoryGateway):
        self.db = db
        self.repo = AppChatRepository(db)
        self.directory = directory

    def resolve_by_group(self, group_id: str) -> Account | None:
        """
        Resolve the account owning a group.

        Args:
            group_id: Directory group ID

        Returns:
            Account if found, None otherwise
        """
        account = self.repo.find_account_by_group(group_id)

        if account:
            logger.debug(
                f"Resolved account from group",
                extra={"group_id": group_id, "account_id": account.id},
            )
        else:
            logger.warning(f"No account found for group: {group_id}")

        return account

    def require_account_for_user(self, user: DirectoryUser) -> Account:
        """
        Resolve the account for a user's primary group.

        Raises:
            NotFoundError: if the user has no group or no account holds it
        """
        group = user.primary_group
        if group is None:
            raise NotFoundError(
                f"User {user.id} has no group membership",
                code="USER_WITHOUT_GROUP",
                details={"user_id": user.id},
            )

        account = self.resolve_by_group(group.id)
        if account is None:
            raise NotFoundError(
                f"No account found for group {group.id}",
                code="ACCOUNT_NOT_FOUND",
                details={"group_id": group.id, "user_id": user.id},
            )
        return account

    def ensure_application(self, user: DirectoryUser, account: Account) -> None:
        """
        Verify the user is provisioned for the account's messaging application.

        Raises:
            NotFoundError: on application mismatch
        """
        if not self.directory.user_has_application(user.id, account.app_id):
            raise NotFoundError(
                f"User {user.id} is not provisioned for application {account.app_id} "
                f"of account {account.id}",
                code="APPLICATION_MISMATCH",
                details={"user_id": user.id, "account_id": account.id, "app_id": account.app_id},
            )

    def list_overrides(self) -> list[OverrideEntry]:
        """Every sector override across all accounts."""
        entries = []
        for account in self.repo.list_accounts():
            for sector_code, destination_user_id in sorted(account.overrides.items()):
                entries.append(
                    OverrideEntry(
                        account_id=account.id,
                        sector_code=sector_code,
                        destination_user_id=str(destination_user_id),
                    )
                )
        return entries

    def find_override_holder(self, sector_code: str, destination_user_id: str) -> Account | None:
        """
        Find the account whose override for the sector points exactly at the destination.

        Returns:
            Account, or None if no account holds that exact value
        """
        for account in self.repo.list_accounts():
            if self.repo.get_override(account, sector_code) == destination_user_id:
                return account
        return None
