"""
Directory Gateway Base

Abstract interface for the external user directory.
Implementations: VDI core-users API, Stub (for development and tests).
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


class DirectoryError(Exception):
    """Error talking to the user directory (anything other than "not found")."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.retryable = retryable


@dataclass
class DirectoryGroup:
    id: str
    name: str = ""


@dataclass
class DirectorySector:
    code: str
    name: str = ""


@dataclass
class DirectoryUser:
    """
    A user profile with its group and sector memberships.

    The first group and first sector are the user's primary ones; routing
    decisions are made on those.
    """

    id: str
    name: str = ""
    email: str = ""
    active: bool = True
    groups: list[DirectoryGroup] = field(default_factory=list)
    sectors: list[DirectorySector] = field(default_factory=list)
    profiles: list[dict[str, Any]] = field(default_factory=list)

    @property
    def primary_group(self) -> DirectoryGroup | None:
        return self.groups[0] if self.groups else None

    @property
    def primary_sector(self) -> DirectorySector | None:
        return self.sectors[0] if self.sectors else None

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def belongs_to_sector(self, sector_code: str) -> bool:
        return any(sector.code == sector_code for sector in self.sectors)

    def sector_name(self, sector_code: str) -> str | None:
        for sector in self.sectors:
            if sector.code == sector_code:
                return sector.name or None
        return None


@dataclass
class UserSummary:
    """A user as returned by directory listings (no memberships)."""

    id: str
    name: str = ""
    email: str = ""
    active: bool = True


@dataclass
class UserPage:
    """One page of a directory listing."""

    users: list[UserSummary]
    next_cursor: str | None = None
    previous_cursor: str | None = None
    per_page: int = 25

    @property
    def has_next_page(self) -> bool:
        return self.next_cursor is not None


class DirectoryGateway(ABC):
    """
    Abstract interface for the user directory.

    Implementations must:
    - Return None (not raise) for unknown users
    - Raise DirectoryError for transport/server failures
    - Bound every remote call with a timeout
    """

    @abstractmethod
    def get_user(self, user_id: str) -> DirectoryUser | None:
        """
        Resolve a user profile.

        Args:
            user_id: Opaque directory user ID

        Returns:
            DirectoryUser, or None if the directory does not know the user
        """
        ...

    @abstractmethod
    def list_users(
        self,
        filter: str | None = None,
        per_page: int = 25,
        cursor: str | None = None,
    ) -> UserPage:
        """
        List users, one page at a time.

        Args:
            filter: Free-text filter (name/email)
            per_page: Page size
            cursor: Cursor returned by a previous page

        Returns:
            UserPage
        """
        ...

    @abstractmethod
    def user_has_application(self, user_id: str, app_id: str) -> bool:
        """
        Check whether the user's messaging-application identity matches app_id.

        Guards against routing chats into an account the user is not
        provisioned for.
        """
        ...

    def iter_users(self, per_page: int = 100) -> Iterator[UserSummary]:
        """Iterate over every user, following cursors."""
        cursor = None
        while True:
            page = self.list_users(per_page=per_page, cursor=cursor)
            yield from page.users
            if not page.has_next_page:
                return
            cursor = page.next_cursor

    def close(self) -> None:
        """Release resources (no-op by default)."""
