"""
Stub Directory Gateway

In-memory directory for local development and tests.
No network calls; users and application grants are registered up front.
"""

import logging

from chat_redirects.directory.base import (
    DirectoryError,
    DirectoryGateway,
    DirectoryGroup,
    DirectorySector,
    DirectoryUser,
    UserPage,
    UserSummary,
)

logger = logging.getLogger(__name__)


class StubDirectoryGateway(DirectoryGateway):
    """
    Stub directory for development and testing.

    - Users are added with add_user()
    - Application grants are added with grant_application()
    - Individual users can be made to fail, to exercise error isolation
    """

    def __init__(self):
        self.users: dict[str, DirectoryUser] = {}
        self.applications: dict[str, set[str]] = {}
        self.failing_user_ids: set[str] = set()
        self.get_user_calls: list[str] = []

    def add_user(
        self,
        user_id: str,
        name: str = "",
        groups: list[str] | None = None,
        sectors: list[tuple[str, str]] | None = None,
        email: str = "",
        active: bool = True,
    ) -> DirectoryUser:
        """
        Register a user.

        Args:
            user_id: User ID
            name: Display name
            groups: Group IDs, primary first
            sectors: (code, name) pairs, primary first
        """
        user = DirectoryUser(
            id=user_id,
            name=name,
            email=email,
            active=active,
            groups=[DirectoryGroup(id=group_id) for group_id in groups or []],
            sectors=[DirectorySector(code=code, name=label) for code, label in sectors or []],
        )
        self.users[user_id] = user
        return user

    def remove_user(self, user_id: str) -> None:
        self.users.pop(user_id, None)

    def grant_application(self, user_id: str, app_id: str) -> None:
        self.applications.setdefault(user_id, set()).add(app_id)

    def fail_for(self, user_id: str) -> None:
        """Make every lookup of this user raise DirectoryError."""
        self.failing_user_ids.add(user_id)

    def get_user(self, user_id: str) -> DirectoryUser | None:
        self.get_user_calls.append(user_id)
        if user_id in self.failing_user_ids:
            raise DirectoryError(f"[STUB] Simulated failure for user {user_id}", code="STUB_FAILURE")

        user = self.users.get(user_id)
        logger.debug(f"[STUB] get_user", extra={"user_id": user_id, "found": user is not None})
        return user

    def list_users(
        self,
        filter: str | None = None,
        per_page: int = 25,
        cursor: str | None = None,
    ) -> UserPage:
        matches = [
            user
            for user in sorted(self.users.values(), key=lambda u: u.id)
            if not filter
            or filter.lower() in user.name.lower()
            or filter.lower() in user.email.lower()
        ]

        offset = int(cursor) if cursor else 0
        chunk = matches[offset : offset + per_page]
        next_offset = offset + per_page

        return UserPage(
            users=[
                UserSummary(id=user.id, name=user.name, email=user.email, active=user.active)
                for user in chunk
            ],
            next_cursor=str(next_offset) if next_offset < len(matches) else None,
            previous_cursor=str(max(offset - per_page, 0)) if offset > 0 else None,
            per_page=per_page,
        )

    def user_has_application(self, user_id: str, app_id: str) -> bool:
        return app_id in self.applications.get(user_id, set())
