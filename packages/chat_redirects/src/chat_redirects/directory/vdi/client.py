"""
VDI Directory Gateway

Production gateway for the VDI core-users API.
Every call is bounded by the configured timeout so one unresponsive
directory cannot stall a reconciliation cycle.
"""

import logging
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import httpx

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

T = TypeVar("T")


class VdiDirectoryGateway(DirectoryGateway):
    """
    VDI core-users API client.

    Authentication is a bearer token supplied by configuration.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
                headers=headers,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()

    def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        client = self._get_client()
        try:
            response = client.get(path, params=params)
        except httpx.TimeoutException as e:
            logger.error(f"VDI request timed out: {path}")
            raise DirectoryError(
                f"VDI request timed out: {e}",
                code="TIMEOUT",
                retryable=True,
            ) from e
        except httpx.RequestError as e:
            logger.error(f"VDI request failed: {e}")
            raise DirectoryError(
                f"VDI request failed: {e}",
                code="HTTP_ERROR",
                retryable=True,
            ) from e

        if response.status_code >= 400 and response.status_code != 404:
            raise DirectoryError(
                f"VDI returned {response.status_code} for {path}",
                code=str(response.status_code),
                details={"body": response.text[:500]},
                retryable=response.status_code >= 500,
            )

        return response

    def _decode(self, response: httpx.Response, parser: Callable[[Any], T]) -> T:
        """Parse a response body, turning malformed payloads into DirectoryError."""
        try:
            return parser(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Unexpected VDI payload for {response.url.path}: {e}")
            raise DirectoryError(
                f"Unexpected VDI payload for {response.url.path}: {e}",
                code="BAD_PAYLOAD",
                details={"body": response.text[:500]},
            ) from e

    def get_user(self, user_id: str) -> DirectoryUser | None:
        response = self._get(f"/admin/users/{quote(user_id, safe='')}")
        if response.status_code == 404:
            logger.debug(f"VDI user not found", extra={"user_id": user_id})
            return None
        return self._decode(response, parse_user)

    def list_users(
        self,
        filter: str | None = None,
        per_page: int = 25,
        cursor: str | None = None,
    ) -> UserPage:
        params: dict[str, Any] = {"perPage": per_page}
        if filter:
            params["filter"] = filter
        if cursor:
            params["cursor"] = cursor

        response = self._get("/admin/users", params=params)
        if response.status_code == 404:
            return UserPage(users=[], per_page=per_page)
        return self._decode(response, lambda body: parse_user_page(body, per_page))

    def user_has_application(self, user_id: str, app_id: str) -> bool:
        response = self._get(f"/admin/users/{quote(user_id, safe='')}/applications")
        if response.status_code == 404:
            return False

        app_ids = self._decode(response, parse_application_ids)
        return app_id in app_ids


def parse_user(data: dict[str, Any]) -> DirectoryUser:
    """Convert a VDI user payload into a DirectoryUser."""
    structs = data.get("structs") or {}
    return DirectoryUser(
        id=str(data["id"]),
        name=data.get("name") or "",
        email=data.get("email") or "",
        active=bool(data.get("active", True)),
        groups=[
            DirectoryGroup(id=str(group["id"]), name=group.get("name") or "")
            for group in data.get("groups") or []
        ],
        sectors=[
            DirectorySector(code=str(sector["code"]), name=sector.get("name") or "")
            for sector in structs.get("sectors") or []
        ],
        profiles=list(data.get("profiles") or []),
    )


def parse_application_ids(data: Any) -> set[str]:
    """Application IDs from either a bare list or a {"data": [...]} wrapper."""
    items = data.get("data", []) if isinstance(data, dict) else data
    return {str(item["id"]) for item in items or []}


def parse_user_page(data: dict[str, Any], per_page: int) -> UserPage:
    """Convert a VDI listing payload into a UserPage."""
    meta = data.get("meta") or {}
    return UserPage(
        users=[
            UserSummary(
                id=str(item["id"]),
                name=item.get("name") or "",
                email=item.get("email") or "",
                active=bool(item.get("active", True)),
            )
            for item in data.get("data") or []
        ],
        next_cursor=meta.get("next") if meta.get("hasNextPage") else None,
        previous_cursor=meta.get("previous") if meta.get("hasPrevPage") else None,
        per_page=int(meta.get("perPage") or per_page),
    )
