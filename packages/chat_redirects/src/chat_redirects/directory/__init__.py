"""
User Directory

Gateway implementations for the external user directory.
Supports the VDI core-users API (production) and Stub (development).
"""

from basecore.settings import Settings, get_settings
from chat_redirects.directory.base import (
    DirectoryError,
    DirectoryGateway,
    DirectoryGroup,
    DirectorySector,
    DirectoryUser,
    UserPage,
    UserSummary,
)
from chat_redirects.directory.index import SectorOwnerIndex
from chat_redirects.directory.stub import StubDirectoryGateway
from chat_redirects.directory.vdi import VdiDirectoryGateway


def build_directory_gateway(settings: Settings | None = None) -> DirectoryGateway:
    """Get the directory gateway selected by DIRECTORY_PROVIDER."""
    settings = settings or get_settings()
    if settings.DIRECTORY_PROVIDER == "stub":
        return StubDirectoryGateway()
    return VdiDirectoryGateway(
        base_url=settings.DIRECTORY_BASE_URL,
        token=settings.DIRECTORY_TOKEN,
        timeout=settings.DIRECTORY_TIMEOUT_SEC,
    )


__all__ = [
    "DirectoryError",
    "DirectoryGateway",
    "DirectoryGroup",
    "DirectorySector",
    "DirectoryUser",
    "SectorOwnerIndex",
    "StubDirectoryGateway",
    "UserPage",
    "UserSummary",
    "VdiDirectoryGateway",
    "build_directory_gateway",
]
