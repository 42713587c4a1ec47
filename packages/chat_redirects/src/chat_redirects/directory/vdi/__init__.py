"""VDI core-users directory gateway."""

from chat_redirects.directory.vdi.client import VdiDirectoryGateway, parse_user, parse_user_page

__all__ = [
    "VdiDirectoryGateway",
    "parse_user",
    "parse_user_page",
]
