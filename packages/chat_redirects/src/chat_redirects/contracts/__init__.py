"""
Redirect Contracts

API models and removal references.
"""

from chat_redirects.contracts.refs import (
    OverrideRef,
    RedirectRef,
    ScheduledRedirectRef,
    parse_override_key,
    parse_redirect_ref,
)
from chat_redirects.contracts.schemas import (
    CreateScheduledRedirectRequest,
    CycleResultResponse,
    DirectoryUsersResponse,
    MessageResponse,
    RedirectChatsRequest,
    RedirectSummary,
    ScheduledRedirectResponse,
    SectorResponse,
    UpdateEndDateRequest,
)

__all__ = [
    "CreateScheduledRedirectRequest",
    "CycleResultResponse",
    "DirectoryUsersResponse",
    "MessageResponse",
    "OverrideRef",
    "RedirectChatsRequest",
    "RedirectRef",
    "RedirectSummary",
    "ScheduledRedirectRef",
    "ScheduledRedirectResponse",
    "SectorResponse",
    "UpdateEndDateRequest",
    "parse_override_key",
    "parse_redirect_ref",
]
