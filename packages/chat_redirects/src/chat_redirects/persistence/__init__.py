"""
Redirect Persistence

SQLAlchemy models and repositories.
scheduled_redirects is OWNED by the backoffice; accounts/chats/chats_tags belong
to the chat platform and are only read and mutated here.
"""

from chat_redirects.persistence.appchat import Account, AppChatBase, Chat, ChatTag
from chat_redirects.persistence.models import (
    BackofficeBase,
    RedirectStatus,
    ScheduledRedirect,
)
from chat_redirects.persistence.repo import AppChatRepository, RedirectRepository

__all__ = [
    "Account",
    "AppChatBase",
    "AppChatRepository",
    "BackofficeBase",
    "Chat",
    "ChatTag",
    "RedirectRepository",
    "RedirectStatus",
    "ScheduledRedirect",
]
