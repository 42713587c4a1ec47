"""
App-Chat Database Models

Tables owned by the chat platform. The backoffice reads and mutates them but
never creates or migrates them.

Tables:
- accounts: routing boundary; allowed groups + pool config holding sector overrides
- chats: conversations with their owning agent and sector
- chats_tags: conversation-scoped tags
"""

from typing import Any

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import declarative_base, relationship

from basecore.clock import utcnow

AppChatBase = declarative_base()

# Portable column types: native types on PostgreSQL, JSON elsewhere.
GroupList = JSON().with_variant(ARRAY(Text), "postgresql")
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class Account(AppChatBase):
    """
    A routing account.

    pool["config"]["overrides"] maps sector code -> destination user id and is
    the live table consulted when new chats are assigned.
    """

    __tablename__ = "accounts"

    id = Column(Text, primary_key=True)
    app_id = Column(Text, nullable=False)
    allowed_groups = Column(GroupList, nullable=True, default=list)
    pool = Column(JSONDocument, nullable=False, default=dict)
    session_timeout = Column(Integer, nullable=False, default=600)

    @property
    def overrides(self) -> dict[str, str]:
        """Copy of the sector override map (empty if the pool has none)."""
        config = (self.pool or {}).get("config") or {}
        return dict(config.get("overrides") or {})

    def replace_overrides(self, overrides: dict[str, str]) -> None:
        """Write a new override map; assigns a fresh dict so the change is flushed."""
        pool: dict[str, Any] = dict(self.pool or {})
        config = dict(pool.get("config") or {})
        config["overrides"] = dict(overrides)
        pool["config"] = config
        self.pool = pool

    def __repr__(self) -> str:
        return f"<Account {self.id} app={self.app_id}>"


class Chat(AppChatBase):
    """A conversation owned by one agent."""

    __tablename__ = "chats"

    id = Column(Text, primary_key=True)
    user_id = Column(Text, nullable=False)
    contact_id = Column(Text, nullable=False)
    sector_code = Column(Text, nullable=True)

    tags = relationship("ChatTag", back_populates="chat")

    __table_args__ = (
        Index("idx_chats_user_sector", "user_id", "sector_code"),
    )


class ChatTag(AppChatBase):
    """Tag attached to a chat; dropped whenever the chat changes owner."""

    __tablename__ = "chats_tags"

    chat_id = Column(Text, ForeignKey("chats.id"), primary_key=True)
    tag_id = Column(Text, primary_key=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    chat = relationship("Chat", back_populates="tags")
