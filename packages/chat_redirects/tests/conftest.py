"""
Pytest fixtures for chat redirect tests.

Both databases (backoffice and app-chat) live in one in-memory SQLite engine
and share a single session, so a test sees every write immediately.
"""

import threading
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chat_redirects.directory import SectorOwnerIndex, StubDirectoryGateway
from chat_redirects.persistence import Account, AppChatBase, BackofficeBase, Chat, ChatTag
from chat_redirects.service import RedirectOrchestrator, RedirectReconciler


class MutableClock:
    """Test clock; call it to read "now", move it with advance()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    """In-memory SQLite engine with every table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    BackofficeBase.metadata.create_all(bind=engine)
    AppChatBase.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    """Session used for both the backoffice and the app-chat database."""
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return MutableClock(datetime(2026, 3, 2, 12, 0, 0))


@pytest.fixture
def directory():
    """
    Stub directory.

    - agent-ana, agent-bruno: sales group, sector SEC-01, provisioned for app-sales
    - agent-carla: sales group, sector SEC-02, not provisioned
    - agent-orphan: no group, no sector
    - agent-lost: group with no account
    """
    stub = StubDirectoryGateway()
    stub.add_user("agent-ana", "Ana Souza", groups=["grp-sales"], sectors=[("SEC-01", "Vendas")])
    stub.add_user("agent-bruno", "Bruno Lima", groups=["grp-sales"], sectors=[("SEC-01", "Vendas")])
    stub.add_user("agent-carla", "Carla Dias", groups=["grp-sales"], sectors=[("SEC-02", "Suporte")])
    stub.add_user("agent-orphan", "Orphan")
    stub.add_user("agent-lost", "Lost", groups=["grp-unknown"], sectors=[("SEC-09", "Sem conta")])
    stub.grant_application("agent-ana", "app-sales")
    stub.grant_application("agent-bruno", "app-sales")
    return stub


@pytest.fixture
def account(db):
    """Sales account with one pre-existing override for another sector."""
    account = Account(
        id="acc-sales",
        app_id="app-sales",
        allowed_groups=["grp-sales"],
        pool={"config": {"overrides": {"SEC-07": "agent-zeca"}, "strategy": "round_robin"}},
    )
    db.add(account)
    db.commit()
    return account


@pytest.fixture
def chats(db):
    """Ana owns two SEC-01 chats (one tagged) and one SEC-02 chat."""
    rows = [
        Chat(id="chat-1", user_id="agent-ana", contact_id="contact-1", sector_code="SEC-01"),
        Chat(id="chat-2", user_id="agent-ana", contact_id="contact-2", sector_code="SEC-01"),
        Chat(id="chat-3", user_id="agent-ana", contact_id="contact-3", sector_code="SEC-02"),
    ]
    db.add_all(rows)
    db.flush()
    db.add_all([
        ChatTag(chat_id="chat-1", tag_id="tag-vip"),
        ChatTag(chat_id="chat-1", tag_id="tag-followup"),
    ])
    db.commit()
    return rows


@pytest.fixture
def sector_index(directory):
    return SectorOwnerIndex(directory, ttl_seconds=600)


@pytest.fixture
def orchestrator(db, directory, clock, sector_index):
    return RedirectOrchestrator(db, db, directory, clock=clock, sector_index=sector_index)


@pytest.fixture
def reconciler(db, directory, clock, orchestrator):
    return RedirectReconciler(
        db,
        db,
        directory,
        clock=clock,
        cycle_lock=threading.Lock(),
        orchestrator=orchestrator,
    )


@pytest.fixture
def owner_of(db):
    """Read a chat's current owner fresh from the database."""

    def read(chat_id: str) -> str:
        db.expire_all()
        return db.get(Chat, chat_id).user_id

    return read


@pytest.fixture
def overrides(db):
    """Read an account's override map fresh from the database."""

    def read(account_id: str = "acc-sales") -> dict[str, str]:
        db.expire_all()
        return db.get(Account, account_id).overrides

    return read
