"""
Tests for redirect and app-chat repositories.
"""

from datetime import datetime, timedelta

import pytest

from chat_redirects.errors import ConflictError
from chat_redirects.persistence import (
    Account,
    AppChatRepository,
    ChatTag,
    RedirectRepository,
    RedirectStatus,
)

NOW = datetime(2026, 3, 2, 12, 0, 0)


@pytest.fixture
def repo(db):
    return RedirectRepository(db)


@pytest.fixture
def appchat(db):
    return AppChatRepository(db)


def make_record(repo, status=RedirectStatus.SCHEDULED, start=NOW, end=None, sector="SEC-01"):
    record = repo.create("agent-ana", "agent-bruno", sector, start, end)
    record.status = status.value
    repo.db.flush()
    return record


class TestRedirectRepository:
    """Tests for scheduled redirect queries and transitions."""

    def test_create_defaults(self, repo):
        """Test new records get an ID, SCHEDULED status and timestamps."""
        record = repo.create("agent-ana", "agent-bruno", "SEC-01", NOW)

        assert len(record.id) == 36
        assert record.status == RedirectStatus.SCHEDULED.value
        assert record.created_at is not None
        assert record.updated_at is not None

    def test_due_for_activation(self, repo):
        """Test only SCHEDULED records with start <= now are due."""
        due = make_record(repo, start=NOW - timedelta(minutes=1))
        on_time = make_record(repo, start=NOW, sector="SEC-02")
        make_record(repo, start=NOW + timedelta(minutes=1), sector="SEC-03")
        make_record(repo, status=RedirectStatus.CANCELLED, start=NOW - timedelta(hours=1), sector="SEC-04")

        assert repo.list_due_for_activation(NOW) == [due, on_time]

    def test_due_for_completion(self, repo):
        """Test only ACTIVE records with a passed end date are due; open-ended never are."""
        expired = make_record(repo, status=RedirectStatus.ACTIVE, start=NOW - timedelta(days=2), end=NOW - timedelta(seconds=1))
        make_record(repo, status=RedirectStatus.ACTIVE, start=NOW - timedelta(days=2), sector="SEC-02")
        make_record(repo, status=RedirectStatus.ACTIVE, start=NOW - timedelta(days=2), end=NOW + timedelta(hours=1), sector="SEC-03")
        make_record(repo, status=RedirectStatus.COMPLETED, start=NOW - timedelta(days=2), end=NOW - timedelta(days=1), sector="SEC-04")

        assert repo.list_due_for_completion(NOW) == [expired]

    def test_list_by_status_excludes_terminal(self, repo):
        """Test the default listing returns SCHEDULED and ACTIVE records only."""
        scheduled = make_record(repo, start=NOW + timedelta(hours=1))
        active = make_record(repo, status=RedirectStatus.ACTIVE, sector="SEC-02")
        make_record(repo, status=RedirectStatus.CANCELLED, sector="SEC-03")
        make_record(repo, status=RedirectStatus.COMPLETED, sector="SEC-04")

        assert set(r.id for r in repo.list_by_status()) == {scheduled.id, active.id}

    def test_find_duplicate_ignores_terminal(self, repo):
        """Test cancelled records are not duplicates."""
        make_record(repo, status=RedirectStatus.CANCELLED)

        assert repo.find_duplicate("agent-ana", "agent-bruno", "SEC-01", NOW) is None

        pending = make_record(repo)
        assert repo.find_duplicate("agent-ana", "agent-bruno", "SEC-01", NOW) == pending

    @pytest.mark.parametrize(
        "current,target",
        [
            (RedirectStatus.SCHEDULED, RedirectStatus.ACTIVE),
            (RedirectStatus.SCHEDULED, RedirectStatus.CANCELLED),
            (RedirectStatus.ACTIVE, RedirectStatus.COMPLETED),
        ],
    )
    def test_allowed_transitions(self, repo, current, target):
        record = make_record(repo, status=current)

        repo.transition(record, target)

        assert record.status == target.value

    @pytest.mark.parametrize(
        "current,target",
        [
            (RedirectStatus.SCHEDULED, RedirectStatus.COMPLETED),
            (RedirectStatus.ACTIVE, RedirectStatus.CANCELLED),
            (RedirectStatus.ACTIVE, RedirectStatus.SCHEDULED),
            (RedirectStatus.COMPLETED, RedirectStatus.ACTIVE),
            (RedirectStatus.CANCELLED, RedirectStatus.SCHEDULED),
            (RedirectStatus.CANCELLED, RedirectStatus.ACTIVE),
        ],
    )
    def test_illegal_transitions(self, repo, current, target):
        """Test terminal states never move and no state moves backwards."""
        record = make_record(repo, status=current)

        with pytest.raises(ConflictError) as exc:
            repo.transition(record, target)

        assert exc.value.code == "ILLEGAL_TRANSITION"
        assert record.status == current.value


class TestAppChatRepository:
    """Tests for chat reassignment and override slots."""

    def test_reassign_all_chats(self, db, appchat, chats, owner_of):
        """Test reassignment without sector moves every chat and drops tags."""
        moved = appchat.reassign_chats("agent-ana", "agent-bruno")

        assert moved == 3
        assert {owner_of(c) for c in ("chat-1", "chat-2", "chat-3")} == {"agent-bruno"}
        assert db.query(ChatTag).count() == 0

    def test_reassign_by_sector(self, db, appchat, chats, owner_of):
        """Test reassignment restricted to a sector leaves other chats and their tags."""
        db.add(ChatTag(chat_id="chat-3", tag_id="tag-keep"))
        db.commit()

        moved = appchat.reassign_chats("agent-ana", "agent-bruno", "SEC-01")

        assert moved == 2
        assert owner_of("chat-3") == "agent-ana"
        assert [t.tag_id for t in db.query(ChatTag).all()] == ["tag-keep"]

    def test_reassign_no_rows(self, appchat, chats):
        """Test matching zero rows is a no-op."""
        assert appchat.reassign_chats("agent-nobody", "agent-bruno") == 0

    def test_user_has_chats(self, appchat, chats):
        assert appchat.user_has_chats("agent-ana") is True
        assert appchat.user_has_chats("agent-bruno") is False

    def test_find_account_by_group(self, db, appchat, account):
        """Test the account is found through its allowed groups."""
        db.add(Account(id="acc-other", app_id="app-other", allowed_groups=["grp-other"], pool={}))
        db.commit()

        assert appchat.find_account_by_group("grp-sales").id == "acc-sales"
        assert appchat.find_account_by_group("grp-other").id == "acc-other"
        assert appchat.find_account_by_group("grp-none") is None

    def test_set_override_returns_previous(self, appchat, account, overrides):
        """Test installing replaces the slot and reports the old value."""
        assert appchat.set_override(account, "SEC-07", "agent-bruno") == "agent-zeca"
        assert appchat.set_override(account, "SEC-01", "agent-bruno") is None
        assert overrides() == {"SEC-07": "agent-bruno", "SEC-01": "agent-bruno"}

    def test_set_override_on_empty_pool(self, db, appchat):
        """Test an account without pool config gets one."""
        bare = Account(id="acc-bare", app_id="app-bare", allowed_groups=[], pool={})
        db.add(bare)
        db.commit()

        appchat.set_override(bare, "SEC-01", "agent-bruno")
        db.commit()

        db.expire_all()
        assert db.get(Account, "acc-bare").pool == {"config": {"overrides": {"SEC-01": "agent-bruno"}}}

    def test_remove_override_checks_expected_destination(self, appchat, account, overrides):
        """Test a mismatched expected destination leaves the slot."""
        assert appchat.remove_override(account, "SEC-07", expected_destination="agent-bruno") is None
        assert overrides()["SEC-07"] == "agent-zeca"

        assert appchat.remove_override(account, "SEC-07", expected_destination="agent-zeca") == "agent-zeca"
        assert overrides() == {}

    def test_remove_missing_override(self, appchat, account):
        assert appchat.remove_override(account, "SEC-99") is None

    def test_pool_config_preserved(self, db, appchat, account):
        """Test other pool keys survive override writes."""
        appchat.set_override(account, "SEC-01", "agent-bruno")
        db.commit()

        db.expire_all()
        assert db.get(Account, "acc-sales").pool["config"]["strategy"] == "round_robin"

    def test_get_override(self, appchat, account):
        assert appchat.get_override(account, "SEC-07") == "agent-zeca"
        assert appchat.get_override(account, "SEC-01") is None
