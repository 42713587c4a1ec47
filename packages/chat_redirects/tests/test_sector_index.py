"""
Tests for the sector owner index.
"""

from chat_redirects.directory import SectorOwnerIndex


class TestSectorOwnerIndex:
    """Tests for the cached reverse sector lookup."""

    def test_find_owner(self, directory):
        index = SectorOwnerIndex(directory)

        assert index.find_owner("SEC-01") == "agent-ana"
        assert index.find_owner("SEC-01", exclude={"agent-ana"}) == "agent-bruno"
        assert index.find_owner("SEC-01", exclude={"agent-ana", "agent-bruno"}) is None
        assert index.find_owner("SEC-404") is None

    def test_cached_until_invalidated(self, directory):
        """Test the directory is scanned once per TTL."""
        index = SectorOwnerIndex(directory, ttl_seconds=600)
        index.find_owner("SEC-01")
        directory.add_user("agent-aaron", "Aaron", groups=["grp-sales"], sectors=[("SEC-01", "Vendas")])
        directory.get_user_calls.clear()

        assert index.find_owner("SEC-01") == "agent-ana"
        assert directory.get_user_calls == []

        index.invalidate()
        assert index.find_owner("SEC-01") == "agent-aaron"

    def test_zero_ttl_always_rebuilds(self, directory):
        index = SectorOwnerIndex(directory, ttl_seconds=-1)
        index.find_owner("SEC-02")
        directory.remove_user("agent-carla")

        assert index.find_owner("SEC-02") is None

    def test_skips_failing_users(self, directory):
        """Test one failing profile does not break the index."""
        directory.fail_for("agent-ana")
        index = SectorOwnerIndex(directory)

        assert index.find_owner("SEC-01") == "agent-bruno"
