"""
Tests for duplicate delivery suppression.
"""

from gateway.utils.dedup import RecentIds


class TestRecentIds:
    """Bounded LRU of event ids."""

    def test_first_sighting(self):
        ids = RecentIds(capacity=3)
        assert ids.seen("a") is False
        assert ids.seen("a") is True

    def test_evicts_oldest(self):
        """Only the last `capacity` ids are remembered."""
        ids = RecentIds(capacity=2)
        ids.seen("a")
        ids.seen("b")
        ids.seen("c")

        assert len(ids) == 2
        assert ids.seen("a") is False

    def test_recent_use_protects_from_eviction(self):
        """A repeated id moves to the back of the queue."""
        ids = RecentIds(capacity=2)
        ids.seen("a")
        ids.seen("b")
        ids.seen("a")
        ids.seen("c")

        assert ids.seen("a") is True
        assert ids.seen("b") is False

    def test_disabled(self):
        """Capacity 0 turns suppression off."""
        ids = RecentIds(capacity=0)
        assert ids.seen("a") is False
        assert ids.seen("a") is False
        assert len(ids) == 0
