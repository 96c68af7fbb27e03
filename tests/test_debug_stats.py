"""Tests for debug statistics tracking."""

from site_icon_tool.cache import IconCache
from site_icon_tool.models import CacheEntry, CacheTier
from site_icon_tool.utils.debug_stats import get_stats_tracker


class TestDebugStats:
    """Test DebugStatsTracker."""

    def test_disabled_records_nothing(self):
        """Test nothing is counted while tracking is off."""
        tracker = get_stats_tracker()
        tracker.record_http_request("probe", "https://example.com/favicon.ico", 200)

        assert tracker.stats.total_requests == 0
        assert tracker.get_summary() == "Debug statistics tracking disabled"

    def test_http_requests(self):
        """Test requests are counted per kind and status."""
        tracker = get_stats_tracker()
        tracker.enable()

        tracker.record_http_request("probe", "https://example.com/a.png", 200)
        tracker.record_http_request("probe", "https://example.com/b.png", 404)
        tracker.record_http_request(
            "fetch", "https://example.com/a.png", success=False, error="timeout"
        )

        stats = tracker.stats
        assert stats.total_requests == 3
        assert stats.failed_requests == 1
        assert stats.requests["probe"].answered == 2
        assert stats.requests["probe"].statuses[404] == 1
        assert stats.requests["fetch"].failed == 1

        summary = tracker.get_summary()
        assert "Lookup statistics" in summary
        assert "Requests: 3 sent, 1 without response" in summary
        assert "200x1 404x1" in summary

    def test_cache_lookups(self):
        """Test the cache reports lookup outcomes."""
        tracker = get_stats_tracker()
        tracker.enable()

        cache = IconCache()
        cache.get("example.com")
        cache.insert("example.com", b"icon", "image/png")
        cache.get("example.com")
        cache.insert_negative("missing.example")
        cache.get("missing.example")
        tracker.record_refresh("example.com")

        assert dict(tracker.stats.cache_outcomes) == {"miss": 1, "main": 1, "negative": 1}
        assert "Cache lookups: main=1, miss=1, negative=1" in tracker.get_summary()
        assert "Refreshes scheduled: 1" in tracker.get_summary()

    def test_stale_lookup_counts_expired_tier(self):
        """Test a hit served from Expired is counted under its tier."""
        tracker = get_stats_tracker()
        tracker.enable()

        cache = IconCache()
        cache.move_to_expired("example.com", CacheEntry.create(b"icon", "image/png"))
        cache.get("example.com")

        assert dict(tracker.stats.cache_outcomes) == {CacheTier.EXPIRED.value: 1}

    def test_reset(self):
        """Test reset clears the counters."""
        tracker = get_stats_tracker()
        tracker.enable()
        tracker.record_refresh("example.com")

        tracker.reset()

        assert tracker.stats.refreshes == 0
