"""Request and cache statistics collected in debug verbosity.

Discovery, validation, download and the cache report into one process-wide
tracker. Nothing is counted unless the tracker is enabled.
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import ClassVar

logger = logging.getLogger(__name__)


@dataclass
class KindStats:
    """Counters for one kind of outbound request (document, probe, fetch, ...)."""

    sent: int = 0
    failed: int = 0  # no response: timeout, connection or TLS error
    statuses: Counter = field(default_factory=Counter)

    @property
    def answered(self) -> int:
        return self.sent - self.failed


@dataclass
class LookupStats:
    """Everything recorded since the last reset."""

    requests: dict[str, KindStats] = field(default_factory=dict)
    cache_outcomes: Counter = field(default_factory=Counter)  # answering tier or "miss"
    refreshes: int = 0

    @property
    def total_requests(self) -> int:
        return sum(kind.sent for kind in self.requests.values())

    @property
    def failed_requests(self) -> int:
        return sum(kind.failed for kind in self.requests.values())


class DebugStatsTracker:
    """
    Thread-safe singleton holding the current LookupStats.

    Background refresh workers report into the same tracker as the
    foreground lookup, so every update happens under a lock.
    """

    _instance: ClassVar["DebugStatsTracker | None"] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self.stats = LookupStats()
        self._enabled = False
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> "DebugStatsTracker":
        """Return the process-wide tracker, creating it on first use."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    def reset(self) -> None:
        """Drop everything recorded so far."""
        with self._lock:
            self.stats = LookupStats()

    # ========================================================================
    # Recording
    # ========================================================================

    def record_http_request(
        self,
        kind: str,
        url: str,
        status_code: int | None = None,
        success: bool = True,
        error: str | None = None,
    ) -> None:
        """
        Record an outbound request.

        Args:
            kind: Request kind (document, manifest, browserconfig, probe, peek, fetch)
            url: Requested URL
            status_code: Response status, None when no response arrived
            success: False when no response arrived
            error: Transport error description
        """
        if not self._enabled:
            return

        answered = success and status_code is not None
        with self._lock:
            kind_stats = self.stats.requests.setdefault(kind, KindStats())
            kind_stats.sent += 1
            if answered:
                kind_stats.statuses[status_code] += 1
            else:
                kind_stats.failed += 1

        if answered:
            logger.debug(f"{kind} {status_code} {url}")
        else:
            logger.debug(f"{kind} failed {url}" + (f": {error}" if error else ""))

    def record_cache_lookup(self, key: str, outcome: str) -> None:
        """Record a cache lookup outcome: the CacheTier value that answered, or "miss"."""
        if not self._enabled:
            return

        with self._lock:
            self.stats.cache_outcomes[outcome] += 1
        logger.debug(f"Cache {outcome}: {key}")

    def record_refresh(self, key: str) -> None:
        """Record a background refresh being scheduled."""
        if not self._enabled:
            return

        with self._lock:
            self.stats.refreshes += 1
        logger.debug(f"Background refresh scheduled: {key}")

    # ========================================================================
    # Reporting
    # ========================================================================

    def get_summary(self) -> str:
        """
        Format the recorded statistics for the terminal.

        Returns:
            Multi-line report, or a one-line notice when tracking is off
        """
        if not self._enabled:
            return "Debug statistics tracking disabled"

        with self._lock:
            stats = self.stats
            lines = ["", "-" * 60, "Lookup statistics", "-" * 60]

            lines.append(
                f"Requests: {stats.total_requests} sent, {stats.failed_requests} without response"
            )
            for kind in sorted(stats.requests):
                kind_stats = stats.requests[kind]
                statuses = " ".join(
                    f"{code}x{count}" for code, count in sorted(kind_stats.statuses.items())
                )
                lines.append(
                    f"  {kind:<14}{kind_stats.sent:>4} sent{kind_stats.failed:>4} failed  {statuses}"
                )

            if stats.cache_outcomes:
                outcomes = ", ".join(
                    f"{outcome}={count}" for outcome, count in sorted(stats.cache_outcomes.items())
                )
                lines.append(f"Cache lookups: {outcomes}")
            lines.append(f"Refreshes scheduled: {stats.refreshes}")

            lines.append("-" * 60)
            return "\n".join(lines)


def get_stats_tracker() -> DebugStatsTracker:
    """Get the global statistics tracker instance."""
    return DebugStatsTracker.get_instance()
