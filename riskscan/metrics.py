"""Scan metrics: throughput, latency, cache effectiveness, degraded analyzers.

Lock-protected counters read by the health endpoint while scans run.
"""

import time
from collections import Counter
from threading import Lock


class ScanMetrics:
    def __init__(self) -> None:
        self._lock = Lock()
        self._start_time = time.monotonic()
        self._scans_completed = 0
        self._scans_failed = 0
        self._total_latency_ms = 0.0
        self._max_latency_ms = 0.0
        self._cache_hits = 0
        self._cache_misses = 0
        self._cache_errors = 0
        self._degraded: Counter[str] = Counter()

    def record_scan(self, latency_ms: float, degraded: list[str] | None = None) -> None:
        """Record a completed (possibly degraded) scan."""
        with self._lock:
            self._scans_completed += 1
            self._total_latency_ms += latency_ms
            if latency_ms > self._max_latency_ms:
                self._max_latency_ms = latency_ms
            for name in degraded or ():
                self._degraded[str(name)] += 1

    def record_failure(self) -> None:
        with self._lock:
            self._scans_failed += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1

    def record_cache_error(self) -> None:
        with self._lock:
            self._cache_errors += 1

    @property
    def avg_latency_ms(self) -> float:
        with self._lock:
            if self._scans_completed == 0:
                return 0.0
            return self._total_latency_ms / self._scans_completed

    def get_summary(self) -> dict:
        """Snapshot of all counters."""
        with self._lock:
            lookups = self._cache_hits + self._cache_misses
            avg = self._total_latency_ms / self._scans_completed if self._scans_completed else 0.0
            return {
                "uptime_sec": round(time.monotonic() - self._start_time),
                "scans_completed": self._scans_completed,
                "scans_failed": self._scans_failed,
                "avg_latency_ms": round(avg),
                "max_latency_ms": round(self._max_latency_ms),
                "cache": {
                    "hits": self._cache_hits,
                    "misses": self._cache_misses,
                    "errors": self._cache_errors,
                    "hit_rate_pct": round(self._cache_hits / lookups * 100, 1) if lookups else 0.0,
                },
                "degraded": dict(self._degraded),
            }

    def format_stats_line(self) -> str:
        summary = self.get_summary()
        return (
            f"scans={summary['scans_completed']} failed={summary['scans_failed']} "
            f"avg_lat={summary['avg_latency_ms']}ms "
            f"cache_hit={summary['cache']['hit_rate_pct']}%"
        )
