"""Thread-safe in-memory metrics for server requests and mock invocations."""

from __future__ import annotations

import threading
import time
from collections import Counter
from typing import Any

from config import INVOCATION_RETENTION_DAYS
from event_hub import MOCK_INVOCATION

LATENCY_BUCKETS_MS = (5, 10, 25, 50, 100, 250, 500, 1000, 2000, 5000)


class MetricsRegistry:
    def __init__(self, retention_days: int = INVOCATION_RETENTION_DAYS) -> None:
        self._lock = threading.Lock()
        self._retention_days = max(1, retention_days)
        self._total_requests = 0
        self._open_connections = 0
        self._inflight_requests = 0
        self._status_counts: Counter[str] = Counter()
        self._latency_buckets: Counter[str] = Counter()
        self._bytes_sent_total = 0
        self._read_errors_by_type: Counter[str] = Counter()
        self._write_errors_by_type: Counter[str] = Counter()
        # (service, version, day) -> daily invocation statistic
        self._invocations: dict[tuple[str, str, str], dict[str, Any]] = {}

    def connection_opened(self) -> None:
        with self._lock:
            self._open_connections += 1

    def connection_closed(self) -> None:
        with self._lock:
            self._open_connections = max(0, self._open_connections - 1)

    def request_started(self) -> None:
        with self._lock:
            self._inflight_requests += 1

    def request_finished(self) -> None:
        with self._lock:
            self._inflight_requests = max(0, self._inflight_requests - 1)

    def record_request(self, status_code: int, duration_ms: float, bytes_sent: int) -> None:
        with self._lock:
            self._total_requests += 1
            self._status_counts[str(status_code)] += 1
            self._bytes_sent_total += bytes_sent
            self._latency_buckets[self._bucket_label(duration_ms)] += 1

    def record_read_error(self, error_type: str) -> None:
        with self._lock:
            self._read_errors_by_type[error_type] += 1

    def record_write_error(self, error_type: str) -> None:
        with self._lock:
            self._write_errors_by_type[error_type] += 1

    def record_invocation(
        self,
        *,
        service_name: str,
        service_version: str,
        response_name: str,
        duration_ms: float,
        invoked_at: float | None = None,
    ) -> None:
        moment = time.gmtime(invoked_at if invoked_at is not None else time.time())
        day = time.strftime("%Y%m%d", moment)
        with self._lock:
            key = (service_name, service_version, day)
            statistic = self._invocations.get(key)
            if statistic is None:
                statistic = {
                    "service_name": service_name,
                    "service_version": service_version,
                    "day": day,
                    "daily_count": 0,
                    "hourly_count": Counter(),
                    "response_count": Counter(),
                    "mean_duration_ms": 0.0,
                }
                self._invocations[key] = statistic
                self._evict_expired_days()
                if key not in self._invocations:
                    return

            count = statistic["daily_count"] + 1
            # Running mean keeps memory flat for long runs.
            statistic["mean_duration_ms"] += (duration_ms - statistic["mean_duration_ms"]) / count
            statistic["daily_count"] = count
            statistic["hourly_count"][str(moment.tm_hour)] += 1
            statistic["response_count"][response_name] += 1

    def record_invocation_event(self, event: dict[str, Any]) -> None:
        """Event hub subscriber for ``mock.invocation`` events."""
        payload = event.get("payload", {})
        if event.get("type") != MOCK_INVOCATION:
            return
        self.record_invocation(
            service_name=str(payload.get("service_name", "")),
            service_version=str(payload.get("service_version", "")),
            response_name=str(payload.get("response_name", "")),
            duration_ms=float(payload.get("duration_ms", 0.0)),
            invoked_at=payload.get("invoked_at"),
        )

    def invocation_statistics(self) -> list[dict[str, Any]]:
        with self._lock:
            return [
                {
                    **statistic,
                    "hourly_count": dict(statistic["hourly_count"]),
                    "response_count": dict(statistic["response_count"]),
                    "mean_duration_ms": round(statistic["mean_duration_ms"], 3),
                }
                for statistic in self._invocations.values()
            ]

    def snapshot(self) -> dict[str, object]:
        invocations = self.invocation_statistics()
        with self._lock:
            return {
                "total_requests": self._total_requests,
                "open_connections": self._open_connections,
                "inflight_requests": self._inflight_requests,
                "status_counts": dict(self._status_counts),
                "latency_buckets_ms": dict(self._latency_buckets),
                "bytes_sent_total": self._bytes_sent_total,
                "read_errors_by_type": dict(self._read_errors_by_type),
                "write_errors_by_type": dict(self._write_errors_by_type),
                "invocations": invocations,
            }

    def _evict_expired_days(self) -> None:
        """Keep statistics for the most recent ``retention_days`` days only."""
        days = sorted({day for _, _, day in self._invocations})
        if len(days) <= self._retention_days:
            return
        oldest_kept = days[-self._retention_days]
        for key in [key for key in self._invocations if key[2] < oldest_kept]:
            del self._invocations[key]

    def _bucket_label(self, duration_ms: float) -> str:
        for limit in LATENCY_BUCKETS_MS:
            if duration_ms <= limit:
                return f"<= {limit}ms"
        return "> 5000ms"
