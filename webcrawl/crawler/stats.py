"""Thread-safe crawl statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .frontier import EnqueueResult, EnqueueStatus
from .policy import FilterReason
from .types import RetrievalStatus, WebResource, utc_now_iso


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    Shared by every retrieval worker of one crawl session.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.started_at = utc_now_iso()
        self.finished_at: str | None = None

        self._enqueue_counts: dict[str, int] = defaultdict(int)
        self._retrieval_counts: dict[str, int] = defaultdict(int)
        self._filter_reason_counts: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int | bool] = {}

        self._fetch_backend_counts: dict[str, dict[str, int]] = defaultdict(
            lambda: {"ok": 0, "error": 0}
        )
        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._error_type_counts: dict[str, int] = defaultdict(int)
        self._fetch_bytes_total = 0

        self._redirects_followed = 0
        self._throttled = 0
        self._robots_denied = 0
        self._render_fallbacks = 0

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one frontier enqueue outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            self._enqueue_counts[status.value] += 1

    def record_enqueue_many(
        self, results: list[EnqueueResult] | tuple[EnqueueResult, ...]
    ) -> None:
        for result in results:
            self.record_enqueue(result)

    def record_filtered(self, reason: FilterReason) -> None:
        with self._lock:
            self._filter_reason_counts[reason.value] += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_retrieval(self, status: RetrievalStatus) -> None:
        with self._lock:
            self._retrieval_counts[status.value] += 1
            if status == RetrievalStatus.ROBOTS_DENIED:
                self._robots_denied += 1

    def record_fetch(self, resource: WebResource) -> None:
        """Record one materialized resource."""

        with self._lock:
            state = "ok" if resource.ok else "error"
            self._fetch_backend_counts[resource.backend.value][state] += 1
            self._fetch_status_code_counts[str(resource.status)] += 1
            self._fetch_bytes_total += resource.content_length

    def record_redirect(self) -> None:
        with self._lock:
            self._redirects_followed += 1

    def record_throttled(self) -> None:
        with self._lock:
            self._throttled += 1

    def record_render_fallback(self) -> None:
        with self._lock:
            self._render_fallbacks += 1

    def record_error(self, exc: BaseException) -> None:
        with self._lock:
            self._error_type_counts[exc.__class__.__name__] += 1

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            if self.finished_at is None:
                self.finished_at = utc_now_iso()

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            start = _parse_iso_utc(self.started_at)
            end = (
                _parse_iso_utc(self.finished_at)
                if self.finished_at
                else datetime.now(timezone.utc)
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetched_total = sum(
                bucket["ok"] + bucket["error"] for bucket in self._fetch_backend_counts.values()
            )

            return {
                "started_at": self.started_at,
                "finished_at": self.finished_at,
                "duration_seconds": duration_seconds,
                "fetched_total": fetched_total,
                "throughput": {
                    "fetched_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": {
                    "enqueue_counts": dict(self._enqueue_counts),
                    "filter_reason_counts": dict(self._filter_reason_counts),
                    "snapshot": dict(self._frontier_snapshot),
                },
                "retrieval": {
                    "status_counts": dict(self._retrieval_counts),
                    "redirects_followed": self._redirects_followed,
                    "throttled": self._throttled,
                    "robots_denied": self._robots_denied,
                    "render_fallbacks": self._render_fallbacks,
                },
                "fetch": {
                    "by_backend": {
                        str(key): dict(bucket)
                        for key, bucket in self._fetch_backend_counts.items()
                    },
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "bytes_total": self._fetch_bytes_total,
                },
                "error_type_counts": dict(self._error_type_counts),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
