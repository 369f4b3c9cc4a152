"""Thread-safe crawl frontier: pending, in-flight, visited, and completed.

Each structure has its own lock. The only nesting is pending -> visited /
in-flight during enqueue and claim; no lock is ever held across network I/O.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .types import QueuedLink, WebResource

LOGGER = logging.getLogger(__name__)


class EnqueueStatus(str, Enum):
    """Result status for frontier enqueue attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_PENDING = "skipped_pending"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    SKIPPED_VISITED = "skipped_visited"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one enqueue attempt."""

    status: EnqueueStatus
    link: QueuedLink

    @property
    def accepted(self) -> bool:
        return self.status == EnqueueStatus.ENQUEUED


class Frontier:
    """Shared crawl state for one session.

    - Pending: FIFO of `QueuedLink`, unique by URL string.
    - In-flight: URLs claimed by a worker and not yet released.
    - Visited: canonical URL -> `WebResource`, grows monotonically.
    - Completed: FIFO of resources awaiting delivery, in completion order.
    """

    def __init__(self) -> None:
        self._pending_lock = threading.Lock()
        self._pending: deque[QueuedLink] = deque()
        self._pending_urls: set[str] = set()

        self._in_flight_lock = threading.Lock()
        self._in_flight: dict[str, QueuedLink] = {}

        self._visited_lock = threading.Lock()
        self._visited: dict[str, WebResource] = {}

        self._completed_lock = threading.Lock()
        self._completed: deque[WebResource] = deque()

        self._closed = False
        self._enqueued_count = 0
        self._claimed_count = 0
        self._completed_count = 0

    # Pending

    def push(self, link: QueuedLink) -> EnqueueResult:
        """Attempt to enqueue one link."""

        with self._pending_lock:
            if self._closed:
                return EnqueueResult(EnqueueStatus.SKIPPED_CLOSED, link)
            if link.url in self._pending_urls:
                return EnqueueResult(EnqueueStatus.SKIPPED_PENDING, link)
            if self.is_visited(link.url):
                return EnqueueResult(EnqueueStatus.SKIPPED_VISITED, link)
            if self.is_in_flight(link.url):
                return EnqueueResult(EnqueueStatus.SKIPPED_IN_FLIGHT, link)

            self._pending.append(link)
            self._pending_urls.add(link.url)
            self._enqueued_count += 1

        return EnqueueResult(EnqueueStatus.ENQUEUED, link)

    def push_many(self, links: Iterable[QueuedLink]) -> list[EnqueueResult]:
        """Attempt to enqueue multiple links, preserving input order."""

        return [self.push(link) for link in links]

    def pop(self) -> QueuedLink | None:
        """Remove and return the oldest pending link, or None."""

        with self._pending_lock:
            if not self._pending:
                return None
            link = self._pending.popleft()
            self._pending_urls.discard(link.url)
            return link

    def claim_next(self) -> QueuedLink | None:
        """Pop pending links until one can be claimed for processing.

        Links already visited or already claimed by another worker are
        dropped. The returned link is in-flight until `release()`.
        """

        while True:
            link = self.pop()
            if link is None:
                return None

            if self.is_visited(link.url):
                LOGGER.debug("Skipping already visited link %s", link.url)
                continue

            if not self.try_claim(link):
                LOGGER.debug("Skipping link %s, already in processing", link.url)
                continue

            return link

    def has_pending(self) -> bool:
        with self._pending_lock:
            return bool(self._pending)

    def pending_links(self) -> list[QueuedLink]:
        with self._pending_lock:
            return list(self._pending)

    # In-flight

    def try_claim(self, link: QueuedLink) -> bool:
        with self._in_flight_lock:
            if link.url in self._in_flight:
                return False
            self._in_flight[link.url] = link
            self._claimed_count += 1
            return True

    def release(self, link: QueuedLink) -> None:
        with self._in_flight_lock:
            self._in_flight.pop(link.url, None)

    def is_in_flight(self, url: str) -> bool:
        with self._in_flight_lock:
            return url in self._in_flight

    def in_flight_links(self) -> list[QueuedLink]:
        with self._in_flight_lock:
            return list(self._in_flight.values())

    # Visited

    def is_visited(self, url: str) -> bool:
        with self._visited_lock:
            return url in self._visited

    def get_visited(self, url: str) -> WebResource | None:
        with self._visited_lock:
            return self._visited.get(url)

    def mark_visited(self, url: str, resource: WebResource) -> WebResource:
        """Register a resource under `url` unless one is already there.

        Returns the resource that ends up registered, so a worker that lost
        a race adopts the winner's resource.
        """

        with self._visited_lock:
            return self._visited.setdefault(url, resource)

    def alias_visited(self, url: str, resource: WebResource) -> None:
        """Point `url` at an existing resource (redirect source -> target)."""

        with self._visited_lock:
            self._visited[url] = resource

    def visited(self) -> dict[str, WebResource]:
        with self._visited_lock:
            return dict(self._visited)

    # Completed

    def push_completed(self, resource: WebResource) -> None:
        with self._completed_lock:
            self._completed.append(resource)
            self._completed_count += 1

    def pop_completed(self) -> WebResource | None:
        with self._completed_lock:
            if not self._completed:
                return None
            return self._completed.popleft()

    # Lifecycle

    def close(self) -> None:
        """Refuse further enqueues and drop whatever is still pending."""

        with self._pending_lock:
            self._closed = True
            self._pending.clear()
            self._pending_urls.clear()

    @property
    def closed(self) -> bool:
        with self._pending_lock:
            return self._closed

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        with self._pending_lock:
            pending = len(self._pending)
            closed = self._closed
            enqueued = self._enqueued_count
        with self._in_flight_lock:
            in_flight = len(self._in_flight)
            claimed = self._claimed_count
        with self._visited_lock:
            visited = len(self._visited)
        with self._completed_lock:
            completed_waiting = len(self._completed)
            completed = self._completed_count

        return {
            "closed": closed,
            "pending": pending,
            "in_flight": in_flight,
            "visited": visited,
            "completed_waiting": completed_waiting,
            "enqueued": enqueued,
            "claimed": claimed,
            "completed": completed,
        }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
