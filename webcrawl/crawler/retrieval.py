"""Per-link retrieval: pause, normalize, dedup, robots, fetch, classify, register.

One `Retriever` is shared by all workers of a crawl session. Every mutable
piece of state it touches lives in the `Frontier`; the retriever itself only
holds session settings (crawl delay, robots policy) fixed before the crawl.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

import requests

from .config import CrawlConfig
from .constants import (
    MAX_HTTP_STATUS,
    POLL_INTERVAL_SECONDS,
    REDIRECT_STATUS_MAX,
    REDIRECT_STATUS_MIN,
    THROTTLE_STATUS,
)
from .fetcher import Fetcher, FetcherClosedError
from .frontier import EnqueueResult, Frontier
from .parsers import extract_hrefs
from .policy import LinkPolicy
from .renderer import RenderDownloadError, RenderError, Renderer
from .robots import RobotsPolicy
from .stats import StatsCollector
from .types import (
    FetchBackend,
    HttpResponse,
    QueuedLink,
    RetrievalResult,
    RetrievalStatus,
    WebResource,
    is_navigable_content_type,
    media_type_of,
)
from .url import normalize_url, path_from_url

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _Fetched:
    response: HttpResponse
    backend: FetchBackend
    content_type: str | None


def is_redirect_status(status_code: int) -> bool:
    return REDIRECT_STATUS_MIN <= status_code <= REDIRECT_STATUS_MAX


class Retriever:
    """Runs the retrieval state machine for one queued link at a time.

    Redirects are followed with an explicit loop bounded by
    `config.max_redirects`. Every URL of a redirect chain ends up in
    Visited pointing at the chain's final resource.
    """

    def __init__(
        self,
        config: CrawlConfig,
        frontier: Frontier,
        fetcher: Fetcher,
        *,
        robots: RobotsPolicy | None = None,
        renderer: Renderer | None = None,
        link_policy: LinkPolicy | None = None,
        stats: StatsCollector | None = None,
        crawl_delay_seconds: float = 0.0,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.frontier = frontier
        self.fetcher = fetcher
        self.robots = robots or RobotsPolicy.permissive()
        self.renderer = renderer
        self.link_policy = link_policy or LinkPolicy(config)
        self.stats = stats or StatsCollector()
        self.crawl_delay_seconds = max(0.0, crawl_delay_seconds)
        self.cancel_event = cancel_event or threading.Event()

    def process(self, link: QueuedLink) -> RetrievalResult:
        """Retrieve one link, enqueue its children, and publish the resource."""

        result = self.retrieve(link)
        self.stats.record_retrieval(result.status)

        if not result.is_new:
            return result

        resource = result.resource
        self.stats.record_fetch(resource)
        self.stats.record_enqueue_many(self.enqueue_children(resource, link))
        self.frontier.push_completed(resource)
        return result

    def retrieve(self, link: QueuedLink) -> RetrievalResult:
        if self._pause():
            return RetrievalResult(RetrievalStatus.CANCELLED, url=link.url)

        current_url = link.url
        chain: list[str] = []

        while True:
            canonical = normalize_url(self.config.start_url, current_url)
            if canonical is None:
                LOGGER.info("Dropping unparsable link %r (parent=%s)", current_url, link.parent_url)
                return RetrievalResult(RetrievalStatus.INVALID_URL, url=current_url)

            existing = self.frontier.get_visited(canonical)
            if existing is not None:
                if not chain:
                    return RetrievalResult(
                        RetrievalStatus.ALREADY_VISITED, url=canonical, resource=existing
                    )
                return self._alias(chain, canonical, existing)

            if chain and self._held_elsewhere(canonical, link, chain):
                existing = self._await_in_flight(canonical)
                if existing is not None:
                    return self._alias(chain, canonical, existing)

            if not self.robots.is_allowed(self.config.user_agent, path_from_url(canonical)):
                LOGGER.info("robots.txt disallows %s", canonical)
                return RetrievalResult(RetrievalStatus.ROBOTS_DENIED, url=canonical)

            if self.cancel_event.is_set():
                return RetrievalResult(RetrievalStatus.CANCELLED, url=canonical)

            try:
                fetched = self._fetch(canonical)
            except FetcherClosedError as exc:
                return RetrievalResult(RetrievalStatus.CANCELLED, url=canonical, error=str(exc))
            except requests.RequestException as exc:
                LOGGER.warning("Unable to retrieve %s: %s", canonical, exc)
                self.stats.record_error(exc)
                resource = WebResource.unreachable(
                    url=canonical, parent_url=link.parent_url, depth=link.depth
                )
                return self._register(canonical, chain, resource, error=str(exc))

            response = fetched.response
            if is_redirect_status(response.status_code) and self.config.follow_redirects:
                target = self._redirect_target(canonical, response, hops=len(chain))
                if target is not None:
                    self.stats.record_redirect()
                    chain.append(canonical)
                    current_url = target
                    continue

            if not 0 <= response.status_code <= MAX_HTTP_STATUS:
                LOGGER.warning("Nonstandard status %d from %s", response.status_code, canonical)
                resource = WebResource.unreachable(
                    url=canonical,
                    parent_url=link.parent_url,
                    depth=link.depth,
                    content_type=fetched.content_type,
                )
                return self._register(
                    canonical, chain, resource, error=f"status {response.status_code}"
                )

            if response.status_code == THROTTLE_STATUS:
                self._throttle(canonical)

            resource = WebResource.from_body(
                url=canonical,
                parent_url=link.parent_url,
                depth=link.depth,
                status=response.status_code,
                headers=response.headers,
                body=response.body,
                content_type=fetched.content_type,
                backend=fetched.backend,
            )
            return self._register(canonical, chain, resource)

    def enqueue_children(self, resource: WebResource, link: QueuedLink) -> list[EnqueueResult]:
        """Extract, normalize, filter, and enqueue the links of an HTML resource."""

        if not resource.data:
            return []
        if not self.config.follow_links:
            return []
        if link.depth >= self.config.max_crawl_depth:
            return []
        if not is_navigable_content_type(resource.content_type):
            return []

        seen: set[str] = set()
        results: list[EnqueueResult] = []
        for href in extract_hrefs(resource.data):
            child_url = normalize_url(resource.url, href)
            if child_url is None or child_url in seen:
                continue
            seen.add(child_url)

            if self.frontier.is_visited(child_url):
                continue

            decision = self.link_policy.evaluate(child_url)
            if not decision.accepted:
                LOGGER.debug("Filtered %s (%s)", child_url, decision.reason.value)
                self.stats.record_filtered(decision.reason)
                continue

            results.append(
                self.frontier.push(
                    QueuedLink(url=child_url, parent_url=resource.url, depth=link.depth + 1)
                )
            )

        LOGGER.debug(
            "Discovered %d links on %s, %d enqueued",
            len(seen),
            resource.url,
            sum(1 for result in results if result.accepted),
        )
        return results

    def _alias(self, chain: list[str], canonical: str, existing: WebResource) -> RetrievalResult:
        for source_url in chain:
            self.frontier.alias_visited(source_url, existing)
        LOGGER.debug("Redirect chain %s aliased to visited %s", chain, canonical)
        return RetrievalResult(RetrievalStatus.ALIASED, url=canonical, resource=existing)

    def _held_elsewhere(self, url: str, link: QueuedLink, chain: list[str]) -> bool:
        if url == link.url or url in chain:
            return False
        return self.frontier.is_in_flight(url)

    def _await_in_flight(self, url: str) -> WebResource | None:
        """Wait for the worker holding `url` to register it, up to one request timeout."""

        deadline = time.monotonic() + self.config.timeout_seconds
        while self.frontier.is_in_flight(url):
            existing = self.frontier.get_visited(url)
            if existing is not None:
                return existing
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LOGGER.debug("Gave up waiting on in-flight %s", url)
                break
            if self.cancel_event.wait(min(remaining, POLL_INTERVAL_SECONDS)):
                break
        return self.frontier.get_visited(url)

    def _register(
        self,
        canonical: str,
        chain: list[str],
        resource: WebResource,
        *,
        error: str | None = None,
    ) -> RetrievalResult:
        registered = self.frontier.mark_visited(canonical, resource)
        for source_url in chain:
            self.frontier.mark_visited(source_url, registered)

        if registered is not resource:
            # Another worker materialized the same URL first.
            return RetrievalResult(
                RetrievalStatus.ALREADY_VISITED, url=canonical, resource=registered
            )
        return RetrievalResult(RetrievalStatus.FETCHED, url=canonical, resource=resource, error=error)

    def _redirect_target(self, url: str, response: HttpResponse, *, hops: int) -> str | None:
        location = response.location
        if not location:
            LOGGER.warning("Redirect from %s has no Location header", url)
            return None

        if hops >= self.config.max_redirects:
            LOGGER.warning("Too many redirects (%d) ending at %s", hops, url)
            return None

        target = normalize_url(url, location)
        if target is None:
            LOGGER.warning("Malformed redirect target %r from %s", location, url)
        return target

    def _fetch(self, url: str) -> _Fetched:
        content_type: str | None = None

        if self.renderer is not None and self.config.use_headless_browser:
            info = self.fetcher.probe_content_type(url)
            if info.check_succeeded:
                content_type = info.media_type or None

            if info.is_navigable:
                try:
                    rendered = self.renderer.render(url, self.config.user_agent)
                except RenderDownloadError:
                    LOGGER.debug("Browser triggered a download for %s, fetching directly", url)
                    self.stats.record_render_fallback()
                except RenderError as exc:
                    LOGGER.warning("Browser render failed for %s, fetching directly: %s", url, exc)
                    self.stats.record_render_fallback()
                else:
                    return _Fetched(
                        response=HttpResponse(
                            url=url,
                            status_code=rendered.status_code,
                            headers=rendered.headers,
                            body=rendered.html.encode("utf-8"),
                        ),
                        backend=FetchBackend.SELENIUM,
                        content_type=content_type
                        or media_type_of(rendered.headers.get("Content-Type")),
                    )

        response = self.fetcher.send(url)
        return _Fetched(response=response, backend=FetchBackend.REQUESTS, content_type=content_type)

    def _pause(self) -> bool:
        """Apply the session crawl delay; return True when cancelled."""

        if self.crawl_delay_seconds > 0:
            return self.cancel_event.wait(self.crawl_delay_seconds)
        return self.cancel_event.is_set()

    def _throttle(self, url: str) -> None:
        self.stats.record_throttled()
        delay_seconds = self.config.throttle_ms / 1000.0
        LOGGER.info("Throttled (429) at %s, waiting %.3fs", url, delay_seconds)
        if delay_seconds > 0:
            self.cancel_event.wait(delay_seconds)


__all__ = ["Retriever", "is_redirect_status"]
