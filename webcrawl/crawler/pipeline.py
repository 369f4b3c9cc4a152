"""Crawl orchestration: session setup, worker pool, and the output stream."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterator

import requests

from .config import CrawlConfig
from .constants import POLL_INTERVAL_SECONDS, ROBOTS_TXT_PATH, SITEMAP_XML_PATH
from .fetcher import Fetcher, FetcherClosedError
from .frontier import EnqueueResult, Frontier
from .policy import LinkPolicy
from .renderer import Renderer, SeleniumRenderer
from .retrieval import Retriever, is_redirect_status
from .robots import RobotsPolicy
from .sitemap import is_sitemap_index, parse_sitemap, parse_sitemap_index
from .stats import StatsCollector
from .types import QueuedLink, RetrievalStatus, WebResource
from .url import domain_root, normalize_url

LOGGER = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]


class Pipeline:
    """Runs one crawl session and streams its resources as they complete.

    Usage:

        with Pipeline(config) as pipeline:
            for resource in pipeline.crawl():
                ...

    A dispatcher thread keeps at most `config.max_parallel_tasks` worker
    threads alive, launching a new one whenever a slot frees and a link is
    pending. The crawl ends when nothing is pending and no worker is active,
    or when `cancel_event` is set.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        fetcher: Fetcher | None = None,
        renderer: Renderer | None = None,
        stats: StatsCollector | None = None,
        on_error: ErrorCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or Fetcher(config)
        self._owns_fetcher = fetcher is None

        if renderer is None and config.use_headless_browser:
            renderer = SeleniumRenderer(
                user_agent=config.user_agent,
                timeout_seconds=config.timeout_seconds,
            )
            self._owns_renderer = True
        else:
            self._owns_renderer = False
        self.renderer = renderer

        self.stats = stats or StatsCollector()
        self.on_error = on_error
        self.cancel_event = cancel_event or threading.Event()

        self.frontier = Frontier()
        self.link_policy = LinkPolicy(config)
        self.robots = RobotsPolicy.permissive()
        self.crawl_delay_seconds = config.delay_ms / 1000.0
        self.sitemap_url: str | None = None

        self._slots = threading.Condition()
        self._active_workers = 0
        self._launched = 0
        self._started = False

    # Public API

    def crawl(self) -> Iterator[WebResource]:
        """Yield every newly retrieved resource, in completion order."""

        if self._started:
            raise RuntimeError("Pipeline.crawl() can only run once per pipeline")
        self._started = True

        self.prepare()
        retriever = Retriever(
            self.config,
            self.frontier,
            self.fetcher,
            robots=self.robots,
            renderer=self.renderer,
            link_policy=self.link_policy,
            stats=self.stats,
            crawl_delay_seconds=self.crawl_delay_seconds,
            cancel_event=self.cancel_event,
        )

        dispatcher = threading.Thread(
            target=self._dispatch,
            args=(retriever,),
            name="crawler-dispatcher",
            daemon=True,
        )
        dispatcher.start()

        finished = False
        try:
            while dispatcher.is_alive():
                resource = self.frontier.pop_completed()
                if resource is None:
                    dispatcher.join(timeout=POLL_INTERVAL_SECONDS)
                    continue
                yield resource

            while True:
                resource = self.frontier.pop_completed()
                if resource is None:
                    break
                yield resource
            finished = True
        finally:
            if not finished:
                # Consumer stopped iterating early.
                self.cancel()
                dispatcher.join()
            self.stats.record_frontier_snapshot(self.frontier.snapshot())
            self.stats.finish()
            LOGGER.info(
                "Crawl of %s finished: %s",
                self.config.start_url,
                self.frontier.snapshot(),
            )

    def cancel(self) -> None:
        self.cancel_event.set()

    def prepare(self) -> list[EnqueueResult]:
        """Read robots.txt and the sitemap, then seed the frontier."""

        start_url = self.config.start_url
        root = domain_root(start_url)

        if not self.config.ignore_robots_txt:
            robots_url = root + ROBOTS_TXT_PATH
            body = self._fetch_auxiliary(robots_url)
            if body is not None:
                self.robots = RobotsPolicy.from_text(body)
                LOGGER.info("Loaded robots.txt from %s", robots_url)

            delay = self.robots.crawl_delay(self.config.user_agent)
            if delay > 0:
                self.crawl_delay_seconds = delay
                LOGGER.info("Using robots.txt crawl delay of %.2fs", delay)

        seeds: list[QueuedLink] = []
        if self.config.include_sitemap:
            seeds.extend(self._sitemap_seeds(root))

        seeds.append(QueuedLink(url=normalize_url(start_url, start_url), depth=0))

        results = self.frontier.push_many(seeds)
        self.stats.record_enqueue_many(results)
        LOGGER.info(
            "Seeded %d links (%d from sitemap)",
            sum(1 for result in results if result.accepted),
            len(seeds) - 1,
        )
        return results

    def visited_links(self) -> list[str]:
        return list(self.frontier.visited())

    def queued_links(self) -> list[QueuedLink]:
        return self.frontier.pending_links()

    def processing_links(self) -> list[QueuedLink]:
        return self.frontier.in_flight_links()

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()
        if self._owns_renderer and self.renderer is not None:
            self.renderer.close()

    def __enter__(self) -> "Pipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Setup helpers

    def _sitemap_seeds(self, root: str) -> list[QueuedLink]:
        declared = None
        if not self.config.ignore_robots_txt:
            declared = self.robots.sitemap_for(self.config.user_agent)

        sitemap_url = normalize_url(root, declared) if declared else None
        sitemap_url = sitemap_url or root + SITEMAP_XML_PATH
        self.sitemap_url = sitemap_url

        body = self._fetch_auxiliary(sitemap_url)
        if body is None:
            return []

        if is_sitemap_index(body):
            LOGGER.warning(
                "Sitemap %s is a sitemap index (%d child sitemaps), not following",
                sitemap_url,
                len(parse_sitemap_index(body)),
            )
            return []

        seeds: list[QueuedLink] = []
        for entry in parse_sitemap(body):
            url = normalize_url(sitemap_url, entry.location)
            if url is None:
                LOGGER.debug("Skipping unusable sitemap location %r", entry.location)
                continue
            seeds.append(QueuedLink(url=url, parent_url=sitemap_url, depth=0))

        LOGGER.info("Found %d URLs in sitemap %s", len(seeds), sitemap_url)
        return seeds

    def _fetch_auxiliary(self, url: str) -> bytes | None:
        """GET a site file (robots.txt, sitemap) outside the visited set."""

        current = url
        for _ in range(self.config.max_redirects + 1):
            try:
                response = self.fetcher.send(current)
            except (requests.RequestException, FetcherClosedError) as exc:
                LOGGER.info("Unable to retrieve %s: %s", current, exc)
                return None

            if is_redirect_status(response.status_code):
                target = normalize_url(current, response.location)
                if target is None:
                    return None
                current = target
                continue

            if not 200 <= response.status_code < 300:
                LOGGER.info("No usable %s (status %d)", current, response.status_code)
                return None
            return response.body

        LOGGER.info("Too many redirects while retrieving %s", url)
        return None

    # Worker pool

    def _dispatch(self, retriever: Retriever) -> None:
        max_workers = self.config.max_parallel_tasks

        while not self.cancel_event.is_set():
            with self._slots:
                if self._active_workers >= max_workers:
                    self._slots.wait(timeout=POLL_INTERVAL_SECONDS)
                    continue

            link = self.frontier.claim_next()
            if link is None:
                with self._slots:
                    # Workers push their children before releasing a slot.
                    if self._active_workers == 0 and not self.frontier.has_pending():
                        break
                    self._slots.wait(timeout=POLL_INTERVAL_SECONDS)
                continue

            self._launch(retriever, link)

        if self.cancel_event.is_set():
            self.frontier.close()
            with self._slots:
                LOGGER.info("Crawl cancelled, waiting on %d active workers", self._active_workers)
                while self._active_workers > 0:
                    self._slots.wait(timeout=POLL_INTERVAL_SECONDS)

    def _launch(self, retriever: Retriever, link: QueuedLink) -> None:
        with self._slots:
            self._active_workers += 1
            self._launched += 1
            name = f"crawler-worker-{self._launched}"

        worker = threading.Thread(
            target=self._work,
            args=(retriever, link),
            name=name,
            daemon=True,
        )
        worker.start()

    def _work(self, retriever: Retriever, link: QueuedLink) -> None:
        try:
            retriever.process(link)
        except Exception as exc:
            LOGGER.warning("Unexpected error while processing %s: %r", link.url, exc)
            self.stats.record_error(exc)
            self.stats.record_retrieval(RetrievalStatus.FAILED)
            self._report_error(link.url, exc)
        finally:
            self.frontier.release(link)
            with self._slots:
                self._active_workers -= 1
                self._slots.notify_all()

    def _report_error(self, url: str, exc: BaseException) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(url, exc)
        except Exception as callback_exc:
            LOGGER.warning("Error callback failed for %s: %r", url, callback_exc)


def crawl(
    config: CrawlConfig,
    *,
    fetcher: Fetcher | None = None,
    renderer: Renderer | None = None,
    on_error: ErrorCallback | None = None,
    cancel_event: threading.Event | None = None,
) -> Iterator[WebResource]:
    """Crawl from `config.start_url`, yielding resources as they complete."""

    with Pipeline(
        config,
        fetcher=fetcher,
        renderer=renderer,
        on_error=on_error,
        cancel_event=cancel_event,
    ) as pipeline:
        yield from pipeline.crawl()


__all__ = ["ErrorCallback", "Pipeline", "crawl"]
