"""Link-following policy: decides whether a discovered URL may be enqueued.

Every check is a pure function of strings. Host comparisons are
case-insensitive and exact; the three scope flags mean:

- same root domain: hosts are equal, or one is a dot-boundary subdomain of
  the other (`blog.example.com` and `example.com` are related; two sibling
  subdomains are not, since no public-suffix list is consulted).
- same subdomain: hosts are exactly equal.
- child URL: hosts are equal and the candidate path sits under the start
  path (a start path of `/` accepts the whole host).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .config import CrawlConfig
from .url import host_from_url, is_http_url, path_from_url

LOGGER = logging.getLogger(__name__)


class FilterReason(str, Enum):
    """Why a candidate link was not enqueued."""

    NOT_HTTP = "not_http"
    DENIED_DOMAIN = "denied_domain"
    NOT_SAME_ROOT_DOMAIN = "not_same_root_domain"
    NOT_SAME_SUBDOMAIN = "not_same_subdomain"
    NOT_CHILD_URL = "not_child_url"
    NOT_ALLOWED_DOMAIN = "not_allowed_domain"
    EXTERNAL_LINK = "external_link"
    EXCLUDED_PATTERN = "excluded_pattern"


def is_same_root_domain(start_url: str, candidate_url: str) -> bool:
    start_host = host_from_url(start_url)
    candidate_host = host_from_url(candidate_url)
    if not start_host or not candidate_host:
        return False

    if start_host == candidate_host:
        return True
    if candidate_host.endswith("." + start_host):
        return True
    return start_host.endswith("." + candidate_host)


def is_same_subdomain(start_url: str, candidate_url: str) -> bool:
    start_host = host_from_url(start_url)
    return bool(start_host) and start_host == host_from_url(candidate_url)


def is_child_url(start_url: str, candidate_url: str) -> bool:
    if not is_same_subdomain(start_url, candidate_url):
        return False

    base_path = path_from_url(start_url).rstrip("/") + "/"
    if base_path == "/":
        return True

    candidate_path = path_from_url(candidate_url).rstrip("/") + "/"
    return candidate_path.lower().startswith(base_path.lower())


def is_external_url(start_url: str, candidate_url: str) -> bool:
    return not is_same_subdomain(start_url, candidate_url)


def is_listed_domain(candidate_url: str, domains: Iterable[str]) -> bool:
    host = host_from_url(candidate_url)
    return any(host == domain.strip().lower() for domain in domains)


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile exclusion patterns, skipping (and logging) malformed ones."""

    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            LOGGER.warning("Skipping malformed exclusion pattern %r: %s", pattern, exc)
    return compiled


@dataclass(frozen=True, slots=True)
class FilterDecision:
    """Outcome of screening one candidate link."""

    url: str
    reason: FilterReason | None = None

    @property
    def accepted(self) -> bool:
        return self.reason is None


class LinkPolicy:
    """Screens absolute candidate URLs against a crawl configuration."""

    def __init__(self, config: CrawlConfig, *, start_url: str | None = None) -> None:
        self.config = config
        self.start_url = start_url or config.start_url
        self._exclusions = compile_patterns(config.exclude_link_patterns)

    def evaluate(self, candidate_url: str) -> FilterDecision:
        """Run every check in order; the first failing one is reported."""

        config = self.config
        start = self.start_url

        if not is_http_url(candidate_url):
            return FilterDecision(candidate_url, FilterReason.NOT_HTTP)

        if config.denied_domains and is_listed_domain(candidate_url, config.denied_domains):
            return FilterDecision(candidate_url, FilterReason.DENIED_DOMAIN)

        if config.restrict_to_same_root_domain and not is_same_root_domain(start, candidate_url):
            return FilterDecision(candidate_url, FilterReason.NOT_SAME_ROOT_DOMAIN)

        if config.restrict_to_same_subdomain and not is_same_subdomain(start, candidate_url):
            return FilterDecision(candidate_url, FilterReason.NOT_SAME_SUBDOMAIN)

        if config.restrict_to_child_urls and not is_child_url(start, candidate_url):
            return FilterDecision(candidate_url, FilterReason.NOT_CHILD_URL)

        if config.allowed_domains and not is_listed_domain(candidate_url, config.allowed_domains):
            return FilterDecision(candidate_url, FilterReason.NOT_ALLOWED_DOMAIN)

        if not config.follow_external_links and is_external_url(start, candidate_url):
            return FilterDecision(candidate_url, FilterReason.EXTERNAL_LINK)

        if any(pattern.search(candidate_url) for pattern in self._exclusions):
            return FilterDecision(candidate_url, FilterReason.EXCLUDED_PATTERN)

        return FilterDecision(candidate_url)

    def may_enqueue(self, candidate_url: str) -> bool:
        return self.evaluate(candidate_url).accepted


def may_enqueue(start_url: str, candidate_url: str, config: CrawlConfig) -> bool:
    """Functional form of `LinkPolicy.may_enqueue` for a one-off check."""

    return LinkPolicy(config, start_url=start_url).may_enqueue(candidate_url)


__all__ = [
    "FilterDecision",
    "FilterReason",
    "LinkPolicy",
    "compile_patterns",
    "is_child_url",
    "is_external_url",
    "is_listed_domain",
    "is_same_root_domain",
    "is_same_subdomain",
    "may_enqueue",
]
