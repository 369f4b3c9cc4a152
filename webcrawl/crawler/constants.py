"""Default values shared by config, fetcher, and pipeline."""

from __future__ import annotations

DEFAULT_USER_AGENT = "webcrawl"

DEFAULT_IGNORE_ROBOTS_TXT = False
DEFAULT_INCLUDE_SITEMAP = True
DEFAULT_FOLLOW_LINKS = True
DEFAULT_FOLLOW_REDIRECTS = True
DEFAULT_FOLLOW_EXTERNAL_LINKS = True
DEFAULT_RESTRICT_TO_SAME_ROOT_DOMAIN = True
DEFAULT_RESTRICT_TO_SAME_SUBDOMAIN = False
DEFAULT_RESTRICT_TO_CHILD_URLS = True

DEFAULT_MAX_CRAWL_DEPTH = 5
DEFAULT_MAX_PARALLEL_TASKS = 8
DEFAULT_THROTTLE_MS = 100
DEFAULT_DELAY_MS = 0
DEFAULT_MAX_REDIRECTS = 20
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_PROBE_TIMEOUT_SECONDS = 10.0
DEFAULT_USE_HEADLESS_BROWSER = False

DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Orchestrator drain interval; network I/O dominates so a short fixed poll is enough.
POLL_INTERVAL_SECONDS = 0.01

ROBOTS_TXT_PATH = "/robots.txt"
SITEMAP_XML_PATH = "/sitemap.xml"

REDIRECT_STATUS_MIN = 300
REDIRECT_STATUS_MAX = 308
THROTTLE_STATUS = 429
MAX_HTTP_STATUS = 599

NON_WEB_SCHEMES = (
    "javascript:",
    "mailto:",
    "tel:",
    "ftp:",
    "data:",
    "about:",
    "chrome:",
    "file:",
)

NAVIGABLE_MEDIA_TYPES = (
    "text/html",
    "application/xhtml+xml",
    "application/xml",
    "text/xml",
)

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
