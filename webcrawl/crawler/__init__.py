"""Crawler package: config, shared types, policies, and the crawl pipeline."""

from .config import AuthConfig, CrawlConfig, load_config, save_config
from .fetcher import Fetcher, FetcherClosedError
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .parsers import extract_hrefs
from .pipeline import ErrorCallback, Pipeline, crawl
from .policy import FilterDecision, FilterReason, LinkPolicy, may_enqueue
from .renderer import RenderDownloadError, RenderError, Renderer, SeleniumRenderer
from .retrieval import Retriever
from .robots import RobotsPolicy, RobotsRules, parse_robots_txt
from .sitemap import SitemapUrl, is_sitemap_index, parse_sitemap, parse_sitemap_index
from .stats import StatsCollector
from .types import (
    AuthType,
    ContentTypeInfo,
    FetchBackend,
    HttpResponse,
    QueuedLink,
    RenderResult,
    RetrievalResult,
    RetrievalStatus,
    WebResource,
    is_navigable_content_type,
    utc_now_iso,
)
from .url import domain_root, host_from_url, normalize_url

__all__ = [
    "AuthConfig",
    "AuthType",
    "ContentTypeInfo",
    "CrawlConfig",
    "EnqueueResult",
    "EnqueueStatus",
    "ErrorCallback",
    "FetchBackend",
    "Fetcher",
    "FetcherClosedError",
    "FilterDecision",
    "FilterReason",
    "Frontier",
    "HttpResponse",
    "LinkPolicy",
    "Pipeline",
    "QueuedLink",
    "RenderDownloadError",
    "RenderError",
    "RenderResult",
    "Renderer",
    "Retriever",
    "RetrievalResult",
    "RetrievalStatus",
    "RobotsPolicy",
    "RobotsRules",
    "SeleniumRenderer",
    "SitemapUrl",
    "StatsCollector",
    "WebResource",
    "crawl",
    "domain_root",
    "extract_hrefs",
    "host_from_url",
    "is_navigable_content_type",
    "is_sitemap_index",
    "load_config",
    "may_enqueue",
    "normalize_url",
    "parse_robots_txt",
    "parse_sitemap",
    "parse_sitemap_index",
    "save_config",
    "utc_now_iso",
]
