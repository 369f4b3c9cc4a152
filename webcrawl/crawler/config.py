"""Typed crawl configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_DELAY_MS,
    DEFAULT_FOLLOW_EXTERNAL_LINKS,
    DEFAULT_FOLLOW_LINKS,
    DEFAULT_FOLLOW_REDIRECTS,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_IGNORE_ROBOTS_TXT,
    DEFAULT_INCLUDE_SITEMAP,
    DEFAULT_MAX_CRAWL_DEPTH,
    DEFAULT_MAX_PARALLEL_TASKS,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_RESTRICT_TO_CHILD_URLS,
    DEFAULT_RESTRICT_TO_SAME_ROOT_DOMAIN,
    DEFAULT_RESTRICT_TO_SAME_SUBDOMAIN,
    DEFAULT_THROTTLE_MS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USE_HEADLESS_BROWSER,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import AuthType, JSONDict
from .url import normalize_url


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        raise ValueError(f"Expected a list for '{key}', got a string: {value!r}")
    return [str(item).strip() for item in value if str(item).strip()]


def _to_auth_type(value: Any) -> AuthType:
    if isinstance(value, AuthType):
        return value
    if value is None:
        return AuthType.NONE
    if isinstance(value, str):
        return AuthType(value.strip().lower())
    raise ValueError(f"Invalid authentication type: {value!r}")


@dataclass(slots=True)
class AuthConfig:
    """Credentials attached to every request made during a crawl."""

    type: AuthType = AuthType.NONE
    username: str | None = None
    password: str | None = None
    api_key_header: str | None = None
    api_key: str | None = None
    bearer_token: str | None = None

    def __post_init__(self) -> None:
        self.type = _to_auth_type(self.type)

        if self.type == AuthType.BASIC and not self.username:
            raise ValueError("basic authentication requires a username")
        if self.type == AuthType.API_KEY and not (self.api_key_header and self.api_key):
            raise ValueError("api_key authentication requires api_key_header and api_key")
        if self.type == AuthType.BEARER_TOKEN and not self.bearer_token:
            raise ValueError("bearer_token authentication requires a bearer_token")

    def to_dict(self) -> JSONDict:
        return {
            "type": self.type.value,
            "username": self.username,
            "password": self.password,
            "api_key_header": self.api_key_header,
            "api_key": self.api_key,
            "bearer_token": self.bearer_token,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "AuthConfig":
        payload = payload or {}
        return cls(
            type=_to_auth_type(payload.get("type")),
            username=payload.get("username"),
            password=payload.get("password"),
            api_key_header=payload.get("api_key_header"),
            api_key=payload.get("api_key"),
            bearer_token=payload.get("bearer_token"),
        )


@dataclass(slots=True)
class CrawlConfig:
    """Top-level crawl configuration used by pipeline/retrieval/fetcher."""

    start_url: str
    user_agent: str = DEFAULT_USER_AGENT
    auth: AuthConfig = field(default_factory=AuthConfig)

    ignore_robots_txt: bool = DEFAULT_IGNORE_ROBOTS_TXT
    include_sitemap: bool = DEFAULT_INCLUDE_SITEMAP

    follow_links: bool = DEFAULT_FOLLOW_LINKS
    follow_redirects: bool = DEFAULT_FOLLOW_REDIRECTS
    follow_external_links: bool = DEFAULT_FOLLOW_EXTERNAL_LINKS

    restrict_to_same_root_domain: bool = DEFAULT_RESTRICT_TO_SAME_ROOT_DOMAIN
    restrict_to_same_subdomain: bool = DEFAULT_RESTRICT_TO_SAME_SUBDOMAIN
    restrict_to_child_urls: bool = DEFAULT_RESTRICT_TO_CHILD_URLS

    allowed_domains: list[str] = field(default_factory=list)
    denied_domains: list[str] = field(default_factory=list)
    exclude_link_patterns: list[str] = field(default_factory=list)

    max_crawl_depth: int = DEFAULT_MAX_CRAWL_DEPTH
    max_parallel_tasks: int = DEFAULT_MAX_PARALLEL_TASKS
    throttle_ms: int = DEFAULT_THROTTLE_MS
    delay_ms: int = DEFAULT_DELAY_MS
    max_redirects: int = DEFAULT_MAX_REDIRECTS

    use_headless_browser: bool = DEFAULT_USE_HEADLESS_BROWSER
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))

    def __post_init__(self) -> None:
        self.start_url = (self.start_url or "").strip()
        if not self.start_url:
            raise ValueError("CrawlConfig requires a start_url")

        if normalize_url(self.start_url, self.start_url) is None:
            raise ValueError(f"start_url must be an absolute http(s) URL: {self.start_url!r}")

        self.user_agent = (self.user_agent or "").strip()
        if not self.user_agent:
            raise ValueError("user_agent cannot be empty")

        if self.auth is None:
            self.auth = AuthConfig()

        if self.max_crawl_depth < 0:
            raise ValueError("max_crawl_depth must be >= 0")
        if self.max_parallel_tasks < 1:
            raise ValueError("max_parallel_tasks must be >= 1")
        if self.throttle_ms < 0:
            raise ValueError("throttle_ms must be >= 0")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self.allowed_domains = [domain.lower() for domain in self.allowed_domains]
        self.denied_domains = [domain.lower() for domain in self.denied_domains]

    def headers(self) -> dict[str, str]:
        """Return request headers merged with the configured user agent."""

        merged: dict[str, str] = dict(self.default_headers)
        merged["User-Agent"] = self.user_agent
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "start_url": self.start_url,
            "user_agent": self.user_agent,
            "auth": self.auth.to_dict(),
            "ignore_robots_txt": self.ignore_robots_txt,
            "include_sitemap": self.include_sitemap,
            "follow_links": self.follow_links,
            "follow_redirects": self.follow_redirects,
            "follow_external_links": self.follow_external_links,
            "restrict_to_same_root_domain": self.restrict_to_same_root_domain,
            "restrict_to_same_subdomain": self.restrict_to_same_subdomain,
            "restrict_to_child_urls": self.restrict_to_child_urls,
            "allowed_domains": self.allowed_domains,
            "denied_domains": self.denied_domains,
            "exclude_link_patterns": self.exclude_link_patterns,
            "max_crawl_depth": self.max_crawl_depth,
            "max_parallel_tasks": self.max_parallel_tasks,
            "throttle_ms": self.throttle_ms,
            "delay_ms": self.delay_ms,
            "max_redirects": self.max_redirects,
            "use_headless_browser": self.use_headless_browser,
            "timeout_seconds": self.timeout_seconds,
            "default_headers": self.default_headers,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        if "start_url" not in payload:
            raise ValueError("Config missing required key: 'start_url'")

        return cls(
            start_url=str(payload["start_url"]),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            auth=AuthConfig.from_dict(payload.get("auth")),
            ignore_robots_txt=_as_bool(
                payload.get("ignore_robots_txt", DEFAULT_IGNORE_ROBOTS_TXT),
                "ignore_robots_txt",
            ),
            include_sitemap=_as_bool(
                payload.get("include_sitemap", DEFAULT_INCLUDE_SITEMAP),
                "include_sitemap",
            ),
            follow_links=_as_bool(payload.get("follow_links", DEFAULT_FOLLOW_LINKS), "follow_links"),
            follow_redirects=_as_bool(
                payload.get("follow_redirects", DEFAULT_FOLLOW_REDIRECTS),
                "follow_redirects",
            ),
            follow_external_links=_as_bool(
                payload.get("follow_external_links", DEFAULT_FOLLOW_EXTERNAL_LINKS),
                "follow_external_links",
            ),
            restrict_to_same_root_domain=_as_bool(
                payload.get("restrict_to_same_root_domain", DEFAULT_RESTRICT_TO_SAME_ROOT_DOMAIN),
                "restrict_to_same_root_domain",
            ),
            restrict_to_same_subdomain=_as_bool(
                payload.get("restrict_to_same_subdomain", DEFAULT_RESTRICT_TO_SAME_SUBDOMAIN),
                "restrict_to_same_subdomain",
            ),
            restrict_to_child_urls=_as_bool(
                payload.get("restrict_to_child_urls", DEFAULT_RESTRICT_TO_CHILD_URLS),
                "restrict_to_child_urls",
            ),
            allowed_domains=_as_str_list(payload.get("allowed_domains"), "allowed_domains"),
            denied_domains=_as_str_list(payload.get("denied_domains"), "denied_domains"),
            exclude_link_patterns=_as_str_list(
                payload.get("exclude_link_patterns"),
                "exclude_link_patterns",
            ),
            max_crawl_depth=_as_int(
                payload.get("max_crawl_depth", DEFAULT_MAX_CRAWL_DEPTH),
                "max_crawl_depth",
            ),
            max_parallel_tasks=_as_int(
                payload.get("max_parallel_tasks", DEFAULT_MAX_PARALLEL_TASKS),
                "max_parallel_tasks",
            ),
            throttle_ms=_as_int(payload.get("throttle_ms", DEFAULT_THROTTLE_MS), "throttle_ms"),
            delay_ms=_as_int(payload.get("delay_ms", DEFAULT_DELAY_MS), "delay_ms"),
            max_redirects=_as_int(
                payload.get("max_redirects", DEFAULT_MAX_REDIRECTS),
                "max_redirects",
            ),
            use_headless_browser=_as_bool(
                payload.get("use_headless_browser", DEFAULT_USE_HEADLESS_BROWSER),
                "use_headless_browser",
            ),
            timeout_seconds=float(payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "AuthConfig",
    "CrawlConfig",
    "load_config",
    "save_config",
]
