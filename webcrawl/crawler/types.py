"""Core type definitions for the crawl engine.

Only depends on `constants`, so every other crawler module can import it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from hashlib import md5, sha1, sha256
from pathlib import PurePosixPath
from typing import Mapping
from urllib.parse import unquote, urlsplit

from requests.structures import CaseInsensitiveDict

from .constants import MAX_HTTP_STATUS, NAVIGABLE_MEDIA_TYPES


class AuthType(str, Enum):
    """Authentication mode attached to every crawl request."""

    NONE = "none"
    BASIC = "basic"
    API_KEY = "api_key"
    BEARER_TOKEN = "bearer_token"


class FetchBackend(str, Enum):
    """Backend used to retrieve a resource."""

    REQUESTS = "requests"
    SELENIUM = "selenium"


class RetrievalStatus(str, Enum):
    """Outcome of running one link through the retrieval state machine."""

    FETCHED = "fetched"
    ALIASED = "aliased"
    ALREADY_VISITED = "already_visited"
    INVALID_URL = "invalid_url"
    ROBOTS_DENIED = "robots_denied"
    FAILED = "failed"
    CANCELLED = "cancelled"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]

_LAST_MODIFIED_FORMATS = (
    "%a, %d %b %Y %H:%M:%S GMT",
    "%A, %d-%b-%y %H:%M:%S GMT",
    "%a %b %d %H:%M:%S %Y",
)


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def media_type_of(content_type: str | None) -> str | None:
    """Lowercased media type with charset and other parameters removed."""

    if not content_type:
        return None
    media_type = content_type.split(";", maxsplit=1)[0].strip().lower()
    return media_type or None


def is_navigable_content_type(content_type: str | None) -> bool:
    """Return True for browser-renderable markup (or unknown content type)."""

    if not content_type:
        return True

    lowered = content_type.lower()
    if any(media in lowered for media in NAVIGABLE_MEDIA_TYPES):
        return True

    # HTML is sometimes served as bare text/plain.
    return "text/plain" in lowered and "charset" not in lowered


def parse_etag(value: str | None) -> str | None:
    """Unwrap an ETag header value from its weak prefix and quotes."""

    if not value:
        return None

    etag = value.strip()
    if etag.startswith("W/"):
        etag = etag[2:].strip()
    if len(etag) >= 2 and etag.startswith('"') and etag.endswith('"'):
        return etag[1:-1]
    return etag


def as_headers(headers: Mapping[str, str] | None) -> CaseInsensitiveDict:
    return CaseInsensitiveDict(dict(headers or {}))


@dataclass(frozen=True, slots=True)
class QueuedLink:
    """A link waiting in (or claimed from) the frontier."""

    url: str
    parent_url: str | None = None
    depth: int = 0
    discovered_at: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError("depth must be >= 0")


@dataclass(slots=True)
class HttpResponse:
    """Status, headers, and body returned by the HTTP transport."""

    url: str
    status_code: int
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    body: bytes | None = None

    @property
    def location(self) -> str | None:
        return self.headers.get("Location") or None


@dataclass(slots=True)
class RenderResult:
    """Final DOM text and response metadata returned by a browser render."""

    url: str
    status_code: int
    html: str
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)


@dataclass(slots=True)
class ContentTypeInfo:
    """Result of the metadata-only probe used to choose a fetch strategy.

    When the probe fails `is_navigable` stays True, so the crawler still
    attempts a browser render and produces some content.
    """

    is_navigable: bool = True
    media_type: str | None = None
    content_length: int | None = None
    check_succeeded: bool = False


@dataclass(frozen=True, slots=True)
class WebResource:
    """One retrieved URL, streamed to the caller once retrieval completes."""

    url: str
    parent_url: str | None
    depth: int
    status: int
    content_type: str | None = None
    etag: str | None = None
    md5: str | None = None
    sha1: str | None = None
    sha256: str | None = None
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)
    data: bytes | None = None
    backend: FetchBackend = FetchBackend.REQUESTS
    retrieved_at: str = field(default_factory=utc_now_iso)

    def __post_init__(self) -> None:
        if not 0 <= self.status <= MAX_HTTP_STATUS:
            raise ValueError(f"status out of range: {self.status}")

    @classmethod
    def from_body(
        cls,
        *,
        url: str,
        parent_url: str | None,
        depth: int,
        status: int,
        headers: Mapping[str, str] | None,
        body: bytes | None,
        content_type: str | None = None,
        backend: FetchBackend = FetchBackend.REQUESTS,
    ) -> "WebResource":
        """Build a resource, hashing the body and extracting ETag/content type."""

        header_map = as_headers(headers)
        return cls(
            url=url,
            parent_url=parent_url,
            depth=depth,
            status=status,
            content_type=content_type or media_type_of(header_map.get("Content-Type")),
            etag=parse_etag(header_map.get("ETag")),
            md5=None if body is None else md5(body).hexdigest(),
            sha1=None if body is None else sha1(body).hexdigest(),
            sha256=None if body is None else sha256(body).hexdigest(),
            headers=header_map,
            data=body,
            backend=backend,
        )

    @classmethod
    def unreachable(
        cls,
        *,
        url: str,
        parent_url: str | None,
        depth: int,
        content_type: str | None = None,
    ) -> "WebResource":
        """Status-0 resource for a URL whose response could not be obtained."""

        return cls(
            url=url,
            parent_url=parent_url,
            depth=depth,
            status=0,
            content_type=content_type,
        )

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_length(self) -> int:
        return 0 if self.data is None else len(self.data)

    @property
    def filename(self) -> str:
        path = unquote(urlsplit(self.url).path)
        if not path or path.endswith("/"):
            return ""
        return PurePosixPath(path).name

    @property
    def last_modified(self) -> datetime | None:
        raw = self.headers.get("Last-Modified")
        if not raw:
            return None

        for fmt in _LAST_MODIFIED_FORMATS:
            try:
                parsed = datetime.strptime(raw.strip(), fmt)
            except ValueError:
                continue
            return parsed.replace(tzinfo=timezone.utc)
        return None

    def to_json(self) -> JSONDict:
        """Metadata view of the resource; the body is reported by length only."""

        last_modified = self.last_modified
        return {
            "url": self.url,
            "parent_url": self.parent_url,
            "depth": self.depth,
            "status": self.status,
            "content_type": self.content_type,
            "content_length": self.content_length,
            "etag": self.etag,
            "md5": self.md5,
            "sha1": self.sha1,
            "sha256": self.sha256,
            "last_modified": None if last_modified is None else last_modified.isoformat(),
            "backend": self.backend.value,
            "retrieved_at": self.retrieved_at,
        }


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    """What the retrieval state machine produced for one link."""

    status: RetrievalStatus
    url: str | None = None
    resource: WebResource | None = None
    error: str | None = None

    @property
    def is_new(self) -> bool:
        """Whether the resource was materialized by this retrieval."""

        return self.status == RetrievalStatus.FETCHED and self.resource is not None


__all__ = [
    "AuthType",
    "ContentTypeInfo",
    "FetchBackend",
    "HttpResponse",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "QueuedLink",
    "RenderResult",
    "RetrievalResult",
    "RetrievalStatus",
    "WebResource",
    "as_headers",
    "is_navigable_content_type",
    "media_type_of",
    "parse_etag",
    "utc_now_iso",
]
