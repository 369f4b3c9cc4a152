"""HTTP transport built on `requests`, with crawl authentication attached."""

from __future__ import annotations

import logging
import threading

import requests
from requests.auth import AuthBase, HTTPBasicAuth

from .config import CrawlConfig
from .constants import DEFAULT_PROBE_TIMEOUT_SECONDS
from .types import (
    AuthType,
    ContentTypeInfo,
    HttpResponse,
    as_headers,
    is_navigable_content_type,
    media_type_of,
)

LOGGER = logging.getLogger(__name__)


class FetcherClosedError(RuntimeError):
    """Raised when a request is attempted after `close()`."""


class Fetcher:
    """Send single HTTP requests for the crawl engine.

    Concurrency model:
    - One `requests.Session` per worker thread (sessions are not shared).
    - Redirects are never followed here; the retrieval state machine decides.
    - Transport failures surface as `requests.RequestException`.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config

        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

        self._closed = False
        self._closed_lock = threading.Lock()

    def send(
        self,
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpResponse:
        """Send one request and return status, headers, and body."""

        if self._is_closed():
            raise FetcherClosedError("Fetcher is closed")

        request_headers, auth = self._request_auth(headers)
        response = self._thread_local_session().request(
            method,
            url,
            headers=request_headers,
            auth=auth,
            timeout=timeout or self.config.timeout_seconds,
            allow_redirects=False,
        )
        body = None if method.upper() == "HEAD" else response.content
        return HttpResponse(
            url=url,
            status_code=response.status_code,
            headers=as_headers(response.headers),
            body=body,
        )

    def probe_content_type(self, url: str) -> ContentTypeInfo:
        """Metadata-only HEAD request; failures fall back to "navigable"."""

        info = ContentTypeInfo()
        try:
            response = self.send(url, method="HEAD", timeout=DEFAULT_PROBE_TIMEOUT_SECONDS)
        except (requests.RequestException, FetcherClosedError) as exc:
            LOGGER.debug("Content type check failed for %s: %s", url, exc)
            return info

        if not 200 <= response.status_code < 300:
            return info

        info.media_type = media_type_of(response.headers.get("Content-Type")) or ""
        raw_length = response.headers.get("Content-Length")
        if raw_length and raw_length.strip().isdigit():
            info.content_length = int(raw_length)
        info.check_succeeded = True
        info.is_navigable = is_navigable_content_type(info.media_type)
        return info

    def close(self) -> None:
        """Close all per-thread sessions."""

        with self._closed_lock:
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []

        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    def _request_auth(
        self, extra_headers: dict[str, str] | None
    ) -> tuple[dict[str, str], AuthBase | None]:
        headers = self.config.headers()
        if extra_headers:
            headers.update(extra_headers)

        auth_cfg = self.config.auth
        if auth_cfg.type == AuthType.BASIC:
            return headers, HTTPBasicAuth(auth_cfg.username or "", auth_cfg.password or "")
        if auth_cfg.type == AuthType.API_KEY and auth_cfg.api_key_header:
            headers[auth_cfg.api_key_header] = auth_cfg.api_key or ""
        elif auth_cfg.type == AuthType.BEARER_TOKEN:
            headers["Authorization"] = f"Bearer {auth_cfg.bearer_token}"
        return headers, None

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


__all__ = ["Fetcher", "FetcherClosedError"]
