"""In-memory stand-ins for the network collaborators used by the crawler."""

from __future__ import annotations

import threading

from webcrawl.crawler.renderer import RenderDownloadError
from webcrawl.crawler.types import ContentTypeInfo, HttpResponse, RenderResult, as_headers

HTML = "text/html; charset=utf-8"


def page(*hrefs: str, title: str = "page") -> bytes:
    links = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return f"<html><head><title>{title}</title></head><body>{links}</body></html>".encode()


class FakeFetcher:
    """Serves canned responses keyed by exact URL and records every call.

    A route value may be an `HttpResponse`, a `(status, headers, body)`
    tuple, or an exception instance to raise. Unknown URLs get a 404.
    """

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str]] = []
        self.probe_calls: list[str] = []
        self.probe_result: ContentTypeInfo | None = None
        self.closed = False
        self._lock = threading.Lock()

    def add(self, url: str, body: bytes | None = b"", *, status: int = 200, headers=None) -> None:
        merged = {"Content-Type": HTML}
        merged.update(headers or {})
        self.routes[url] = (status, merged, body)

    def redirect(self, url: str, location: str, *, status: int = 301) -> None:
        self.routes[url] = (status, {"Location": location}, b"")

    def send(self, url, *, method="GET", headers=None, timeout=None) -> HttpResponse:
        with self._lock:
            self.calls.append((method, url))

        route = self.routes.get(url)
        if isinstance(route, BaseException):
            raise route
        if isinstance(route, HttpResponse):
            return route
        if route is None:
            return HttpResponse(url=url, status_code=404, headers=as_headers({}), body=b"")

        status, route_headers, body = route
        return HttpResponse(
            url=url,
            status_code=status,
            headers=as_headers(route_headers),
            body=None if method == "HEAD" else body,
        )

    def probe_content_type(self, url: str) -> ContentTypeInfo:
        with self._lock:
            self.probe_calls.append(url)
        return self.probe_result or ContentTypeInfo()

    def fetched_urls(self, method: str = "GET") -> list[str]:
        with self._lock:
            return [url for call_method, url in self.calls if call_method == method]

    def close(self) -> None:
        self.closed = True


class FakeRenderer:
    """Renders from a URL -> HTML map; `download_urls` simulate file downloads."""

    def __init__(self, pages: dict[str, str] | None = None, download_urls=()) -> None:
        self.pages = dict(pages or {})
        self.download_urls = set(download_urls)
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def render(self, url: str, user_agent: str) -> RenderResult:
        self.calls.append((url, user_agent))
        if url in self.download_urls:
            raise RenderDownloadError(f"Download triggered for {url}")
        return RenderResult(
            url=url,
            status_code=200,
            html=self.pages.get(url, "<html><body>rendered</body></html>"),
            headers=as_headers({"Content-Type": HTML}),
        )

    def close(self) -> None:
        self.closed = True
