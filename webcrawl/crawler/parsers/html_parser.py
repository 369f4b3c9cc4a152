"""Anchor href discovery for HTML-like response bodies."""

from __future__ import annotations

from bs4 import BeautifulSoup

_HTML_MARKERS = ("<html", "<body", "<head")


def _coerce_html_text(html: str | bytes) -> str:
    if isinstance(html, bytes):
        return html.decode("utf-8", errors="replace")
    return html


def looks_like_html(html: str | bytes | None) -> bool:
    """Cheap sniff so binary bodies mislabelled as text are not parsed."""

    if not html:
        return False

    text = _coerce_html_text(html).lstrip()
    if text.startswith("<"):
        return True

    lowered = text.lower()
    return any(marker in lowered for marker in _HTML_MARKERS)


def extract_hrefs(html: str | bytes | None) -> list[str]:
    """Return raw `<a href>` values in document order, unresolved.

    Blank hrefs are dropped; duplicates are kept so callers decide how to
    dedup after normalization.
    """

    if not looks_like_html(html):
        return []

    soup = BeautifulSoup(_coerce_html_text(html), "lxml")

    hrefs: list[str] = []
    for element in soup.find_all("a", href=True):
        href = element.get("href")
        if isinstance(href, str) and href.strip():
            hrefs.append(href.strip())
    return hrefs


__all__ = ["extract_hrefs", "looks_like_html"]
