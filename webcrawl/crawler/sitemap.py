"""sitemap.xml parsing into crawl seeds."""

from __future__ import annotations

from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag


@dataclass(frozen=True, slots=True)
class SitemapUrl:
    """One `<url>` entry of a sitemap."""

    location: str
    last_modified: str | None = None
    change_frequency: str | None = None
    priority: float | None = None
    images: list[str] = field(default_factory=list)
    videos: list[str] = field(default_factory=list)


def _text_of(element: Tag | None, name: str) -> str | None:
    if element is None:
        return None
    child = element.find(name, recursive=False)
    if child is None:
        return None
    text = child.get_text(strip=True)
    return text or None


def _soup(text: str | bytes) -> BeautifulSoup:
    return BeautifulSoup(text, "xml")


def _root(text: str | bytes | None) -> Tag | None:
    if not text:
        return None
    soup = _soup(text)
    for child in soup.children:
        if isinstance(child, Tag):
            return child
    return None


def is_parseable(text: str | bytes | None) -> bool:
    """Return True when the payload has an XML root element."""

    return _root(text) is not None


def is_sitemap_index(text: str | bytes | None) -> bool:
    root = _root(text)
    return root is not None and root.name == "sitemapindex"


def parse_sitemap_index(text: str | bytes | None) -> list[str]:
    """Return the child sitemap locations listed in a sitemap index."""

    root = _root(text)
    if root is None or root.name != "sitemapindex":
        return []

    locations: list[str] = []
    for sitemap in root.find_all("sitemap"):
        location = _text_of(sitemap, "loc")
        if location:
            locations.append(location)
    return locations


def parse_sitemap(text: str | bytes | None) -> list[SitemapUrl]:
    """Return the `<url>` entries of a regular (non-index) sitemap."""

    root = _root(text)
    if root is None or root.name != "urlset":
        return []

    entries: list[SitemapUrl] = []
    for element in root.find_all("url", recursive=False):
        location = _text_of(element, "loc")
        if not location:
            continue

        priority: float | None
        try:
            raw_priority = _text_of(element, "priority")
            priority = None if raw_priority is None else float(raw_priority)
        except ValueError:
            priority = None

        # image:loc and video:content_loc use namespaced tags; lxml-xml keeps the local name.
        images = [
            loc.get_text(strip=True)
            for image in element.find_all("image")
            for loc in image.find_all("loc")
            if loc.get_text(strip=True)
        ]
        videos = [
            loc.get_text(strip=True)
            for video in element.find_all("video")
            for loc in video.find_all(["content_loc", "player_loc"])
            if loc.get_text(strip=True)
        ]

        entries.append(
            SitemapUrl(
                location=location,
                last_modified=_text_of(element, "lastmod"),
                change_frequency=_text_of(element, "changefreq"),
                priority=priority,
                images=images,
                videos=videos,
            )
        )
    return entries


__all__ = [
    "SitemapUrl",
    "is_parseable",
    "is_sitemap_index",
    "parse_sitemap",
    "parse_sitemap_index",
]
