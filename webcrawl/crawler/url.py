"""URL normalization helpers.

Canonicalization is shallow: links are resolved against a base
URL and have their fragment removed, nothing else. Trailing slashes, host
case, and query ordering are kept as written, so two URLs that differ only
in those respects are different visitation keys.
"""

from __future__ import annotations

import logging
from urllib.parse import SplitResult, urljoin, urlsplit

from .constants import NON_WEB_SCHEMES

LOGGER = logging.getLogger(__name__)

DEFAULT_ALLOWED_SCHEMES = ("http", "https")


def strip_fragment(url: str) -> str:
    """Drop everything from the first `#` on."""

    index = url.find("#")
    return url if index < 0 else url[:index]


def is_http_url(url: str | None) -> bool:
    """Return True if URL is absolute with an http/https scheme and a host."""

    if not url:
        return False
    try:
        parsed = urlsplit(url.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in DEFAULT_ALLOWED_SCHEMES and bool(parsed.netloc)


def host_from_url(url: str) -> str:
    """Lowercased host of an absolute URL, or an empty string."""

    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def path_from_url(url: str) -> str:
    try:
        return urlsplit(url).path or "/"
    except ValueError:
        return "/"


def _authority(parsed: SplitResult) -> str:
    # Host and port without any userinfo.
    return parsed.netloc.rsplit("@", maxsplit=1)[-1]


def domain_root(url: str) -> str:
    """Scheme, host, and port of a URL, e.g. `https://example.com:8443`."""

    try:
        parsed = urlsplit(url)
    except ValueError:
        return url
    if not parsed.scheme or not parsed.netloc:
        return url
    return f"{parsed.scheme}://{_authority(parsed)}"


def _has_valid_authority(parsed: SplitResult) -> bool:
    if not parsed.netloc or not parsed.hostname:
        return False
    try:
        parsed.port
    except ValueError:
        return False
    return True


def _resolve(base: SplitResult, base_url: str, candidate: str) -> str:
    if candidate.startswith("//"):
        return f"{base.scheme}:{candidate}"
    if candidate.startswith("/"):
        return f"{base.scheme}://{_authority(base)}{candidate}"
    if candidate.startswith("?"):
        return f"{base.scheme}://{base.netloc}{base.path}{candidate}"
    if candidate.startswith("#"):
        return strip_fragment(base_url)
    return urljoin(base_url, candidate)


def normalize_url(base_url: str | None, candidate: str | None) -> str | None:
    """Resolve `candidate` against `base_url` into an absolute, fragment-free URL.

    Returns `None` for blank input, non-web schemes (`mailto:`, `javascript:`,
    ...), anything that does not end up as http/https, and anything that
    fails to parse. Never raises.
    """

    if candidate is None:
        return None

    candidate = candidate.strip()
    if not candidate:
        return None

    lowered = candidate.lower()
    if lowered.startswith(NON_WEB_SCHEMES):
        return None

    try:
        if lowered.startswith(("http://", "https://")):
            if not _has_valid_authority(urlsplit(candidate)):
                return None
            return strip_fragment(candidate)

        base_url = (base_url or "").strip()
        if not base_url:
            LOGGER.debug("Empty base URL while normalizing %r", candidate)
            return None

        base = urlsplit(base_url)
        if base.scheme.lower() not in DEFAULT_ALLOWED_SCHEMES or not base.netloc:
            LOGGER.debug("Base URL has unsupported scheme: %r", base_url)
            return None

        resolved = _resolve(base, base_url, candidate)
        final = urlsplit(resolved)
        if final.scheme.lower() not in DEFAULT_ALLOWED_SCHEMES:
            return None
        if not _has_valid_authority(final):
            return None
        return strip_fragment(resolved)
    except ValueError as exc:
        LOGGER.debug("Unable to normalize %r against %r: %s", candidate, base_url, exc)
        return None


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "domain_root",
    "host_from_url",
    "is_http_url",
    "normalize_url",
    "path_from_url",
    "strip_fragment",
]
