"""Parser package exports."""

from .html_parser import extract_hrefs, looks_like_html

__all__ = [
    "extract_hrefs",
    "looks_like_html",
]
