"""Browser-render capability for JavaScript-heavy pages."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from requests.structures import CaseInsensitiveDict
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.firefox.options import Options as FirefoxOptions

from .types import RenderResult

LOGGER = logging.getLogger(__name__)

_BLANK_URLS = frozenset({"about:blank", "data:,"})
_EMPTY_DOCUMENTS = frozenset(
    {
        "",
        "<html><head></head><body></body></html>",
    }
)


class RenderError(RuntimeError):
    """The browser could not produce a rendered page."""


class RenderDownloadError(RenderError):
    """Navigation triggered a file download instead of a page render."""


class Renderer(Protocol):
    """Capability: render a URL in a browser and return the final DOM text."""

    def render(self, url: str, user_agent: str) -> RenderResult: ...

    def close(self) -> None: ...


class SeleniumRenderer:
    """Render pages with one shared headless browser.

    Calls are serialized with a lock because a single driver instance is
    unstable under multithreaded use. Downloads are blocked in the browser,
    so a navigation that lands on a blank document is reported as a
    download and the caller falls back to a direct HTTP fetch.
    """

    def __init__(self, *, user_agent: str, timeout_seconds: float = 30.0) -> None:
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds

        self._lock = threading.Lock()
        self._driver = None

    def render(self, url: str, user_agent: str | None = None) -> RenderResult:
        with self._lock:
            driver = self._get_or_create_driver(user_agent or self.user_agent)
            try:
                driver.set_page_load_timeout(max(1, int(self.timeout_seconds)))
                driver.get(url)
                final_url = driver.current_url or url
                html = driver.page_source or ""
            except WebDriverException as exc:
                if "download" in str(exc).lower():
                    raise RenderDownloadError(f"Download triggered for {url}") from exc
                raise RenderError(f"{exc.__class__.__name__}: {exc}") from exc

        if final_url in _BLANK_URLS or "".join(html.split()).lower() in _EMPTY_DOCUMENTS:
            raise RenderDownloadError(f"No document rendered for {url}")

        return RenderResult(
            url=final_url,
            status_code=200,
            html=html,
            headers=CaseInsensitiveDict({"Content-Type": "text/html; charset=utf-8"}),
        )

    def close(self) -> None:
        with self._lock:
            if self._driver is None:
                return
            try:
                self._driver.quit()
            except WebDriverException as exc:
                LOGGER.debug("Error while closing browser: %s", exc)
            finally:
                self._driver = None

    def __enter__(self) -> "SeleniumRenderer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_or_create_driver(self, user_agent: str):
        if self._driver is not None:
            return self._driver

        errors: list[str] = []

        # Try Chrome first.
        try:
            chrome_options = ChromeOptions()
            chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--disable-gpu")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")
            chrome_options.add_argument("--window-size=1920,1080")
            chrome_options.add_argument(f"--user-agent={user_agent}")
            chrome_options.add_experimental_option(
                "prefs",
                {"download_restrictions": 3, "download.prompt_for_download": False},
            )
            self._driver = webdriver.Chrome(options=chrome_options)
            return self._driver
        except WebDriverException as exc:
            errors.append(f"Chrome: {exc}")

        # Fallback to Firefox.
        try:
            firefox_options = FirefoxOptions()
            firefox_options.add_argument("-headless")
            firefox_options.set_preference("general.useragent.override", user_agent)
            firefox_options.set_preference("browser.download.folderList", 2)
            firefox_options.set_preference("browser.download.manager.showWhenStarting", False)
            firefox_options.set_preference("pdfjs.disabled", True)
            self._driver = webdriver.Firefox(options=firefox_options)
            return self._driver
        except WebDriverException as exc:
            errors.append(f"Firefox: {exc}")

        raise RenderError("; ".join(errors) or "No usable Selenium driver found")


__all__ = [
    "RenderDownloadError",
    "RenderError",
    "Renderer",
    "SeleniumRenderer",
]
