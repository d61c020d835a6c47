# oil_monitor/scrapers/page_fetcher.py

"""HTTP retrieval of the price listing page."""

import logging
import time
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from oil_monitor.config.settings import Settings
from oil_monitor.errors import FetchError


class PageFetcher:
    """Fetch a page as text with retries and a cloudscraper fallback."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.logger = logging.getLogger("oil_monitor.fetcher")
        self.settings = settings or Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._current_delay: float = self.settings.REQUEST_DELAY

    def _headers(self) -> dict[str, str]:
        return {
            **self.settings.DEFAULT_HEADERS,
            "User-Agent": self.settings.USER_AGENT,
        }

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, max_delay)
        self.logger.warning(
            "Rate-limited, delay escalated to %.1fs",
            self._current_delay,
        )

    def _fetch_get(self, url: str) -> str | None:
        """GET with retries and adaptive delay; None when exhausted."""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=self._headers(),
                    timeout=self.settings.REQUEST_TIMEOUT,
                )
                if resp.status_code == 200:
                    self._current_delay = self.settings.REQUEST_DELAY
                    return str(resp.text)
                self.logger.warning(
                    "HTTP %d on attempt %d for %s",
                    resp.status_code,
                    attempt + 1,
                    url,
                )
                if resp.status_code in (429, 403):
                    self._escalate_delay()
                time.sleep(self._current_delay)
            except Exception as exc:
                self.logger.warning(
                    "Request error on attempt %d: %s",
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * (attempt + 1))
        return None

    def _fetch_fallback(self, url: str) -> str | None:
        """Single cloudscraper attempt for JS-challenged responses."""
        self.logger.info(
            "curl_cffi exhausted, falling back to cloudscraper"
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url,
                headers=self._headers(),
                timeout=self.settings.REQUEST_TIMEOUT,
            )
            if resp.status_code == 200:
                return str(resp.text)
            self.logger.error(
                "cloudscraper fallback got HTTP %d", resp.status_code,
            )
        except Exception as exc:
            self.logger.error(
                "cloudscraper fallback also failed: %s",
                exc,
                exc_info=True,
            )
        return None

    def fetch(self, url: str | None = None) -> str:
        """Return the page body or raise :class:`FetchError`."""
        target = url or self.settings.TARGET_URL
        text = self._fetch_get(target)
        if text is None:
            text = self._fetch_fallback(target)
        if text is None:
            raise FetchError(f"Fetch failed for {target}")
        self.logger.debug("Fetched %d chars from %s", len(text), target)
        return text
