"""
Rate-limited HTTP access for crawl targets and the nutrition API.

Every outbound GET goes through one `Fetcher`, which asks its `RateLimiter`
for permission first. The limiter is a plain object owned by the caller and
shared by reference, so one run has exactly one clock and a test can build a
fresh one with a fake clock.

Dependencies: requests
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests

log = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "MealPlannerBot/1.0 (recipe-crawler; educational project)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "sv-SE,sv;q=0.9,en;q=0.5",
}
MIN_DELAY_S = 1.5


class FetchError(RuntimeError):
    def __init__(self, url: str, status: int):
        super().__init__(f"HTTP {status} for {url}")
        self.url = url
        self.status = status


class RateLimiter:
    """
    Minimum spacing between consecutive requests, across all hosts.
    The mark is taken right before the request is sent, so the outcome of
    the request never affects the clock.
    """

    def __init__(
        self,
        min_delay: float = MIN_DELAY_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_delay = min_delay
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> None:
        if self._last is not None:
            elapsed = self._clock() - self._last
            if elapsed < self.min_delay:
                self._sleep(self.min_delay - elapsed)
        self._last = self._clock()


class Fetcher:
    def __init__(self, limiter: RateLimiter, timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.limiter = limiter
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    def _get(self, url: str) -> requests.Response:
        self.limiter.wait()
        resp = self.session.get(url, timeout=self.timeout)
        if not 200 <= resp.status_code < 300:
            raise FetchError(url, resp.status_code)
        log.debug("GET %s -> %s", url, resp.status_code)
        return resp

    def get_text(self, url: str) -> str:
        return self._get(url).text

    def get_json(self, url: str) -> Any:
        return self._get(url).json()
