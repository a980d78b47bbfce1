"""HTTP client for product pages."""
import logging
import random
from typing import Optional

import httpx

from pricewatch.config import config

logger = logging.getLogger(__name__)

# Small fixed pool; one is picked per request so consecutive hits don't share a fingerprint
USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class FetchError(Exception):
    """Page could not be fetched (network error, timeout or non-2xx status)."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None):
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class PageFetcher:
    """
    Fetches product pages one at a time.

    There are no retries: a failed page keeps its cached price and the next
    scheduled run tries again.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ):
        self.timeout = timeout if timeout is not None else config.FETCH_TIMEOUT
        self.rng = rng or random.Random()
        self.client = httpx.AsyncClient(
            http2=transport is None,
            timeout=self.timeout,
            follow_redirects=True,
            headers=BASE_HEADERS,
            transport=transport,
        )

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    def pick_user_agent(self) -> str:
        return self.rng.choice(USER_AGENTS)

    async def fetch(self, url: str) -> str:
        """Return the page body. Raises FetchError on any failure."""
        headers = {"User-Agent": self.pick_user_agent()}
        try:
            response = await self.client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            # httpx aborts the in-flight request when the timeout fires
            raise FetchError(url, f"timeout after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"network error: {e.__class__.__name__}: {e}") from e

        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)

        logger.debug(f"Fetched {url} -> {response.status_code} bytes={len(response.content)}")
        return response.text
