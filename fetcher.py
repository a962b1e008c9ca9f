# fetcher.py
"""
Outbound page fetching with timeout, linear backoff and rate-limit handling.

    fetcher = Fetcher(client)
    html = await fetcher.fetch("https://animesalt.cc/series/naruto/")
    url, html = await fetcher.fetch_page("https://animesalt.cc/series/naruto/")

Retries cover network errors, timeouts, 5xx and 429 responses. Attempt ``n``
waits ``retry_delay * n`` seconds before the next one. Any other non-200
status is raised at once as a FetchError carrying the status code.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from httpx import AsyncClient, AsyncHTTPTransport, HTTPStatusError, RequestError

import config
from errors import FetchError

logger = logging.getLogger(__name__)


def create_http_client(timeout: float = config.REQUEST_TIMEOUT) -> AsyncClient:
    """Build the shared client with browser headers and redirect following."""
    transport = AsyncHTTPTransport(retries=1)
    return AsyncClient(
        transport=transport,
        headers=config.HEADERS,
        timeout=timeout,
        follow_redirects=True,
    )


class Fetcher:
    def __init__(
        self,
        client: AsyncClient,
        max_retries: int = config.MAX_RETRIES,
        retry_delay: float = config.RETRY_DELAY,
        timeout: float = config.REQUEST_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    async def fetch(self, url: str) -> str:
        """Return the body of ``url`` or raise FetchError."""
        _, html = await self.fetch_page(url)
        return html

    async def fetch_page(self, url: str) -> Tuple[str, str]:
        """Return ``(final_url, html)``; ``final_url`` is where redirects ended."""
        last_error = None
        last_status = None

        for attempt in range(1, self.max_retries + 1):
            try:
                logger.info(f"Fetching URL: {url} (attempt {attempt}/{self.max_retries})")
                response = await self.client.get(url, timeout=self.timeout)

                if response.status_code == 200:
                    return str(response.url), response.text

                if response.status_code == 429:
                    last_status = 429
                    last_error = "HTTP 429: rate limited"
                    logger.warning(f"Rate limited on {url}, backing off")
                elif response.status_code >= 500:
                    response.raise_for_status()
                else:
                    # 4xx and unfollowed 3xx are not retried
                    raise FetchError(
                        f"HTTP {response.status_code} for {url}",
                        url=url,
                        attempts=attempt,
                        status_code=response.status_code,
                    )
            except HTTPStatusError as e:
                last_status = e.response.status_code
                last_error = f"HTTP {last_status}"
                logger.error(f"HTTP error {last_status} while fetching {url}: {e}")
            except RequestError as e:
                last_status = None
                last_error = str(e) or e.__class__.__name__
                logger.error(f"Network error while fetching {url}: {last_error}")

            if attempt < self.max_retries:
                await self._sleep(self.retry_delay * attempt)

        raise FetchError(
            f"Failed to fetch {url} after {self.max_retries} attempts: {last_error}",
            url=url,
            attempts=self.max_retries,
            status_code=last_status,
        )

    async def fetch_many(self, urls: List[str], concurrency: int = config.BATCH_CONCURRENCY) -> List[Optional[str]]:
        """Fetch several pages at once; a failed page comes back as None."""
        semaphore = asyncio.Semaphore(concurrency)

        async def fetch_one(url: str) -> Optional[str]:
            async with semaphore:
                try:
                    return await self.fetch(url)
                except FetchError as e:
                    logger.warning(f"Batch fetch failed for {url}: {e}")
                    return None

        return await asyncio.gather(*(fetch_one(url) for url in urls))
