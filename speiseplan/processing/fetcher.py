"""
HTTP Fetcher
============

Single-attempt HTTP GET over a shared aiohttp session. A response of any
status is returned to the caller; only the absence of a response raises.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import aiohttp
import certifi

from ..config.settings import get_settings
from ..utils.exceptions import ErrorCode, TransportError
from ..utils.logging import get_logger_for_component


@dataclass
class FetchResponse:
    """Status and body of one HTTP response.

    ``read_error`` is set when the status line arrived but the body could not
    be read; ``body`` is then empty.
    """

    url: str
    status: int
    body: bytes
    elapsed_seconds: float = 0.0
    read_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 200

    @property
    def usable_body(self) -> bool:
        return self.read_error is None and bool(self.body)


class HttpFetcher:
    """aiohttp based transport for the feed and detail pages."""

    def __init__(self, max_concurrent: int = None, timeout: int = None):
        """Initialize fetcher.

        Args:
            max_concurrent: Maximum concurrent connections (default from config)
            timeout: Request timeout in seconds (default from config)
        """
        settings = get_settings()
        self.max_concurrent = max_concurrent or settings.limits.max_concurrent_details
        self.timeout = timeout or settings.limits.request_timeout
        self.user_agent = f"{settings.app_name}/{settings.version}"
        self.logger = get_logger_for_component("fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(
            ssl=self.ssl_context,
            limit=self.max_concurrent * 2,
            limit_per_host=self.max_concurrent,
            enable_cleanup_closed=True,
        )

        timeout = aiohttp.ClientTimeout(total=self.timeout)

        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/xml, text/html, */*",
            "Accept-Encoding": "gzip, deflate",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch(
        self, url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> FetchResponse:
        """Fetch a URL once.

        Args:
            url: URL to fetch
            session: Session to reuse; a temporary one is opened otherwise

        Returns:
            FetchResponse with status and raw body

        Raises:
            TransportError: If no response could be obtained
        """
        if session is None:
            async with self.get_session() as own_session:
                return await self.fetch(url, own_session)

        start_time = datetime.now(timezone.utc)
        self.logger.debug(f"Fetching: {url}")

        read_error = None
        try:
            async with session.get(url) as response:
                try:
                    body = await response.read()
                except aiohttp.ClientPayloadError as e:
                    # A response arrived, so this is not a transport failure
                    self.logger.warning(f"Unreadable body from {url}: {e}")
                    body, read_error = b"", str(e) or type(e).__name__

        except asyncio.TimeoutError:
            error_msg = f"Request timeout after {self.timeout}s"
            self.logger.warning(f"Fetch timeout for {url}: {error_msg}")
            raise TransportError(
                error_msg, url=url, error_code=ErrorCode.FEED_FETCH_TIMEOUT
            )

        except aiohttp.InvalidURL as e:
            raise TransportError(
                f"Invalid URL: {e}", url=url, error_code=ErrorCode.FEED_INVALID_URL
            ) from e

        except aiohttp.ClientError as e:
            self.logger.warning(f"Fetch failed for {url}: {e}")
            raise TransportError(f"Fetch error: {e}", url=url) from e

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        self.logger.debug(
            f"Fetched {url}: HTTP {response.status}, {len(body)} bytes in {elapsed:.2f}s"
        )

        return FetchResponse(
            url=url,
            status=response.status,
            body=body,
            elapsed_seconds=elapsed,
            read_error=read_error,
        )
