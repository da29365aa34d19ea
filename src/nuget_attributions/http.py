"""Shared aiohttp session handling for HTTP clients."""

import asyncio
from typing import Optional

import aiohttp

# Overall client timeout in seconds and automatic redirect limit
DEFAULT_TIMEOUT = 100
MAX_REDIRECTS = 5


class HttpClient:
    """Base class for components that make HTTP requests.

    Manages a lazily created aiohttp.ClientSession for connection reuse and a
    semaphore bounding the number of requests in flight.
    """

    def __init__(
        self,
        ignore_ssl_errors: bool = False,
        max_concurrency: int = 8,
    ) -> None:
        """Initialize the client.

        Args:
            ignore_ssl_errors: Disable TLS certificate verification.
            max_concurrency: Maximum number of concurrent requests.
        """
        self.ignore_ssl_errors = ignore_ssl_errors
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session.

        Returns:
            The shared aiohttp ClientSession.
        """
        if self._session is None or self._session.closed:
            self._session = self._create_session()
        return self._session

    def _create_session(self) -> aiohttp.ClientSession:
        """Create a new aiohttp.ClientSession.

        Subclasses can override this to provide custom session configuration.
        """
        connector = aiohttp.TCPConnector(
            ttl_dns_cache=300,
            ssl=not self.ignore_ssl_errors,
        )
        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT),
        )

    async def close(self) -> None:
        """Close the aiohttp session.

        Should be called when done using the client to release resources.
        """
        if self._session is not None and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
