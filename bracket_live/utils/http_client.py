"""Async HTTP client.

Thin wrapper over httpx with connection pooling and request logging.
There is no automatic retry: callers retry on their own schedule.
"""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AsyncHttpClient:
    """Async HTTP client with connection pooling.

    Usage:
        async with AsyncHttpClient("https://api.example.com") as client:
            response = await client.get("/data")
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        max_connections: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP client.

        Args:
            base_url: Prefix for relative request URLs
            timeout: Total request timeout in seconds
            connect_timeout: Connection timeout in seconds
            max_connections: Maximum concurrent connections
            transport: Optional httpx transport (tests pass an ASGI or mock transport)
        """
        self._base_url = base_url
        self._timeout = httpx.Timeout(timeout, connect=connect_timeout)
        self._limits = httpx.Limits(max_connections=max_connections)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "AsyncHttpClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            limits=self._limits,
            transport=self._transport,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the underlying httpx client."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and raise for non-2xx responses.

        Raises:
            httpx.HTTPError: transport failure or error status
        """
        response = await self.client.request(method, url, **kwargs)
        logger.debug(f"{method} {response.request.url} -> {response.status_code}")
        response.raise_for_status()
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)
