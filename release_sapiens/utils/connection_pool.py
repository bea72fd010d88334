"""
HTTP connection pooling for the Bitbucket and Slack REST providers.

One pool is owned by each provider instance and lives as long as the provider
is connected; nothing is shared between providers or cached across runs.
"""

import asyncio
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)


class HTTPConnectionPool:
    """Lazily initialized ``httpx.AsyncClient`` bound to one API base URL."""

    def __init__(
        self,
        base_url: str,
        max_connections: int = 10,
        max_keepalive_connections: int = 5,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> None:
        self.base_url = base_url
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections
        self.timeout = timeout
        self.headers = headers or {}
        self.auth = auth
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def initialize(self) -> None:
        """Create the underlying client if it does not exist yet."""
        async with self._lock:
            if self._client is not None:
                return

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                limits=httpx.Limits(
                    max_keepalive_connections=self.max_keepalive_connections,
                    max_connections=self.max_connections,
                    keepalive_expiry=30.0,
                ),
                timeout=self.timeout,
                http2=True,
                headers=self.headers,
                auth=self.auth,
            )
            log.info("connection_pool_initialized", base_url=self.base_url)

    async def close(self) -> None:
        """Close the underlying client."""
        async with self._lock:
            if self._client:
                await self._client.aclose()
                self._client = None
                log.info("connection_pool_closed", base_url=self.base_url)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request relative to the base URL.

        Transport errors (``httpx.TransportError``) propagate; HTTP error
        statuses are returned as-is for the provider to interpret.
        """
        if not self.is_open:
            await self.initialize()

        assert self._client is not None
        response = await self._client.request(method, path, **kwargs)
        log.debug("http_request", method=method, path=path, status=response.status_code)
        return response

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def __aenter__(self) -> "HTTPConnectionPool":
        await self.initialize()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
