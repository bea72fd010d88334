"""Slack provider implementation using the Web API."""

from typing import Any

import httpx
import structlog

from release_sapiens.exceptions import NotificationError
from release_sapiens.providers.base import MessageProvider
from release_sapiens.utils.connection_pool import HTTPConnectionPool

log = structlog.get_logger(__name__)


class SlackRestProvider(MessageProvider):
    """Posts chat messages through ``chat.postMessage``."""

    def __init__(self, api_url: str, token: str, as_user: bool = True, timeout: float = 30.0):
        self.api_url = api_url.rstrip("/")
        self.token = token.strip() if token else token
        self.as_user = as_user
        self.timeout = timeout
        self._pool: HTTPConnectionPool | None = None

    async def connect(self) -> None:
        """Initialize the connection pool."""
        self._pool = HTTPConnectionPool(
            base_url=self.api_url,
            timeout=self.timeout,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json; charset=utf-8",
            },
        )
        await self._pool.initialize()
        log.info("slack_connected", api_url=self.api_url)

    async def disconnect(self) -> None:
        if self._pool is not None:
            await self._pool.close()
        self._pool = None

    async def __aenter__(self) -> "SlackRestProvider":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    async def send_message(self, channel: str, text: str) -> None:
        """Post a message to a channel.

        Slack reports most failures with HTTP 200 and ``"ok": false``, so both
        the status and the payload are checked.
        """
        log.info("send_message", channel=channel)

        if self._pool is None:
            await self.connect()

        assert self._pool is not None
        try:
            response = await self._pool.post(
                "/chat.postMessage",
                json={"channel": channel, "text": text, "as_user": self.as_user},
            )
        except httpx.HTTPError as e:
            raise NotificationError(f"Slack request failed: {e}") from e

        if response.is_error:
            raise NotificationError(
                f"Slack responded with HTTP {response.status_code}",
                status_code=response.status_code,
                response_text=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise NotificationError("Slack returned a response that is not JSON", response_text=response.text) from e

        if not isinstance(payload, dict):
            raise NotificationError("unknown_error", response_text=response.text)

        if not payload.get("ok", False):
            raise NotificationError(payload.get("error") or "unknown_error", response_text=response.text)
