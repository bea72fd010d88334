"""Best-effort release-channel notifications."""

import structlog

from release_sapiens.exceptions import NotificationError
from release_sapiens.providers.base import MessageProvider

log = structlog.get_logger(__name__)


class ReleaseNotifier:
    """Send release reports to a chat channel without failing the release.

    A notifier without a message provider drops every message.
    """

    def __init__(self, provider: MessageProvider | None = None) -> None:
        self.provider = provider

    async def notify(self, channel: str, text: str) -> NotificationError | None:
        """Post ``text`` to ``channel``.

        Returns:
            The delivery error, or None if the message was sent or skipped.
        """
        if self.provider is None:
            log.debug("notification_skipped", channel=channel, reason="no_message_provider")
            return None

        try:
            await self.provider.send_message(channel, text)
        except NotificationError as e:
            log.error("notification_failed", channel=channel, error=e.message, status=e.status_code)
            return e

        log.info("notification_sent", channel=channel)
        return None
