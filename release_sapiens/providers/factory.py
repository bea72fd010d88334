"""Factory functions building providers from settings."""

import structlog

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.providers.bitbucket_rest import BitbucketRestProvider
from release_sapiens.providers.slack_rest import SlackRestProvider

log = structlog.get_logger(__name__)


def create_pull_request_provider(settings: ReleaseSettings) -> BitbucketRestProvider:
    """Create the Bitbucket provider described by ``settings.bitbucket``."""
    config = settings.bitbucket
    return BitbucketRestProvider(
        api_url=str(config.api_url),
        token=config.access_token.get_secret_value(),
        username=config.username,
        default_branch=config.default_branch,
        timeout=config.timeout,
    )


def create_message_provider(settings: ReleaseSettings) -> SlackRestProvider | None:
    """Create the Slack provider, or None when Slack is not configured.

    Release-channel notifications are skipped when there is no message
    provider.
    """
    if settings.slack is None:
        if settings.release.notifies_release_channel:
            log.warning("release_channel_without_slack", channel=settings.release.release_channel)
        return None

    return SlackRestProvider(
        api_url=str(settings.slack.api_url),
        token=settings.slack.bot_token.get_secret_value(),
        as_user=settings.slack.as_user,
    )
