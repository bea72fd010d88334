"""
Release event: the entry point the chat host invokes.

Wires the stages of a release run together:

    extract links ──none──► "Nothing to release"
      │
      ▼
    evaluate readiness ──nothing mergeable──► "Nothing to release"
      │
      ▼
    execute merge plan ──aborted──► partial report + error
      │
      ▼
    report (+ release-channel notification)

The answer text always contains everything reported up to the point the run
finished or stopped.

Example:
    >>> event = ReleaseEvent(bitbucket, ReleaseNotifier(slack), settings)
    >>> answer = await event.execute(ChatMessage(channel="C1", text=text, user="U1"))
    >>> print(answer.text)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

import structlog

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.engine.evaluator import ReadinessEvaluator
from release_sapiens.engine.executor import ReleaseExecutor
from release_sapiens.engine.extractor import extract_pull_requests
from release_sapiens.engine.notifier import ReleaseNotifier
from release_sapiens.exceptions import ReleaseAbortedError
from release_sapiens.models.domain import ChatMessage, ReleaseAnswer
from release_sapiens.providers.base import PullRequestProvider
from release_sapiens.utils.status_reporter import (
    NOTHING_TO_RELEASE_TEXT,
    failed_pull_requests_text,
    mergeable_pull_requests_text,
    received_pull_requests_text,
    release_notification_text,
)

log = structlog.get_logger(__name__)

EVENT_NAME = "bitbucket_release"
EVENT_VERSION = "1.0.0"
TRIGGER_PATTERN = "(?im)(release)"
TRIGGER_ANSWER = "Give me a second"
HELP_TEXT = (
    "Write `release` followed by the links of the Bitbucket pull-requests you want to release.\n"
    "I check that every pull-request is open and approved by one of the required reviewers, then:\n"
    "- a single pull-request is merged directly into its destination branch;\n"
    "- several pull-requests of one repository are merged into a `release/<date>` branch "
    "and I open a release pull-request for it."
)


@dataclass(frozen=True)
class EventDescription:
    """Static description a host uses to register the event."""

    name: str
    version: str
    trigger_pattern: str
    trigger_answer: str
    help_text: str


def describe() -> EventDescription:
    return EventDescription(
        name=EVENT_NAME,
        version=EVENT_VERSION,
        trigger_pattern=TRIGGER_PATTERN,
        trigger_answer=TRIGGER_ANSWER,
        help_text=HELP_TEXT,
    )


class ReleaseEvent:
    """Release the Bitbucket pull-requests linked in a chat message.

    Attributes:
        provider: Pull-request provider used for lookups and changes.
        notifier: Release-channel notifier.
        settings: Release settings.
    """

    def __init__(
        self,
        provider: PullRequestProvider,
        notifier: ReleaseNotifier,
        settings: ReleaseSettings,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.provider = provider
        self.notifier = notifier
        self.settings = settings
        self.evaluator = ReadinessEvaluator(provider, settings)
        self.executor = ReleaseExecutor(provider, settings, today=today)

    async def execute(self, message: ChatMessage) -> ReleaseAnswer:
        """Run a release for the links in ``message``.

        Never raises for remote failures: the error that stopped the run is
        returned on the answer next to the partial report.
        """
        structlog.contextvars.bind_contextvars(event_name=EVENT_NAME, channel=message.channel, user=message.user)
        try:
            return await self._execute(message)
        finally:
            structlog.contextvars.unbind_contextvars("event_name", "channel", "user")

    async def _execute(self, message: ChatMessage) -> ReleaseAnswer:
        log.info("release_event_started")

        refs = extract_pull_requests(message.text, self.settings.release.pull_request_pattern)
        text = received_pull_requests_text(refs)
        if not refs:
            log.info("release_event_finished", reason="no_pull_requests")
            return ReleaseAnswer(text=f"{text}\n{NOTHING_TO_RELEASE_TEXT}")

        result = await self.evaluator.evaluate(refs)
        text += f"\n{failed_pull_requests_text(result.failed)}"
        text += f"\n{mergeable_pull_requests_text(result.mergeable)}"

        if not result.mergeable:
            log.info("release_event_finished", reason="nothing_mergeable", failed=len(result.failed))
            return ReleaseAnswer(text=f"{text}\n{NOTHING_TO_RELEASE_TEXT}")

        try:
            release_text = await self.executor.run(result.mergeable, result.by_repository)
        except ReleaseAbortedError as e:
            log.error("release_event_aborted", error=e.message, cause=str(e.cause) if e.cause else None)
            return ReleaseAnswer(text=text + e.partial_text, error=e)

        text += f"\n{release_text}"

        release = self.settings.release
        if release.notifies_release_channel:
            assert release.release_channel is not None
            error = await self.notifier.notify(
                release.release_channel,
                release_notification_text(message.user, release_text),
            )
            if error is not None:
                text += f"\nI tried to notify the release channel and I failed. Reason: `{error}`"

        log.info("release_event_finished", merged=len(result.mergeable), failed=len(result.failed))
        return ReleaseAnswer(text=text)
