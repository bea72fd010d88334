"""Release engine: from chat text to merged pull-requests.

This package provides the stages of a release run and the entry point
wiring them together.

Key Components:
    - extract_pull_requests: Pull-request links found in chat text
    - ReadinessEvaluator: State and reviewer checks against Bitbucket
    - group_by_repository / drop_failed: Repository grouping of mergeable work
    - ReleaseExecutor: Direct merges and release-branch flow
    - ReleaseNotifier: Best-effort release-channel messages
    - ReleaseEvent: Entry point invoked by the chat host

Example:
    >>> from release_sapiens.engine import ReleaseEvent, ReleaseNotifier
    >>> event = ReleaseEvent(bitbucket, ReleaseNotifier(slack), settings)
    >>> answer = await event.execute(message)
"""

from release_sapiens.engine.evaluator import ReadinessEvaluator
from release_sapiens.engine.executor import ReleaseExecutor
from release_sapiens.engine.extractor import extract_pull_requests
from release_sapiens.engine.grouping import drop_failed, group_by_repository
from release_sapiens.engine.notifier import ReleaseNotifier
from release_sapiens.engine.release import EventDescription, ReleaseEvent, describe

__all__ = [
    "EventDescription",
    "ReadinessEvaluator",
    "ReleaseEvent",
    "ReleaseExecutor",
    "ReleaseNotifier",
    "describe",
    "drop_failed",
    "extract_pull_requests",
    "group_by_repository",
]
