"""
Domain models for the release workflow.

This module contains the data classes representing the entities the release
pipeline passes between its stages: pull-request references parsed from chat
text, pull-request details hydrated from Bitbucket, readiness verdicts, and
the chat message/answer pair exchanged with the host.

Example:
    Building a verdict for a pull-request that failed the state check::

        ref = PullRequestRef(workspace="john", repository_slug="test-repo", id=1)
        verdict = Failed(
            url="https://bitbucket.org/john/test-repo/pull-requests/1",
            reason="The state should be OPEN, instead of it MERGED received.",
            detail=detail,
        )
"""

from dataclasses import dataclass, field
from typing import TypeAlias

from release_sapiens.enums import PullRequestState


@dataclass(frozen=True)
class PullRequestRef:
    """Identity of a pull-request as extracted from chat text.

    Immutable once parsed. The repository slug is the one written in the URL,
    which Bitbucket may canonicalize differently.
    """

    workspace: str
    """Bitbucket workspace (team or user) owning the repository."""

    repository_slug: str
    """Repository slug as it appears in the URL."""

    id: int
    """Repository-scoped pull-request id."""


@dataclass
class Participant:
    """A pull-request participant and their approval."""

    uuid: str
    approved: bool = False


@dataclass
class PullRequestDetail:
    """Pull-request details hydrated from a Bitbucket lookup.

    ``state`` is a ``PullRequestState`` for the states Bitbucket documents and
    the raw string for anything else.
    """

    workspace: str
    repository_slug: str
    id: int
    title: str = ""
    description: str = ""
    branch_name: str = ""
    state: PullRequestState | str = PullRequestState.OPEN
    participants: list[Participant] = field(default_factory=list)


@dataclass
class Mergeable:
    """The pull-request passed every readiness check."""

    url: str
    detail: PullRequestDetail


@dataclass
class Failed:
    """The pull-request cannot be released.

    ``detail`` is None when the lookup itself failed; ``cause`` is set only
    for remote errors, never for policy failures.
    """

    url: str
    reason: str
    detail: PullRequestDetail | None = None
    cause: Exception | None = None


ReadinessVerdict: TypeAlias = Mergeable | Failed

RepositoryGroups: TypeAlias = dict[str, dict[str, PullRequestDetail]]
"""Repository slug -> pull-request title -> detail."""


@dataclass
class EvaluationResult:
    """Outcome of evaluating every extracted reference.

    All three maps keep insertion order, which is the order the pull-requests
    appeared in the chat text.
    """

    mergeable: dict[str, PullRequestDetail] = field(default_factory=dict)
    by_repository: RepositoryGroups = field(default_factory=dict)
    failed: dict[str, Failed] = field(default_factory=dict)


@dataclass
class Branch:
    """Handle of a branch created on Bitbucket."""

    name: str
    hash: str | None = None


@dataclass
class ReleasePullRequest:
    """Follow-up pull-request opened from a release branch."""

    id: int
    link: str


@dataclass
class ChatMessage:
    """A decoded chat message handed over by the host."""

    channel: str
    text: str
    user: str = ""


@dataclass
class ReleaseAnswer:
    """Text response for the chat plus the error that stopped the run, if any.

    A non-None ``error`` means the run did not complete and ``text`` is a
    partial report.
    """

    text: str
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
