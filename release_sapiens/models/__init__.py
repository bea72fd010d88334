"""Core domain models for the release workflow.

Key Models:
    - PullRequestRef: Pull-request identity parsed from chat text
    - PullRequestDetail: Pull-request details fetched from Bitbucket
    - Mergeable / Failed: Readiness verdicts
    - EvaluationResult: Verdicts grouped for the merge planner
    - ChatMessage / ReleaseAnswer: Entry point input and output

Example:
    >>> from release_sapiens.models import PullRequestRef
    >>> ref = PullRequestRef(workspace="john", repository_slug="test-repo", id=1)
"""

from release_sapiens.models.domain import (
    Branch,
    ChatMessage,
    EvaluationResult,
    Failed,
    Mergeable,
    Participant,
    PullRequestDetail,
    PullRequestRef,
    ReadinessVerdict,
    ReleaseAnswer,
    ReleasePullRequest,
    RepositoryGroups,
)

__all__ = [
    "Branch",
    "ChatMessage",
    "EvaluationResult",
    "Failed",
    "Mergeable",
    "Participant",
    "PullRequestDetail",
    "PullRequestRef",
    "ReadinessVerdict",
    "ReleaseAnswer",
    "ReleasePullRequest",
    "RepositoryGroups",
]
