"""Enumerations for release-sapiens pull-request states, strategies and policies."""

from enum import Enum


class PullRequestState(str, Enum):
    """Pull-request states reported by Bitbucket.

    Only ``OPEN`` pull-requests can be released.
    """

    OPEN = "OPEN"
    MERGED = "MERGED"
    DECLINED = "DECLINED"
    SUPERSEDED = "SUPERSEDED"

    def __str__(self) -> str:
        return self.value


class MergeStrategy(str, Enum):
    """Merge technique applied when merging a pull-request.

    - squash: all commits of the pull-request are squashed into one
    - merge: a regular merge commit (used for release branches)
    """

    SQUASH = "squash"
    MERGE = "merge"

    def __str__(self) -> str:
        return self.value


class ReviewerPolicy(str, Enum):
    """Release-readiness approval rules.

    - required-reviewers: one of the configured required reviewers must be
      among the participants, and at least one of them must have approved
    - all-participants: every participant must have approved; satisfied when
      no required reviewers are configured
    """

    REQUIRED_REVIEWERS = "required-reviewers"
    ALL_PARTICIPANTS = "all-participants"

    def __str__(self) -> str:
        return self.value
