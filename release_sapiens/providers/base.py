"""
Abstract base classes for providers.

This module defines the interfaces the release workflow consumes: a
pull-request hosting service (Bitbucket) and a chat messaging service (Slack).
The engine only ever talks to these interfaces, so tests and alternative
hosts can plug in their own implementations.
"""

from abc import ABC, abstractmethod

from release_sapiens.enums import MergeStrategy
from release_sapiens.models.domain import Branch, PullRequestDetail, ReleasePullRequest


class PullRequestProvider(ABC):
    """Abstract base class for pull-request hosting services.

    Implementations translate transport and HTTP failures into the typed
    exceptions documented on each method, with the remote service's own error
    message as the exception message. None of the methods retry.
    """

    @abstractmethod
    async def get_pull_request(
        self,
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
    ) -> PullRequestDetail:
        """Fetch pull-request details.

        Args:
            workspace: Workspace owning the repository.
            repository_slug: Repository slug as written in the pull-request link.
            pull_request_id: Repository-scoped pull-request id.

        Returns:
            Details including title, description, source branch, state and
            participants. ``repository_slug`` is the canonical slug reported by
            the service, which may differ from the one passed in.

        Raises:
            PullRequestLookupError: If the pull-request cannot be fetched.
        """
        pass

    @abstractmethod
    async def create_branch(self, workspace: str, repository_slug: str, branch_name: str) -> Branch:
        """Create a branch from the repository's release base branch.

        Raises:
            BranchCreationError: If the branch cannot be created.
        """
        pass

    @abstractmethod
    async def change_destination(
        self,
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
        title: str,
        branch_name: str,
    ) -> None:
        """Point a pull-request at a new destination branch and retitle it.

        Raises:
            RetargetError: If the pull-request cannot be updated.
        """
        pass

    @abstractmethod
    async def merge_pull_request(
        self,
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
        description: str,
        strategy: MergeStrategy = MergeStrategy.SQUASH,
    ) -> PullRequestDetail | None:
        """Merge a pull-request into its destination branch.

        Args:
            description: Used as the merge commit message.
            strategy: Squash or regular merge commit.

        Returns:
            The pull-request as reported after the merge, or None when the
            service accepted the merge without returning it.

        Raises:
            MergeError: If the merge is rejected or fails.
        """
        pass

    @abstractmethod
    async def create_pull_request(
        self,
        workspace: str,
        repository_slug: str,
        title: str,
        description: str,
        source_branch: str,
        reviewers: list[str],
    ) -> ReleasePullRequest:
        """Open a pull-request from ``source_branch`` to the main branch.

        Args:
            reviewers: Reviewer UUIDs.

        Raises:
            ReleasePullRequestError: If creation fails or the response has no link.
        """
        pass


class MessageProvider(ABC):
    """Abstract base class for chat messaging services."""

    @abstractmethod
    async def send_message(self, channel: str, text: str) -> None:
        """Post ``text`` to ``channel``.

        Raises:
            NotificationError: If the message cannot be delivered.
        """
        pass
