"""Pytest configuration and shared fixtures."""

from datetime import date
from unittest.mock import AsyncMock

import pytest

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.enums import PullRequestState
from release_sapiens.models.domain import Branch, Participant, PullRequestDetail, ReleasePullRequest
from release_sapiens.providers.base import MessageProvider, PullRequestProvider

REVIEWER_UUID = "{reviewer-one}"
SECOND_REVIEWER_UUID = "{reviewer-two}"
BOT_UUID = "{release-bot}"
RELEASE_DAY = date(2024, 3, 7)


@pytest.fixture
def settings() -> ReleaseSettings:
    """Settings with two required reviewers and no release channel."""
    return ReleaseSettings(
        bitbucket={"access_token": "test-token"},
        release={
            "required_reviewers": [
                {"uuid": REVIEWER_UUID, "slack_uid": "TESTSLACKID"},
                {"uuid": SECOND_REVIEWER_UUID, "slack_uid": "TESTSECONDSLACKID"},
            ],
            "current_user_uuid": BOT_UUID,
        },
    )


@pytest.fixture
def notifying_settings(settings: ReleaseSettings) -> ReleaseSettings:
    """Settings that also post release reports to #releases."""
    release = settings.release.model_copy(
        update={"release_channel": "#releases", "release_channel_message_enabled": True}
    )
    return settings.model_copy(update={"release": release})


@pytest.fixture
def mock_provider() -> AsyncMock:
    """Pull-request provider whose mutations all succeed."""
    provider = AsyncMock(spec=PullRequestProvider)
    provider.create_branch.side_effect = lambda workspace, slug, name: Branch(name=name)
    provider.change_destination.return_value = None
    provider.merge_pull_request.return_value = None
    provider.create_pull_request.return_value = ReleasePullRequest(
        id=99,
        link="https://bitbucket.org/john/test-repo/pull-requests/99",
    )
    return provider


@pytest.fixture
def mock_message_provider() -> AsyncMock:
    return AsyncMock(spec=MessageProvider)


def make_detail(
    pull_request_id: int = 1,
    repository_slug: str = "test-repo",
    title: str | None = None,
    state: PullRequestState | str = PullRequestState.OPEN,
    approved_by: tuple[str, ...] = (REVIEWER_UUID,),
    participants: tuple[str, ...] | None = None,
    branch_name: str = "feature/some-change",
    description: str = "Some change",
    workspace: str = "john",
) -> PullRequestDetail:
    """Build a pull-request detail as the provider would return it.

    ``participants`` defaults to ``approved_by``; every participant not in
    ``approved_by`` has not approved.
    """
    uuids = participants if participants is not None else approved_by
    return PullRequestDetail(
        workspace=workspace,
        repository_slug=repository_slug,
        id=pull_request_id,
        title=title if title is not None else f"Change #{pull_request_id}",
        description=description,
        branch_name=branch_name,
        state=state,
        participants=[Participant(uuid=uuid, approved=uuid in approved_by) for uuid in uuids],
    )


def pull_request_url(pull_request_id: int, repository_slug: str = "test-repo", workspace: str = "john") -> str:
    return f"https://bitbucket.org/{workspace}/{repository_slug}/pull-requests/{pull_request_id}"
