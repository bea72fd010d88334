"""Tests for release_sapiens/providers/bitbucket_rest.py - Bitbucket REST API provider."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from release_sapiens.enums import MergeStrategy, PullRequestState
from release_sapiens.exceptions import (
    BranchCreationError,
    MergeError,
    PullRequestLookupError,
    ReleasePullRequestError,
    RetargetError,
)
from release_sapiens.providers.bitbucket_rest import BitbucketRestProvider
from release_sapiens.utils.connection_pool import HTTPConnectionPool

API_URL = "https://api.bitbucket.org/2.0"
PR_PATH = "/repositories/john/test-repo/pullrequests/1"

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def provider() -> BitbucketRestProvider:
    return BitbucketRestProvider(api_url=f"{API_URL}/", token="test-token")


@pytest.fixture
def mock_pool() -> AsyncMock:
    return AsyncMock(spec=HTTPConnectionPool)


@pytest.fixture
def connected(provider: BitbucketRestProvider, mock_pool: AsyncMock) -> BitbucketRestProvider:
    provider._pool = mock_pool
    return provider


@pytest.fixture
def sample_pr_data() -> dict:
    """Pull-request payload as returned by Bitbucket."""
    return {
        "id": 1,
        "title": "Testing PR flow",
        "description": "Some \\*escaped\\* description",
        "state": "OPEN",
        "source": {"branch": {"name": "feature/testing-pr-flow"}},
        "destination": {
            "branch": {"name": "master"},
            "repository": {"full_name": "john/test-repo"},
        },
        "participants": [
            {"user": {"uuid": "{reviewer-one}"}, "approved": True, "role": "REVIEWER"},
            {"user": {"uuid": "{author}"}, "approved": False, "role": "PARTICIPANT"},
        ],
        "links": {"html": {"href": "https://bitbucket.org/john/test-repo/pull-requests/1"}},
    }


def response(status_code: int, json=None, text: str | None = None, headers=None) -> httpx.Response:
    request = httpx.Request("GET", API_URL)
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers, request=request)
    return httpx.Response(status_code, text=text or "", headers=headers, request=request)


def bitbucket_error(status_code: int, message: str) -> httpx.Response:
    return response(status_code, json={"type": "error", "error": {"message": message}})


# =============================================================================
# Initialization / Connection Tests
# =============================================================================


class TestBitbucketRestProviderConnection:
    """Tests for initialization and connection management."""

    def test_init_strips_trailing_slash(self, provider):
        assert provider.api_url == API_URL
        assert provider.default_branch == "master"
        assert provider._pool is None

    @pytest.mark.asyncio
    @patch("release_sapiens.providers.bitbucket_rest.HTTPConnectionPool")
    async def test_connect_with_bearer_token(self, mock_pool_cls, provider):
        mock_pool_cls.return_value = AsyncMock(spec=HTTPConnectionPool)

        await provider.connect()

        kwargs = mock_pool_cls.call_args.kwargs
        assert kwargs["base_url"] == API_URL
        assert kwargs["headers"]["Authorization"] == "Bearer test-token"
        assert kwargs["auth"] is None
        mock_pool_cls.return_value.initialize.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("release_sapiens.providers.bitbucket_rest.HTTPConnectionPool")
    async def test_connect_with_app_password(self, mock_pool_cls):
        mock_pool_cls.return_value = AsyncMock(spec=HTTPConnectionPool)
        provider = BitbucketRestProvider(api_url=API_URL, token="app-password", username="release-bot")

        await provider.connect()

        kwargs = mock_pool_cls.call_args.kwargs
        assert kwargs["auth"] == ("release-bot", "app-password")
        assert "Authorization" not in kwargs["headers"]

    @pytest.mark.asyncio
    async def test_disconnect(self, connected, mock_pool):
        await connected.disconnect()

        mock_pool.close.assert_awaited_once()
        assert connected._pool is None


# =============================================================================
# Pull-request Lookup Tests
# =============================================================================


class TestGetPullRequest:
    """Tests for get_pull_request."""

    @pytest.mark.asyncio
    async def test_parses_payload(self, connected, mock_pool, sample_pr_data):
        mock_pool.request.return_value = response(200, json=sample_pr_data)

        detail = await connected.get_pull_request("john", "test-repo", 1)

        mock_pool.request.assert_awaited_once_with("GET", PR_PATH)
        assert detail.workspace == "john"
        assert detail.repository_slug == "test-repo"
        assert detail.id == 1
        assert detail.title == "Testing PR flow"
        assert detail.branch_name == "feature/testing-pr-flow"
        assert detail.state == PullRequestState.OPEN
        assert [(p.uuid, p.approved) for p in detail.participants] == [
            ("{reviewer-one}", True),
            ("{author}", False),
        ]

    @pytest.mark.asyncio
    async def test_canonical_slug_from_destination(self, connected, mock_pool, sample_pr_data):
        sample_pr_data["destination"]["repository"]["full_name"] = "john/canonical-repo"
        mock_pool.request.return_value = response(200, json=sample_pr_data)

        detail = await connected.get_pull_request("john", "Canonical-Repo", 1)

        assert detail.repository_slug == "canonical-repo"

    @pytest.mark.asyncio
    async def test_unknown_state_kept_raw(self, connected, mock_pool, sample_pr_data):
        sample_pr_data["state"] = "QUEUED"
        mock_pool.request.return_value = response(200, json=sample_pr_data)

        detail = await connected.get_pull_request("john", "test-repo", 1)

        assert detail.state == "QUEUED"

    @pytest.mark.asyncio
    async def test_error_message_from_body(self, connected, mock_pool):
        mock_pool.request.return_value = bitbucket_error(404, "Repository john/test-repo not found")

        with pytest.raises(PullRequestLookupError) as exc_info:
            await connected.get_pull_request("john", "test-repo", 1)

        assert str(exc_info.value) == "Repository john/test-repo not found"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_error_without_body(self, connected, mock_pool):
        mock_pool.request.return_value = response(502)

        with pytest.raises(PullRequestLookupError, match="Bitbucket responded with HTTP 502"):
            await connected.get_pull_request("john", "test-repo", 1)

    @pytest.mark.asyncio
    async def test_transport_error(self, connected, mock_pool):
        mock_pool.request.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(PullRequestLookupError, match="Bitbucket request failed"):
            await connected.get_pull_request("john", "test-repo", 1)

    @pytest.mark.asyncio
    async def test_html_body_is_lookup_error(self, connected, mock_pool):
        """Should report a login page served with HTTP 200 as a failed lookup."""
        mock_pool.request.return_value = response(200, text="<html>login</html>")

        with pytest.raises(PullRequestLookupError) as exc_info:
            await connected.get_pull_request("john", "test-repo", 1)

        assert str(exc_info.value) == "Bitbucket returned a response that is not JSON"
        assert exc_info.value.status_code == 200
        assert exc_info.value.response_text == "<html>login</html>"

    @pytest.mark.asyncio
    async def test_non_object_body_is_lookup_error(self, connected, mock_pool):
        mock_pool.request.return_value = response(200, json=["unexpected"])

        with pytest.raises(PullRequestLookupError, match="unexpected response"):
            await connected.get_pull_request("john", "test-repo", 1)


# =============================================================================
# Mutation Tests
# =============================================================================


class TestMutations:
    """Tests for branch, destination, merge and pull-request creation calls."""

    @pytest.mark.asyncio
    async def test_create_branch(self, connected, mock_pool):
        mock_pool.request.return_value = response(
            201, json={"name": "release/2024.03.07", "target": {"hash": "abc123"}}
        )

        branch = await connected.create_branch("john", "test-repo", "release/2024.03.07")

        assert branch.name == "release/2024.03.07"
        assert branch.hash == "abc123"
        mock_pool.request.assert_awaited_once_with(
            "POST",
            "/repositories/john/test-repo/refs/branches",
            json={"name": "release/2024.03.07", "target": {"hash": "master"}},
        )

    @pytest.mark.asyncio
    async def test_create_branch_error(self, connected, mock_pool):
        mock_pool.request.return_value = bitbucket_error(400, "BRANCH_ALREADY_EXISTS")

        with pytest.raises(BranchCreationError, match="BRANCH_ALREADY_EXISTS"):
            await connected.create_branch("john", "test-repo", "release/2024.03.07")

    @pytest.mark.asyncio
    async def test_change_destination(self, connected, mock_pool, sample_pr_data):
        mock_pool.request.return_value = response(200, json=sample_pr_data)

        await connected.change_destination("john", "test-repo", 1, "[PREPARED-FOR-RELEASE] A", "release/x")

        mock_pool.request.assert_awaited_once_with(
            "PUT",
            PR_PATH,
            json={"title": "[PREPARED-FOR-RELEASE] A", "destination": {"branch": {"name": "release/x"}}},
        )

    @pytest.mark.asyncio
    async def test_change_destination_error(self, connected, mock_pool):
        mock_pool.request.return_value = bitbucket_error(403, "Forbidden")

        with pytest.raises(RetargetError, match="Forbidden"):
            await connected.change_destination("john", "test-repo", 1, "A", "release/x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("strategy", "wire_value"),
        [(MergeStrategy.SQUASH, "squash"), (MergeStrategy.MERGE, "merge_commit")],
    )
    async def test_merge_strategies(self, connected, mock_pool, sample_pr_data, strategy, wire_value):
        sample_pr_data["state"] = "MERGED"
        mock_pool.request.return_value = response(200, json=sample_pr_data)

        detail = await connected.merge_pull_request("john", "test-repo", 1, "Some description", strategy)

        assert detail.state == PullRequestState.MERGED
        mock_pool.request.assert_awaited_once_with(
            "POST",
            f"{PR_PATH}/merge",
            json={
                "type": "pullrequest",
                "message": "Some description",
                "close_source_branch": True,
                "merge_strategy": wire_value,
            },
        )

    @pytest.mark.asyncio
    async def test_merge_queued(self, connected, mock_pool):
        mock_pool.request.return_value = response(202, headers={"Location": "https://api.bitbucket.org/task/1"})

        assert await connected.merge_pull_request("john", "test-repo", 1, "desc") is None

    @pytest.mark.asyncio
    async def test_merge_error(self, connected, mock_pool):
        mock_pool.request.return_value = bitbucket_error(555, "Failed to merge ")

        with pytest.raises(MergeError) as exc_info:
            await connected.merge_pull_request("john", "test-repo", 1, "desc")

        assert str(exc_info.value) == "Failed to merge "

    @pytest.mark.asyncio
    async def test_merge_html_body_is_merge_error(self, connected, mock_pool):
        mock_pool.request.return_value = response(200, text="<html>proxy</html>")

        with pytest.raises(MergeError, match="not JSON"):
            await connected.merge_pull_request("john", "test-repo", 1, "desc")

    @pytest.mark.asyncio
    async def test_create_branch_html_body_is_branch_error(self, connected, mock_pool):
        mock_pool.request.return_value = response(201, text="<html>proxy</html>")

        with pytest.raises(BranchCreationError, match="not JSON"):
            await connected.create_branch("john", "test-repo", "release/2024.03.07")

    @pytest.mark.asyncio
    async def test_create_pull_request(self, connected, mock_pool):
        mock_pool.request.return_value = response(
            201,
            json={"id": 99, "links": {"html": {"href": "https://bitbucket.org/john/test-repo/pull-requests/99"}}},
        )

        release = await connected.create_pull_request(
            "john", "test-repo", "Release pull-request", "A\nB\n", "release/x", ["{reviewer-one}"]
        )

        assert release.id == 99
        assert release.link == "https://bitbucket.org/john/test-repo/pull-requests/99"
        mock_pool.request.assert_awaited_once_with(
            "POST",
            "/repositories/john/test-repo/pullrequests",
            json={
                "title": "Release pull-request",
                "description": "A\nB\n",
                "source": {"branch": {"name": "release/x"}},
                "reviewers": [{"uuid": "{reviewer-one}"}],
            },
        )

    @pytest.mark.asyncio
    async def test_create_pull_request_without_link(self, connected, mock_pool):
        mock_pool.request.return_value = response(201, json={"id": 99, "links": {}})

        with pytest.raises(ReleasePullRequestError) as exc_info:
            await connected.create_pull_request("john", "test-repo", "Release", "", "release/x", [])

        assert str(exc_info.value) == "The pull-request link was not found in the response. "
