"""Bitbucket Cloud provider implementation using direct REST API calls."""

from typing import Any

import httpx
import structlog

from release_sapiens.enums import MergeStrategy, PullRequestState
from release_sapiens.exceptions import (
    BranchCreationError,
    MergeError,
    PullRequestLookupError,
    ReleasePullRequestError,
    RemoteServiceError,
    RetargetError,
)
from release_sapiens.models.domain import Branch, Participant, PullRequestDetail, ReleasePullRequest
from release_sapiens.providers.base import PullRequestProvider
from release_sapiens.utils.connection_pool import HTTPConnectionPool

log = structlog.get_logger(__name__)

# Bitbucket names the non-squash strategy "merge_commit"
_MERGE_STRATEGIES = {
    MergeStrategy.SQUASH: "squash",
    MergeStrategy.MERGE: "merge_commit",
}


class BitbucketRestProvider(PullRequestProvider):
    """Bitbucket Cloud (API 2.0) implementation using direct REST API calls.

    Calls are never retried: a failure is reported to the release engine as
    soon as it happens.
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        username: str | None = None,
        default_branch: str = "master",
        timeout: float = 30.0,
    ):
        """Initialize Bitbucket provider.

        Args:
            api_url: API base URL (e.g., https://api.bitbucket.org/2.0)
            token: Access token, or app password when ``username`` is given
            username: Account name for app-password authentication
            default_branch: Branch new release branches start from
            timeout: HTTP timeout in seconds
        """
        self.api_url = api_url.rstrip("/")
        self.token = token.strip() if token else token
        self.username = username
        self.default_branch = default_branch
        self.timeout = timeout
        self._pool: HTTPConnectionPool | None = None

    async def connect(self) -> None:
        """Initialize the connection pool."""
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        auth: tuple[str, str] | None = None
        if self.username:
            auth = (self.username, self.token)
        else:
            headers["Authorization"] = f"Bearer {self.token}"

        self._pool = HTTPConnectionPool(
            base_url=self.api_url,
            timeout=self.timeout,
            headers=headers,
            auth=auth,
        )
        await self._pool.initialize()
        log.info("bitbucket_connected", api_url=self.api_url)

    async def disconnect(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
        self._pool = None

    async def __aenter__(self) -> "BitbucketRestProvider":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    async def get_pull_request(
        self,
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
    ) -> PullRequestDetail:
        """Get pull-request details."""
        log.info("get_pull_request", workspace=workspace, repository=repository_slug, pull_request_id=pull_request_id)

        response = await self._send(
            PullRequestLookupError,
            "GET",
            f"/repositories/{workspace}/{repository_slug}/pullrequests/{pull_request_id}",
        )
        data = self._json(PullRequestLookupError, response)
        return self._parse_pull_request(data, workspace, repository_slug, pull_request_id)

    async def create_branch(self, workspace: str, repository_slug: str, branch_name: str) -> Branch:
        """Create a branch from the configured default branch."""
        log.info("create_branch", workspace=workspace, repository=repository_slug, branch=branch_name)

        response = await self._send(
            BranchCreationError,
            "POST",
            f"/repositories/{workspace}/{repository_slug}/refs/branches",
            json={"name": branch_name, "target": {"hash": self.default_branch}},
        )

        data = self._json(BranchCreationError, response)
        return Branch(name=data.get("name", branch_name), hash=(data.get("target") or {}).get("hash"))

    async def change_destination(
        self,
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
        title: str,
        branch_name: str,
    ) -> None:
        """Retitle a pull-request and switch its destination branch."""
        log.info(
            "change_destination",
            workspace=workspace,
            repository=repository_slug,
            pull_request_id=pull_request_id,
            branch=branch_name,
        )

        await self._send(
            RetargetError,
            "PUT",
            f"/repositories/{workspace}/{repository_slug}/pullrequests/{pull_request_id}",
            json={"title": title, "destination": {"branch": {"name": branch_name}}},
        )

    async def merge_pull_request(
        self,
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
        description: str,
        strategy: MergeStrategy = MergeStrategy.SQUASH,
    ) -> PullRequestDetail | None:
        """Merge a pull-request.

        Bitbucket answers 202 when the merge is queued as a background task;
        in that case there is no pull-request payload and None is returned.
        """
        log.info(
            "merge_pull_request",
            workspace=workspace,
            repository=repository_slug,
            pull_request_id=pull_request_id,
            strategy=str(strategy),
        )

        response = await self._send(
            MergeError,
            "POST",
            f"/repositories/{workspace}/{repository_slug}/pullrequests/{pull_request_id}/merge",
            json={
                "type": "pullrequest",
                "message": description,
                "close_source_branch": True,
                "merge_strategy": _MERGE_STRATEGIES[strategy],
            },
        )

        if response.status_code == 202:
            log.info("merge_queued", pull_request_id=pull_request_id, location=response.headers.get("Location"))
            return None

        data = self._json(MergeError, response)
        return self._parse_pull_request(data, workspace, repository_slug, pull_request_id)

    async def create_pull_request(
        self,
        workspace: str,
        repository_slug: str,
        title: str,
        description: str,
        source_branch: str,
        reviewers: list[str],
    ) -> ReleasePullRequest:
        """Open a pull-request from ``source_branch`` to the repository main branch."""
        log.info("create_pull_request", workspace=workspace, repository=repository_slug, source=source_branch)

        response = await self._send(
            ReleasePullRequestError,
            "POST",
            f"/repositories/{workspace}/{repository_slug}/pullrequests",
            json={
                "title": title,
                "description": description,
                "source": {"branch": {"name": source_branch}},
                "reviewers": [{"uuid": uuid} for uuid in reviewers],
            },
        )

        data = self._json(ReleasePullRequestError, response)
        link = ((data.get("links") or {}).get("html") or {}).get("href", "")
        if not link:
            log.warning("pull_request_link_missing", response=data)
            raise ReleasePullRequestError("The pull-request link was not found in the response. ")

        return ReleasePullRequest(id=data.get("id", 0), link=link)

    async def _send(
        self,
        error_cls: type[RemoteServiceError],
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and convert every failure into ``error_cls``."""
        if self._pool is None:
            await self.connect()

        assert self._pool is not None
        try:
            response = await self._pool.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log.error("bitbucket_request_failed", method=method, path=path, error=str(e))
            raise error_cls(f"Bitbucket request failed: {e}") from e

        if response.is_error:
            message = self._error_message(response)
            log.warning("bitbucket_error_response", method=method, path=path, status=response.status_code, error=message)
            raise error_cls(message, status_code=response.status_code, response_text=response.text)

        return response

    @staticmethod
    def _json(error_cls: type[RemoteServiceError], response: httpx.Response) -> dict[str, Any]:
        """Decode a successful response body into a JSON object.

        Proxies and login pages can answer 200 with HTML, which is reported as
        ``error_cls`` like any other failed call.
        """
        try:
            data = response.json()
        except ValueError as e:
            log.warning("bitbucket_invalid_response", status=response.status_code, error=str(e))
            raise error_cls(
                "Bitbucket returned a response that is not JSON",
                status_code=response.status_code,
                response_text=response.text,
            ) from e

        if not isinstance(data, dict):
            log.warning("bitbucket_invalid_response", status=response.status_code, payload_type=type(data).__name__)
            raise error_cls(
                "Bitbucket returned an unexpected response",
                status_code=response.status_code,
                response_text=response.text,
            )

        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract the error message from a Bitbucket error response.

        Bitbucket reports errors as ``{"type": "error", "error": {"message": ...}}``;
        anything else falls back to the raw body or the status line.
        """
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])

        return response.text or f"Bitbucket responded with HTTP {response.status_code}"

    def _parse_pull_request(
        self,
        data: dict[str, Any],
        workspace: str,
        repository_slug: str,
        pull_request_id: int,
    ) -> PullRequestDetail:
        """Parse a Bitbucket pull-request payload into ``PullRequestDetail``.

        Field mappings:
            - data["destination"]["repository"]["full_name"] -> workspace, repository_slug
              (falls back to the requested values when absent)
            - data["source"]["branch"]["name"] -> branch_name
            - data["state"] -> state (unknown states are kept as raw strings)
            - data["participants"][*]["user"]["uuid"] / ["approved"] -> participants
        """
        destination = (data.get("destination") or {}).get("repository") or {}
        full_name = destination.get("full_name") or ""
        if "/" in full_name:
            workspace, repository_slug = full_name.split("/", 1)

        raw_state = data.get("state") or ""
        try:
            state: PullRequestState | str = PullRequestState(raw_state)
        except ValueError:
            state = raw_state

        participants = [
            Participant(
                uuid=(participant.get("user") or {}).get("uuid", ""),
                approved=bool(participant.get("approved")),
            )
            for participant in data.get("participants") or []
        ]

        return PullRequestDetail(
            workspace=workspace,
            repository_slug=repository_slug,
            id=data.get("id", pull_request_id),
            title=data.get("title") or "",
            description=data.get("description") or "",
            branch_name=((data.get("source") or {}).get("branch") or {}).get("name", ""),
            state=state,
            participants=participants,
        )
