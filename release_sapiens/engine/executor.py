"""
Merge planning and execution.

Decides how the mergeable pull-requests get released and drives the Bitbucket
calls in order, producing the chat narrative as it goes.

Strategy:
    One mergeable pull-request overall:
        Merge it straight into its destination branch. A merge failure aborts
        the run.

    Otherwise, per repository (in the order the repositories were first seen):
        - One pull-request: merge it straight into its destination branch.
          A merge failure is reported and the next repository is processed.
        - Several pull-requests:
            1. create ``release/<YYYY.MM.DD>`` once (failure aborts the run)
            2. move every pull-request onto it, prefixing its title with
               ``[PREPARED-FOR-RELEASE]`` (a failure skips that pull-request)
            3. merge the moved pull-requests into the release branch
               (a failure is reported and the release pull-request skipped)
            4. open the release pull-request from the release branch, with the
               required reviewers except the bot itself (failure aborts the run)

Merge strategy:
    ``squash`` by default; ``merge`` for pull-requests whose source branch is
    itself a release branch (``release/...``), so its history is preserved.

Aborting raises ``ReleaseAbortedError`` carrying everything reported so far.
"""

import re
from collections.abc import Callable
from datetime import date

import structlog

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.enums import MergeStrategy
from release_sapiens.exceptions import (
    BranchCreationError,
    MergeError,
    ReleaseAbortedError,
    ReleasePullRequestError,
    RetargetError,
)
from release_sapiens.models.domain import PullRequestDetail, RepositoryGroups
from release_sapiens.providers.base import PullRequestProvider
from release_sapiens.utils.status_reporter import (
    SINGLE_PULL_REQUEST_TEXT,
    branch_creation_failed_text,
    merge_failed_text,
    merged_all_text,
    merged_one_text,
    nothing_retargeted_text,
    release_branch_intro_text,
    release_merge_text,
    release_pull_request_failed_text,
    release_pull_request_text,
    release_skipped_text,
    retarget_failed_text,
    single_repository_text,
    strategy_note_text,
)

log = structlog.get_logger(__name__)

RELEASE_BRANCH_PATTERN = re.compile(r"^release/\w+", re.IGNORECASE)
RELEASE_TITLE_MARKER = "[PREPARED-FOR-RELEASE]"
RELEASE_PULL_REQUEST_TITLE = "Release pull-request"


def release_branch_name(today: date) -> str:
    return f"release/{today:%Y.%m.%d}"


def is_release_branch(branch_name: str) -> bool:
    return RELEASE_BRANCH_PATTERN.match(branch_name) is not None


def prepare_release_title(title: str) -> str:
    """Prefix ``title`` with the release marker unless it already carries it."""
    if RELEASE_TITLE_MARKER in title:
        return title
    return f"{RELEASE_TITLE_MARKER} {title}"


class ReleaseExecutor:
    """Plan and execute the merge of mergeable pull-requests.

    Attributes:
        provider: Pull-request provider performing the remote changes.
        settings: Settings supplying required reviewers and the bot's own UUID.
        today: Clock used to name release branches.
    """

    def __init__(
        self,
        provider: PullRequestProvider,
        settings: ReleaseSettings,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.today = today

    async def run(
        self,
        mergeable: dict[str, PullRequestDetail],
        by_repository: RepositoryGroups,
    ) -> str:
        """Release the pull-requests and return the narrative.

        Raises:
            ReleaseAbortedError: If the run had to stop. ``partial_text`` holds
                the narrative up to that point.
        """
        log.info("release_started", pull_requests=len(mergeable), repositories=len(by_repository))
        report: list[str] = []

        if len(mergeable) == 1:
            detail = next(iter(mergeable.values()))
            log.debug("single_pull_request_release", pull_request_id=detail.id)

            report.append(SINGLE_PULL_REQUEST_TEXT)
            try:
                await self._merge(report, [detail])
            except MergeError as e:
                report.append("\n")
                log.error("release_aborted", reason="merge_failed", pull_request_id=detail.id, error=e.message)
                raise ReleaseAbortedError(
                    f"Failed to merge pull-request #{detail.id}",
                    partial_text="".join(report),
                    cause=e,
                ) from e

            report.append("\n")
            log.info("release_finished")
            return "".join(report)

        for repository, pull_requests in by_repository.items():
            if len(pull_requests) == 1:
                await self._release_directly(report, repository, next(iter(pull_requests.values())))
            else:
                await self._release_through_branch(report, repository, list(pull_requests.values()))

        log.info("release_finished")
        return "".join(report)

    def release_reviewers(self) -> list[str]:
        """Required reviewers for release pull-requests, without the bot itself."""
        current_user = self.settings.release.current_user_uuid
        return [
            reviewer.uuid for reviewer in self.settings.release.required_reviewers if reviewer.uuid != current_user
        ]

    async def _release_directly(self, report: list[str], repository: str, detail: PullRequestDetail) -> None:
        log.debug("single_repository_pull_request", repository=repository, pull_request_id=detail.id)

        report.append(single_repository_text(repository))
        try:
            await self._merge(report, [detail])
        except MergeError as e:
            log.error("repository_merge_failed", repository=repository, pull_request_id=detail.id, error=e.message)
        report.append("\n")

    async def _release_through_branch(
        self,
        report: list[str],
        repository: str,
        details: list[PullRequestDetail],
    ) -> None:
        branch_name = release_branch_name(self.today())
        workspace = details[0].workspace
        description = ""
        branch_created = False
        retargeted: list[PullRequestDetail] = []

        log.info("release_branch_flow", repository=repository, branch=branch_name, pull_requests=len(details))
        report.append(release_branch_intro_text(repository))

        for detail in details:
            description += f"{detail.description}\n"

            if not branch_created:
                try:
                    await self.provider.create_branch(detail.workspace, detail.repository_slug, branch_name)
                except BranchCreationError as e:
                    report.append(branch_creation_failed_text(repository, e))
                    log.error("release_branch_creation_failed", repository=repository, branch=branch_name, error=e.message)
                    raise ReleaseAbortedError(
                        f"The release-branch for repository {repository} cannot be created",
                        partial_text="".join(report),
                        cause=e,
                    ) from e
                branch_created = True

            try:
                await self.provider.change_destination(
                    detail.workspace,
                    detail.repository_slug,
                    detail.id,
                    prepare_release_title(detail.title),
                    branch_name,
                )
            except RetargetError as e:
                report.append(retarget_failed_text(detail.id, e))
                log.error("destination_switch_failed", repository=repository, pull_request_id=detail.id, error=e.message)
                continue

            retargeted.append(detail)

        if not retargeted:
            report.append(nothing_retargeted_text(repository))
            return

        report.append(release_merge_text(len(retargeted), branch_name, repository))
        report.append("\n")
        try:
            await self._merge(report, retargeted)
        except MergeError as e:
            log.error("release_branch_merge_failed", repository=repository, branch=branch_name, error=e.message)
            report.append(release_skipped_text(repository))
            return

        try:
            release = await self.provider.create_pull_request(
                workspace,
                repository,
                RELEASE_PULL_REQUEST_TITLE,
                description,
                branch_name,
                self.release_reviewers(),
            )
        except ReleasePullRequestError as e:
            report.append(release_pull_request_failed_text(e))
            log.error("release_pull_request_failed", repository=repository, branch=branch_name, error=e.message)
            raise ReleaseAbortedError(
                f"The release pull-request for repository {repository} cannot be created",
                partial_text="".join(report),
                cause=e,
            ) from e

        log.info("release_pull_request_created", repository=repository, link=release.link)
        report.append(release_pull_request_text(release.link))

    async def _merge(self, report: list[str], details: list[PullRequestDetail]) -> None:
        """Merge ``details`` in order, stopping at the first failure.

        Raises:
            MergeError: After reporting the failing pull-request.
        """
        repository = details[0].repository_slug

        for detail in details:
            strategy = MergeStrategy.SQUASH
            if is_release_branch(detail.branch_name):
                strategy = MergeStrategy.MERGE
                report.append(strategy_note_text(detail.id))

            try:
                response = await self.provider.merge_pull_request(
                    detail.workspace,
                    detail.repository_slug,
                    detail.id,
                    detail.description,
                    strategy,
                )
            except MergeError as e:
                report.append(merge_failed_text(detail.id, e))
                log.info(
                    "pull_request_merge_failed",
                    repository=repository,
                    pull_request_id=detail.id,
                    error=e.message,
                )
                raise

            log.info(
                "pull_request_merged",
                repository=repository,
                pull_request_id=detail.id,
                strategy=str(strategy),
                state=str(response.state) if response is not None else None,
            )

        if len(details) == 1:
            report.append(merged_one_text(details[0].id, repository))
        else:
            report.append(merged_all_text(repository))
