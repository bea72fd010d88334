"""
Release-readiness evaluation.

For every pull-request reference found in the chat message this module fetches
the pull-request from Bitbucket and applies the release policy, producing one
verdict per reference:

    lookup ──error──────────────────────────────► Failed(reason=<remote error>)
      │
      ▼
    state == OPEN ──no──────────────────────────► Failed(state reason)
      │
      ▼
    reviewer policy ──no────────────────────────► Failed(reviewer reason)
      │
      ▼
    Mergeable

Reviewer policies (``release.reviewer_policy``):
    required-reviewers:
        One of the configured required reviewers must be a participant, and at
        least one participating required reviewer must have approved.
    all-participants:
        Every participant must have approved.

Both policies are skipped when no required reviewers are configured.

Nothing is changed on Bitbucket here.
"""

import structlog

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.engine.grouping import add_to_groups, drop_failed
from release_sapiens.enums import PullRequestState, ReviewerPolicy
from release_sapiens.exceptions import PullRequestLookupError
from release_sapiens.models.domain import (
    EvaluationResult,
    Failed,
    Mergeable,
    PullRequestDetail,
    PullRequestRef,
    ReadinessVerdict,
)
from release_sapiens.providers.base import PullRequestProvider

log = structlog.get_logger(__name__)

REQUIRED_REVIEWER_APPROVAL_REASON = "The pull-request should be approved by one of the required reviewers."
ALL_PARTICIPANTS_APPROVAL_REASON = "The pull-request should be approved by all participants."


class ReadinessEvaluator:
    """Classify pull-requests as mergeable or failed.

    Attributes:
        provider: Pull-request provider used for lookups.
        settings: Settings supplying the web URL and the release policy.
    """

    def __init__(self, provider: PullRequestProvider, settings: ReleaseSettings) -> None:
        self.provider = provider
        self.settings = settings

    def pull_request_url(self, workspace: str, repository_slug: str, pull_request_id: int) -> str:
        """Canonical link used as the key of a pull-request in every report."""
        return f"{self.settings.bitbucket.web_url}/{workspace}/{repository_slug}/pull-requests/{pull_request_id}"

    async def evaluate(self, refs: list[PullRequestRef]) -> EvaluationResult:
        """Evaluate ``refs`` one by one, in order.

        A lookup failure only marks that pull-request as failed; the rest of
        the batch is still evaluated.

        Returns:
            Mergeable pull-requests by URL and grouped by repository and
            title, and failed pull-requests by URL.
        """
        result = EvaluationResult()

        for ref in refs:
            verdict = await self.evaluate_one(ref)

            if isinstance(verdict, Mergeable):
                result.mergeable[verdict.url] = verdict.detail
                add_to_groups(result.by_repository, verdict.detail)
            elif isinstance(verdict, Failed):
                result.failed[verdict.url] = verdict
            else:
                raise TypeError(f"Unknown verdict type: {type(verdict).__name__}")

        if result.failed:
            drop_failed(result.mergeable, result.by_repository, result.failed)

        return result

    async def evaluate_one(self, ref: PullRequestRef) -> ReadinessVerdict:
        """Fetch one pull-request and apply the release policy to it."""
        url = self.pull_request_url(ref.workspace, ref.repository_slug, ref.id)

        try:
            detail = await self.provider.get_pull_request(ref.workspace, ref.repository_slug, ref.id)
        except PullRequestLookupError as e:
            log.warning("pull_request_lookup_failed", url=url, error=e.message, status=e.status_code)
            return Failed(url=url, reason=str(e), cause=e)

        detail.description = detail.description.replace("\\", "")
        if not detail.repository_slug:
            detail.repository_slug = ref.repository_slug
        if not detail.workspace:
            detail.workspace = ref.workspace

        # Bitbucket may report a different slug than the one in the link
        url = self.pull_request_url(ref.workspace, detail.repository_slug, ref.id)

        reason = self.check_policy(detail)
        if reason is not None:
            log.info("pull_request_not_mergeable", url=url, state=str(detail.state), reason=reason)
            return Failed(url=url, reason=reason, detail=detail)

        log.info(
            "pull_request_mergeable",
            url=url,
            repository=detail.repository_slug,
            branch=detail.branch_name,
            title=detail.title,
        )
        return Mergeable(url=url, detail=detail)

    def check_policy(self, detail: PullRequestDetail) -> str | None:
        """Return the reason ``detail`` cannot be released, or None."""
        if detail.state != PullRequestState.OPEN:
            return f"The state should be {PullRequestState.OPEN}, instead of it {detail.state} received."

        reviewers = self.settings.release.required_reviewers
        if not reviewers:
            return None

        if self.settings.release.reviewer_policy == ReviewerPolicy.ALL_PARTICIPANTS:
            if not all(participant.approved for participant in detail.participants):
                return ALL_PARTICIPANTS_APPROVAL_REASON
            return None

        participants = {participant.uuid: participant for participant in detail.participants}
        present = [participants[reviewer.uuid] for reviewer in reviewers if reviewer.uuid in participants]
        if not present:
            mentions = ", ".join(f"<@{reviewer.slack_uid}>" for reviewer in reviewers)
            return f"One of the required reviewers ({mentions}) was not found in the reviewers list."

        if not any(participant.approved for participant in present):
            return REQUIRED_REVIEWER_APPROVAL_REASON

        return None
