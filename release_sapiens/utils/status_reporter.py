"""Status reporting: the chat texts produced by a release run.

Every function here is pure. The exact wording (including trailing spaces and
newlines) is part of the bot's chat contract, so the release engine only ever
builds its answer out of these pieces.
"""

from collections.abc import Mapping, Sequence

from release_sapiens.models.domain import Failed, PullRequestDetail, PullRequestRef

FOUND_PULL_REQUESTS_TEXT = "I found the next pull-requests:\n"
NO_PULL_REQUESTS_TEXT = "I can't find any pull-request in your message"
ALL_READY_TEXT = "All pull-requests are ready for merge! This is awesome!"
NOTHING_MERGEABLE_TEXT = "There is no pull-requests, which can be merged."
NOTHING_TO_RELEASE_TEXT = "Nothing to release"
SINGLE_PULL_REQUEST_TEXT = "We have only one pull-request, so I will try to merge it directly to the main branch.\n"


def received_pull_requests_text(refs: Sequence[PullRequestRef]) -> str:
    """List the pull-requests found in the chat message."""
    if not refs:
        return NO_PULL_REQUESTS_TEXT

    text = FOUND_PULL_REQUESTS_TEXT
    for ref in refs:
        text += f"Pull-request #{ref.id} [repository: {ref.repository_slug}]\n"

    return text


def failed_pull_requests_text(failed: Mapping[str, Failed]) -> str:
    """List the pull-requests that cannot be released, with the reason."""
    if not failed:
        return ALL_READY_TEXT

    text = "These pull-requests cannot be merged:\n"
    for url, verdict in failed.items():
        text += f"{url} - {verdict.reason} \n"

    return text


def mergeable_pull_requests_text(mergeable: Mapping[str, PullRequestDetail]) -> str:
    """List the pull-requests that are going to be merged."""
    if not mergeable:
        return NOTHING_MERGEABLE_TEXT

    text = "Next pull-requests is will be merged:\n"
    for url, detail in mergeable.items():
        text += f"[#{detail.id}] {url} \n"

    return text


def single_repository_text(repository: str) -> str:
    return f"There is only one pull-request for selected repository `{repository}`."


def release_branch_intro_text(repository: str) -> str:
    return f"\nFor repository `{repository}` we have more than 1 pull-request. I will create a release-branch."


def strategy_note_text(pull_request_id: int) -> str:
    """Note explaining why a pull-request is merged without squashing."""
    return (
        f"I merge `#{pull_request_id}` pull-request using `merge` strategy, "
        "because it is a release pull-request.\n"
    )


def merge_failed_text(pull_request_id: int, error: Exception) -> str:
    return f"I cannot merge the pull-request #{pull_request_id} because of error `{error}`"


def merged_one_text(pull_request_id: int, repository: str) -> str:
    return f"\nI merged pull-request #`{pull_request_id}` into destination branch of repository `{repository}` :)"


def merged_all_text(repository: str) -> str:
    return f"\nI merged all pull-requests for repository `{repository}` into destination branch :)"


def branch_creation_failed_text(repository: str, error: Exception) -> str:
    return f"\nThe release-branch for repository {repository} cannot be created, because of `{error}`"


def retarget_failed_text(pull_request_id: int, error: Exception) -> str:
    return (
        f"\nI've tried to switch the destination for pull-request #{pull_request_id} and I failed. "
        f"Reason: `{error}`\nNote! This pull-request will not be merged into release branch!"
    )


def release_merge_text(count: int, branch_name: str, repository: str) -> str:
    return f"\nTrying to merge the {count} pull-requests to the `{branch_name}` branch of `{repository}` repository"


def nothing_retargeted_text(repository: str) -> str:
    return (
        f"\nNone of the pull-requests of repository `{repository}` was moved to the release branch, "
        "so there is nothing to merge."
    )


def release_skipped_text(repository: str) -> str:
    return f"\nI skipped the release pull-request for repository `{repository}` because not everything was merged."


def release_pull_request_text(link: str) -> str:
    return f"\nPlease approve release pull-request: {link}"


def release_pull_request_failed_text(error: Exception) -> str:
    return f"\nI tried to create the release pull-request and I failed. Reason: {error}"


def release_notification_text(user: str, result: str) -> str:
    """Message posted to the release channel after a successful run."""
    return f"The user <@{user}> asked me to start the release and here is the result:{result}"
