"""Repository grouping of mergeable pull-requests.

Pull-requests are grouped by the repository slug Bitbucket reported for them
and, inside a repository, by title. Two pull-requests with the same title in
the same repository collapse into one entry (the later one wins).
"""

from collections.abc import Iterable

import structlog

from release_sapiens.models.domain import Failed, PullRequestDetail, RepositoryGroups

log = structlog.get_logger(__name__)


def add_to_groups(groups: RepositoryGroups, detail: PullRequestDetail) -> None:
    groups.setdefault(detail.repository_slug, {})[detail.title] = detail


def group_by_repository(details: Iterable[PullRequestDetail]) -> RepositoryGroups:
    """Build ``repository slug -> title -> detail`` keeping first-seen repository order."""
    groups: RepositoryGroups = {}
    for detail in details:
        add_to_groups(groups, detail)
    return groups


def drop_failed(
    mergeable: dict[str, PullRequestDetail],
    by_repository: RepositoryGroups,
    failed: dict[str, Failed],
) -> None:
    """Remove pull-requests that also failed from the mergeable maps, in place.

    This happens when the same link is posted twice and only one of its
    evaluations succeeded. A repository whose only member is removed
    disappears from the grouping.
    """
    for url in failed:
        detail = mergeable.pop(url, None)
        if detail is None:
            continue

        group = by_repository.get(detail.repository_slug)
        if group is None:
            continue

        grouped = group.get(detail.title)
        if grouped is None or grouped.id != detail.id:
            continue

        if len(group) == 1:
            del by_repository[detail.repository_slug]
        else:
            del group[detail.title]

        log.info("failed_pull_request_dropped", url=url, repository=detail.repository_slug)
