"""
Pull-request link extraction from chat text.

Finds every Bitbucket pull-request link in a message and turns it into a
``PullRequestRef``. No remote calls are made here.

The pattern must define three named groups: ``workspace``,
``repository_slug`` and ``pull_request_id``. Links usually carry a trailing
path such as ``/pull-requests/1/testing-pr-flow``; only the id segment is
captured.

Example:
    >>> refs = extract_pull_requests(
    ...     "release https://bitbucket.org/john/test-repo/pull-requests/1/some-title"
    ... )
    >>> refs[0].repository_slug
    'test-repo'
"""

import re

import structlog

from release_sapiens.config.settings import DEFAULT_PULL_REQUEST_PATTERN
from release_sapiens.exceptions import ExtractionError
from release_sapiens.models.domain import PullRequestRef

log = structlog.get_logger(__name__)

MAX_PULL_REQUEST_ID = 2**63 - 1
REQUIRED_GROUPS = frozenset({"workspace", "repository_slug", "pull_request_id"})


def extract_pull_requests(text: str, pattern: str = DEFAULT_PULL_REQUEST_PATTERN) -> list[PullRequestRef]:
    """Extract pull-request references from ``text`` in order of appearance.

    Never raises. A pattern that does not compile, or any captured id that is
    not a 64-bit integer, is logged and yields an empty list; partial results
    are never returned.

    Duplicate links are kept: two links to the same pull-request produce two
    equal refs.
    """
    try:
        regex = re.compile(pattern, re.MULTILINE)
    except re.error as e:
        log.error("pull_request_pattern_invalid", pattern=pattern, error=str(e))
        return []

    missing = REQUIRED_GROUPS - regex.groupindex.keys()
    if missing:
        log.error("pull_request_pattern_invalid", pattern=pattern, missing_groups=sorted(missing))
        return []

    refs: list[PullRequestRef] = []
    for match in regex.finditer(text):
        workspace = match.group("workspace")
        if not workspace:
            continue

        try:
            pull_request_id = _parse_id(match.group("pull_request_id"))
        except ExtractionError as e:
            log.error(
                "pull_request_id_invalid",
                raw_id=e.raw_id,
                matches=[m.group(0) for m in regex.finditer(text)],
                error=e.message,
            )
            return []

        refs.append(
            PullRequestRef(
                workspace=workspace,
                repository_slug=match.group("repository_slug"),
                id=pull_request_id,
            )
        )

    log.debug("pull_requests_extracted", count=len(refs))
    return refs


def _parse_id(raw_id: str) -> int:
    if not raw_id.isascii() or not raw_id.isdigit():
        raise ExtractionError(f"Pull-request id is not a number: {raw_id!r}", raw_id=raw_id)

    value = int(raw_id)
    if value > MAX_PULL_REQUEST_ID:
        raise ExtractionError(f"Pull-request id is out of range: {raw_id}", raw_id=raw_id)

    return value
