"""Provider implementations for the services the release workflow talks to.

Key Components:
    - PullRequestProvider: Abstract base for pull-request hosting services
    - MessageProvider: Abstract base for chat messaging services
    - BitbucketRestProvider: Bitbucket Cloud REST API 2.0 implementation
    - SlackRestProvider: Slack Web API implementation

Example:
    >>> from release_sapiens.providers.bitbucket_rest import BitbucketRestProvider
    >>> async with BitbucketRestProvider(api_url="...", token="...") as bitbucket:
    ...     detail = await bitbucket.get_pull_request("john", "test-repo", 1)
"""

from release_sapiens.providers.base import MessageProvider, PullRequestProvider

__all__ = [
    "MessageProvider",
    "PullRequestProvider",
]
