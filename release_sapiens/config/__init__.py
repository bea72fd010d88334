"""Configuration system for release-sapiens.

This package provides type-safe configuration management using Pydantic.

Key Components:
    - ReleaseSettings: Main configuration container with YAML loading support
    - BitbucketConfig: Bitbucket API connection
    - SlackConfig: Slack connection for release notifications
    - ReleaseConfig: Required reviewers, acting user and release channel

Example:
    >>> from release_sapiens.config import ReleaseSettings
    >>> settings = ReleaseSettings.from_yaml("release_config.yaml")
    >>> reviewers = settings.release.required_reviewers
"""

from release_sapiens.config.settings import (
    DEFAULT_PULL_REQUEST_PATTERN,
    BitbucketConfig,
    ReleaseConfig,
    ReleaseSettings,
    RequiredReviewer,
    SlackConfig,
)

__all__ = [
    "DEFAULT_PULL_REQUEST_PATTERN",
    "BitbucketConfig",
    "ReleaseConfig",
    "ReleaseSettings",
    "RequiredReviewer",
    "SlackConfig",
]
