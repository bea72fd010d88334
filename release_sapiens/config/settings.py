"""
Configuration system using Pydantic for type-safe settings management.

This module provides the configuration classes for the release workflow:
the Bitbucket API connection, the optional Slack connection used for release
notifications, and the release policy itself (required reviewers, acting user,
release channel, pull-request link pattern).
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from release_sapiens.enums import ReviewerPolicy
from release_sapiens.exceptions import ConfigurationError

DEFAULT_PULL_REQUEST_PATTERN = (
    r"https://bitbucket\.org/(?P<workspace>\S+?)/(?P<repository_slug>[^/\s]+)"
    r"/pull-requests/(?P<pull_request_id>\w+)"
)


class BitbucketConfig(BaseModel):
    """Bitbucket Cloud API configuration.

    When ``username`` is set the token is sent as an app password with basic
    auth, otherwise as a bearer access token.
    """

    api_url: HttpUrl = Field(default="https://api.bitbucket.org/2.0", description="Bitbucket REST API base URL")
    web_url: str = Field(default="https://bitbucket.org", description="Base URL used to build pull-request links")
    access_token: SecretStr = Field(..., description="Access token or app password")
    username: str | None = Field(default=None, description="Username for app-password authentication")
    default_branch: str = Field(default="master", description="Branch release branches are created from")
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")

    @field_validator("web_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class SlackConfig(BaseModel):
    """Slack Web API configuration used for release-channel notifications."""

    api_url: HttpUrl = Field(default="https://slack.com/api", description="Slack Web API base URL")
    bot_token: SecretStr = Field(..., description="Bot token (xoxb-...)")
    as_user: bool = Field(default=True, description="Post messages as the authed user")


class RequiredReviewer(BaseModel):
    """A reviewer whose approval gates the release."""

    uuid: str = Field(..., description="Bitbucket user UUID, including braces")
    slack_uid: str = Field(..., description="Slack user id used for mentions")


class ReleaseConfig(BaseModel):
    """Release policy configuration."""

    required_reviewers: list[RequiredReviewer] = Field(default_factory=list, description="Ordered required reviewers")
    current_user_uuid: str = Field(
        default="",
        description="Bitbucket UUID of the bot account; never added as reviewer of release pull-requests",
    )
    reviewer_policy: ReviewerPolicy = Field(
        default=ReviewerPolicy.REQUIRED_REVIEWERS, description="Approval rule applied to pull-requests"
    )
    release_channel: str | None = Field(default=None, description="Channel receiving release reports")
    release_channel_message_enabled: bool = Field(default=False, description="Send release reports to the channel")
    pull_request_pattern: str = Field(
        default=DEFAULT_PULL_REQUEST_PATTERN,
        description="Regex with workspace, repository_slug and pull_request_id groups",
    )

    @property
    def notifies_release_channel(self) -> bool:
        return self.release_channel_message_enabled and bool(self.release_channel)


class ReleaseSettings(BaseSettings):
    """Main release-sapiens settings.

    Combines all configuration sections and provides loading from YAML files
    with environment variable interpolation. Every field can also be set from
    the environment, e.g. ``RELEASE_SAPIENS_BITBUCKET__ACCESS_TOKEN``.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELEASE_SAPIENS_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    bitbucket: BitbucketConfig
    slack: SlackConfig | None = None
    release: ReleaseConfig = Field(default_factory=ReleaseConfig)

    @classmethod
    def from_yaml(cls, config_path: str) -> ReleaseSettings:
        """Load settings from YAML file with environment variable interpolation.

        Supports ${VAR_NAME} syntax for environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            ReleaseSettings instance

        Raises:
            ConfigurationError: If config file is invalid or missing required fields
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_path}") from e

        try:
            yaml_content = cls._interpolate_env_vars(yaml_content)
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment variable reference in config: {e}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
            if not isinstance(config_dict, dict):
                raise ConfigurationError("Configuration must be a YAML object, not a list or scalar")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}") from e

        try:
            return cls(**config_dict)
        except TypeError as e:
            raise ConfigurationError(f"Missing or invalid configuration fields: {e}") from e
        except Exception as e:
            raise ConfigurationError(f"Failed to validate configuration: {e}") from e

    @staticmethod
    def _interpolate_env_vars(content: str) -> str:
        """Interpolate ${VAR_NAME} placeholders with environment variables.

        Supports two syntaxes:
        - ${VAR_NAME} - Required environment variable (raises if not set)
        - ${VAR_NAME:-default} - Optional with default value

        YAML comment lines (starting with #) are left unchanged.

        Raises:
            ValueError: If a required environment variable is not set
        """
        pattern = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            value = os.getenv(var_name)

            if value is not None:
                return value
            elif default_value is not None:
                return default_value
            else:
                raise ValueError(f"Environment variable {var_name} is not set")

        def process_line(line: str) -> str:
            if line.lstrip().startswith("#"):
                return line
            return pattern.sub(replace_var, line)

        return "\n".join(process_line(line) for line in content.split("\n"))
