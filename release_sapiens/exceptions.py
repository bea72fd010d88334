"""Custom exception hierarchy for the release-sapiens release workflow.

This module defines a structured exception hierarchy that enables precise
error handling across the release pipeline: from parsing pull-request links
out of chat text, through the Bitbucket calls, to the chat notification.

Exception Hierarchy:
    ReleaseSapiensError (base)
    ├── ConfigurationError
    ├── ExtractionError
    ├── RemoteServiceError
    │   ├── PullRequestLookupError
    │   └── RemoteMutationError
    │       ├── BranchCreationError
    │       ├── RetargetError
    │       ├── MergeError
    │       └── ReleasePullRequestError
    ├── NotificationError
    └── ReleaseAbortedError

Severity is decided by the caller, not by the exception: a ``MergeError``
aborts the run when it hits the only mergeable pull-request, but is only
reported when it hits one repository out of many.

Example Usage:
    >>> from release_sapiens.exceptions import ConfigurationError
    >>> try:
    ...     load_config(path)
    ... except FileNotFoundError as e:
    ...     raise ConfigurationError(f"Config file not found: {path}") from e
"""


class ReleaseSapiensError(Exception):
    """Base exception for all release-sapiens errors.

    All custom exceptions inherit from this base class, allowing callers to
    catch every release-specific error with a single except clause.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(ReleaseSapiensError):
    """Configuration-related errors.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Missing required configuration fields
        - Unset environment variable referenced from the config file
    """

    pass


class ExtractionError(ReleaseSapiensError):
    """A pull-request reference in the chat text could not be parsed.

    The extractor catches this itself and returns an empty result, so it
    never reaches the caller of the release event.

    Attributes:
        raw_id: The captured identifier that failed to parse
    """

    def __init__(self, message: str, raw_id: str | None = None) -> None:
        self.raw_id = raw_id
        super().__init__(message)


class RemoteServiceError(ReleaseSapiensError):
    """Communication with a remote service (Bitbucket, Slack) failed.

    ``str(error)`` is the bare message reported by the remote service, since
    it is embedded verbatim in the chat answer. The HTTP status is kept as an
    attribute for logging.

    Attributes:
        message: Error message as reported by the service
        status_code: HTTP status code (if applicable)
        response_text: Raw response body (if applicable)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            status_code: HTTP status code (if applicable)
            response_text: Response body text (if applicable)
        """
        self.status_code = status_code
        self.response_text = response_text
        super().__init__(message)


class PullRequestLookupError(RemoteServiceError):
    """Fetching pull-request details failed.

    Isolates the affected pull-request as failed; the rest of the batch is
    still evaluated.
    """

    pass


class RemoteMutationError(RemoteServiceError):
    """A state-changing Bitbucket call failed.

    Base class for branch creation, destination change, merge and pull-request
    creation failures.
    """

    pass


class BranchCreationError(RemoteMutationError):
    """The release branch could not be created."""

    pass


class RetargetError(RemoteMutationError):
    """The destination branch of a pull-request could not be changed."""

    pass


class MergeError(RemoteMutationError):
    """A pull-request could not be merged."""

    pass


class ReleasePullRequestError(RemoteMutationError):
    """The follow-up release pull-request could not be created."""

    pass


class NotificationError(RemoteServiceError):
    """Sending a chat message failed.

    Always swallowed by ``ReleaseNotifier`` and only logged.
    """

    pass


class ReleaseAbortedError(ReleaseSapiensError):
    """The release run stopped before all repositories were processed.

    Carries the narrative produced up to the failure so that the chat answer
    can still tell the user what happened.

    Attributes:
        partial_text: Status text accumulated before the abort
        cause: The remote error that stopped the run
    """

    def __init__(
        self,
        message: str,
        partial_text: str = "",
        cause: Exception | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            partial_text: Status text produced before the run stopped
            cause: Underlying error
        """
        self.partial_text = partial_text
        self.cause = cause
        super().__init__(message)
