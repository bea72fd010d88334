"""Tests for release_sapiens.exceptions module."""

import pytest

from release_sapiens.exceptions import (
    BranchCreationError,
    ConfigurationError,
    ExtractionError,
    MergeError,
    NotificationError,
    PullRequestLookupError,
    ReleaseAbortedError,
    ReleasePullRequestError,
    ReleaseSapiensError,
    RemoteMutationError,
    RemoteServiceError,
    RetargetError,
)


class TestReleaseSapiensError:
    """Test base ReleaseSapiensError class."""

    def test_init_with_message(self):
        error = ReleaseSapiensError("Test error message")

        assert error.message == "Test error message"
        assert str(error) == "Test error message"

    def test_exception_chain(self):
        original_error = ValueError("Original error")

        with pytest.raises(ReleaseSapiensError) as exc_info:
            raise ConfigurationError("Wrapped error") from original_error

        assert exc_info.value.__cause__ is original_error


class TestRemoteServiceError:
    """Test remote error attributes and hierarchy."""

    def test_str_is_bare_message(self):
        error = MergeError("Failed to merge ", status_code=555, response_text='{"error": {}}')

        assert str(error) == "Failed to merge "
        assert error.status_code == 555
        assert error.response_text == '{"error": {}}'

    @pytest.mark.parametrize(
        "error_cls",
        [BranchCreationError, RetargetError, MergeError, ReleasePullRequestError],
    )
    def test_mutation_errors(self, error_cls):
        error = error_cls("failed")

        assert isinstance(error, RemoteMutationError)
        assert isinstance(error, RemoteServiceError)
        assert isinstance(error, ReleaseSapiensError)

    def test_lookup_error_is_not_a_mutation(self):
        assert not isinstance(PullRequestLookupError("x"), RemoteMutationError)

    def test_notification_error(self):
        assert isinstance(NotificationError("channel_not_found"), RemoteServiceError)


class TestSpecificErrors:
    def test_extraction_error_keeps_raw_id(self):
        error = ExtractionError("Pull-request id is not a number: 'abc'", raw_id="abc")

        assert error.raw_id == "abc"

    def test_release_aborted_error(self):
        cause = BranchCreationError("Forbidden")
        error = ReleaseAbortedError("Branch failed", partial_text="so far", cause=cause)

        assert error.message == "Branch failed"
        assert error.partial_text == "so far"
        assert error.cause is cause

    def test_release_aborted_error_defaults(self):
        error = ReleaseAbortedError("stopped")

        assert error.partial_text == ""
        assert error.cause is None
