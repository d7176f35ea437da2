"""Unit tests for provider error types."""

from brightbox_provider.core.errors import (
    ApiError,
    ConfigurationError,
    IncompleteCreateError,
    ProviderError,
    RemoteCallError,
    SizeLimitError,
    UnexpectedStateError,
    WaitTimeoutError,
)
from brightbox_provider.resources.base import Instance


class TestApiError:
    """Tests for ApiError."""

    def test_message_with_details(self) -> None:
        """Test that status, name and messages all appear in the message."""
        error = ApiError(422, "invalid_params", ["name is too long", "zone is unknown"])
        assert str(error) == "422 invalid_params: name is too long; zone is unknown"

    def test_message_without_details(self) -> None:
        """Test the message when the API reported only a status."""
        assert str(ApiError(500)) == "500"

    def test_not_found(self) -> None:
        """Test that only a 404 counts as not found."""
        assert ApiError(404, "missing_resource").not_found is True
        assert ApiError(403, "forbidden").not_found is False

    def test_is_provider_error(self) -> None:
        """Test that API errors belong to the provider taxonomy."""
        assert isinstance(ApiError(400), ProviderError)


class TestRemoteCallError:
    """Tests for RemoteCallError."""

    def test_prefixes_operation(self) -> None:
        """Test that the operation is prefixed to the cause."""
        cause = ApiError(409, "invalid_state", ["server is locked"])
        error = RemoteCallError("deleting server", cause)
        assert str(error) == "Error deleting server: 409 invalid_state: server is locked"
        assert error.cause is cause


class TestStateErrors:
    """Tests for reconciliation errors."""

    def test_unexpected_state_lists_expected(self) -> None:
        """Test that expected states are listed in sorted order."""
        error = UnexpectedStateError("failed", {"creating", "active"})
        assert error.state == "failed"
        assert error.expected == ["active", "creating"]
        assert "unexpected state 'failed'" in str(error)
        assert "active, creating" in str(error)

    def test_timeout_carries_last_state(self) -> None:
        """Test that a timeout reports the last observed state."""
        error = WaitTimeoutError("creating", 300.0)
        assert error.last_state == "creating"
        assert "last state: 'creating'" in str(error)
        assert "300s" in str(error)


class TestSizeLimitError:
    """Tests for SizeLimitError."""

    def test_message_reports_sizes(self) -> None:
        """Test that both byte counts are reported."""
        error = SizeLimitError(20000, 16384)
        assert error.size == 20000
        assert error.limit == 16384
        assert str(error) == (
            "The supplied user_data contains 20000 bytes after encoding, "
            "this exceeds the limit of 16384 bytes"
        )

    def test_configuration_error_is_provider_error(self) -> None:
        """Test the taxonomy root."""
        assert issubclass(ConfigurationError, ProviderError)
        assert issubclass(SizeLimitError, ProviderError)


class TestIncompleteCreateError:
    """Tests for IncompleteCreateError."""

    def test_keeps_instance_and_cause(self) -> None:
        """Test that the created id survives in the error."""
        cause = WaitTimeoutError("creating", 300)
        error = IncompleteCreateError(Instance("brightbox_server", "srv-12345"), cause)

        assert error.instance.id == "srv-12345"
        assert error.cause is cause
        assert str(error) == (
            "brightbox_server srv-12345 was created but did not become ready: "
            "timeout while waiting for state to become target "
            "(last state: 'creating', timeout: 300s)"
        )
