"""Error types raised by the provider.

Every error is terminal for the operation that raised it. The host decides
whether the whole operation is retried.
"""

from collections.abc import Collection
from typing import Any


class ProviderError(Exception):
    """Base class for all provider errors."""


class ConfigurationError(ProviderError):
    """Raised when settings or resource attributes are invalid.

    Always raised before any remote call is made.
    """


class AuthenticationError(ProviderError):
    """Raised when the credential exchange is rejected by the API."""


class ApiError(ProviderError):
    """Raised by the API client when a request fails.

    Attributes:
        status: HTTP status code
        error_name: Error name reported by the API
        messages: Error messages reported by the API
    """

    def __init__(
        self, status: int, error_name: str = "", messages: list[str] | None = None
    ) -> None:
        """Initialize ApiError.

        Args:
            status: HTTP status code
            error_name: Error name reported by the API
            messages: Error messages reported by the API
        """
        self.status = status
        self.error_name = error_name
        self.messages = messages or []

        detail = "; ".join(self.messages)
        summary = f"{status} {error_name}".strip()
        super().__init__(f"{summary}: {detail}" if detail else summary)

    @property
    def not_found(self) -> bool:
        """Whether the API reported the object as missing."""
        return self.status == 404


class RemoteCallError(ProviderError):
    """Raised by a resource handler when a remote call fails.

    Attributes:
        operation: What the handler was doing (e.g. "creating server")
        cause: The underlying error
    """

    def __init__(self, operation: str, cause: Exception) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Error {operation}: {cause}")


class UnexpectedStateError(ProviderError):
    """Raised when a refresh reports a state that is neither pending nor target.

    Attributes:
        state: The observed state
        expected: Pending and target states that would have been accepted
    """

    def __init__(self, state: str, expected: Collection[str]) -> None:
        self.state = state
        self.expected = sorted(expected)
        super().__init__(
            f"unexpected state '{state}', wanted one of: {', '.join(self.expected)}"
        )


class WaitTimeoutError(ProviderError):
    """Raised when no target state is reached before the timeout.

    Attributes:
        last_state: The last state observed before giving up
        timeout: Timeout in seconds
    """

    def __init__(self, last_state: str, timeout: float) -> None:
        self.last_state = last_state
        self.timeout = timeout
        super().__init__(
            f"timeout while waiting for state to become target "
            f"(last state: '{last_state}', timeout: {timeout:g}s)"
        )


class SizeLimitError(ProviderError):
    """Raised when an encoded payload exceeds its size limit.

    Attributes:
        size: Encoded size in bytes
        limit: Maximum allowed size in bytes
    """

    def __init__(self, size: int, limit: int, field: str = "user_data") -> None:
        self.size = size
        self.limit = limit
        self.field = field
        super().__init__(
            f"The supplied {field} contains {size} bytes after encoding, "
            f"this exceeds the limit of {limit} bytes"
        )


class IncompleteCreateError(ProviderError):
    """Raised when a step after a successful create call fails.

    The remote object exists, so the host must keep tracking it.

    Attributes:
        instance: The created instance, identified but without attributes
        cause: The error raised by the failed step
    """

    def __init__(self, instance: Any, cause: Exception) -> None:
        self.instance = instance
        self.cause = cause
        super().__init__(
            f"{instance.resource_type} {instance.id} was created but did not become ready: {cause}"
        )
