"""Error taxonomy for the Rundeck client and CLI."""

from typing import Any

EXIT_CONFIG = 3
EXIT_FAILURE = 4


class RundeckError(Exception):
    """Base exception for Rundeck client errors.

    Attributes:
        message: Human-readable error message
        details: Additional error context
        exit_code: Process exit code used by the CLI
    """

    exit_code = EXIT_FAILURE

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize Rundeck error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """String representation of error."""
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigError(RundeckError):
    """Missing or invalid client configuration or CLI input."""

    exit_code = EXIT_CONFIG


class AuthError(RundeckError):
    """Login was rejected, or the session was redirected back to login."""

    exit_code = EXIT_CONFIG


class TransportError(RundeckError):
    """Network or HTTP-layer failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize transport error."""
        super().__init__(
            message,
            details={"status_code": status_code} if status_code else {},
        )
        self.status_code = status_code


class APIError(RundeckError):
    """Server reported a logical failure through its error envelope."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize API error."""
        details: dict[str, Any] = {}
        if code:
            details["code"] = code
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.code = code
        self.status_code = status_code


class ProtocolError(RundeckError):
    """Response body was not the JSON shape the operation expects."""


class JobFailedError(RundeckError):
    """Execution completed without succeeding."""

    def __init__(self, execution_id: int, state: str) -> None:
        """Initialize job failure."""
        super().__init__(
            f"Job execution {execution_id} finished with state {state}",
            details={"execution_id": execution_id, "state": state},
        )
        self.execution_id = execution_id
        self.state = state

    def __str__(self) -> str:
        return self.message


class PollTimeoutError(RundeckError):
    """Polling gave up before the server reported completion."""

    def __init__(self, timeout_seconds: float, what: str = "execution") -> None:
        """Initialize poll timeout error."""
        super().__init__(
            f"Timed out after {timeout_seconds:g}s waiting for {what}",
            details={"timeout_seconds": timeout_seconds},
        )
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        return self.message
