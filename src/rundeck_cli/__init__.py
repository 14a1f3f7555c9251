"""Rundeck CLI - command-line client for the Rundeck job scheduler API."""

from .client import RundeckClient, authenticate
from .errors import (
    APIError,
    AuthError,
    ConfigError,
    JobFailedError,
    PollTimeoutError,
    ProtocolError,
    RundeckError,
    TransportError,
)
from .models import (
    Execution,
    ExecutionState,
    ExecutionStatus,
    JobSummary,
    ListJobsFilters,
    OutputEntry,
    OutputPage,
    RunJobParams,
)
from .polling import await_completion, tail_output

__version__ = "0.1.0"

__all__ = [
    "RundeckClient",
    "authenticate",
    "await_completion",
    "tail_output",
    "Execution",
    "ExecutionState",
    "ExecutionStatus",
    "JobSummary",
    "ListJobsFilters",
    "OutputEntry",
    "OutputPage",
    "RunJobParams",
    "RundeckError",
    "ConfigError",
    "AuthError",
    "TransportError",
    "APIError",
    "ProtocolError",
    "JobFailedError",
    "PollTimeoutError",
]
