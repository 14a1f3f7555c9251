"""Pydantic models for Rundeck API payloads."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class RundeckModel(BaseModel):
    """Base model: server field names as aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using the server's field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ExecutionStatus(str, Enum):
    """Execution state values reported by the server."""

    RUNNING = "RUNNING"
    RUNNING_HANDLER = "RUNNING_HANDLER"
    WAITING = "WAITING"
    SCHEDULED = "SCHEDULED"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    FAILED_WITH_RETRY = "FAILED_WITH_RETRY"
    ABORTED = "ABORTED"
    TIMEDOUT = "TIMEDOUT"
    NODE_PARTIAL = "NODE_PARTIAL"
    NODE_MIXED = "NODE_MIXED"
    OTHER = "OTHER"


class ErrorEnvelope(RundeckModel):
    """Error body the server may return with any HTTP status."""

    error: bool = False
    api_version: int | None = Field(default=None, alias="apiversion")
    error_code: str | None = Field(default=None, alias="errorCode")
    message: str = ""


class DateTime(RundeckModel):
    """Timestamp as reported by the server."""

    unixtime: int
    date: str


class JobSummary(RundeckModel):
    """Job entry returned when listing a project's jobs."""

    id: str
    name: str
    group: str | None = None
    project: str
    description: str | None = None
    href: str | None = None
    permalink: str | None = None
    scheduled: bool = False
    schedule_enabled: bool = Field(default=False, alias="scheduleEnabled")
    enabled: bool = True


class JobDetails(RundeckModel):
    """Job reference embedded in an execution."""

    id: str
    name: str
    group: str | None = None
    project: str
    description: str | None = None
    average_duration: int | None = Field(default=None, alias="averageDuration")
    options: dict[str, str] = Field(default_factory=dict)
    href: str | None = None
    permalink: str | None = None


class Execution(RundeckModel):
    """Execution of a job."""

    id: int
    href: str
    permalink: str | None = None
    status: str
    project: str
    execution_type: str | None = Field(default=None, alias="executionType")
    user: str | None = None
    date_started: DateTime | None = Field(default=None, alias="date-started")
    date_ended: DateTime | None = Field(default=None, alias="date-ended")
    job: JobDetails | None = None
    description: str | None = None
    argstring: str | None = None
    successful_nodes: list[str] = Field(default_factory=list, alias="successfulNodes")
    failed_nodes: list[str] = Field(default_factory=list, alias="failedNodes")


class ExecutionState(RundeckModel):
    """Execution state, polled until ``completed`` is true."""

    execution_id: int = Field(alias="executionId")
    completed: bool
    execution_state: str = Field(alias="executionState")
    error: str | None = None
    start_time: str | None = Field(default=None, alias="startTime")
    end_time: str | None = Field(default=None, alias="endTime")

    @property
    def succeeded(self) -> bool:
        """Check if the execution finished successfully."""
        return self.execution_state == ExecutionStatus.SUCCEEDED.value


class OutputEntry(RundeckModel):
    """Single line of execution output."""

    time: str
    log: str
    level: str | None = None
    node: str | None = None
    absolute_time: str | None = None

    def format(self) -> str:
        return f"{self.time} {self.log}"


class OutputPage(RundeckModel):
    """Page of execution output starting at a given offset."""

    id: str | None = None
    offset: str
    completed: bool = False
    exec_completed: bool = Field(default=False, alias="execCompleted")
    exec_state: str | None = Field(default=None, alias="execState")
    has_failed_nodes: bool | None = Field(default=None, alias="hasFailedNodes")
    entries: list[OutputEntry] = Field(default_factory=list)


class ListJobsFilters(RundeckModel):
    """Optional query filters for listing jobs."""

    group_path: str | None = Field(default=None, alias="groupPath")
    job_filter: str | None = Field(default=None, alias="jobFilter")
    job_exact_filter: str | None = Field(default=None, alias="jobExactFilter")
    id_list: str | None = Field(default=None, alias="idlist")
    tags: str | None = None

    def to_params(self) -> dict[str, str]:
        """Query parameters for the filters that are set."""
        return self.model_dump(by_alias=True, exclude_none=True)


LogLevel = Literal["DEBUG", "VERBOSE", "INFO", "WARN", "ERROR"]


class RunJobParams(RundeckModel):
    """Parameters for running a job.

    Option values are always strings.
    """

    options: dict[str, str] = Field(default_factory=dict)
    log_level: LogLevel | None = Field(default=None, alias="loglevel")
    as_user: str | None = Field(default=None, alias="asUser")
    node_filter: str | None = Field(default=None, alias="filter")
    run_at_time: str | None = Field(default=None, alias="runAtTime")

    def to_body(self) -> dict[str, Any]:
        """Request body for the run-job endpoint."""
        return self.model_dump(by_alias=True, exclude_none=True)
