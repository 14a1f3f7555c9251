"""Rundeck API client."""

import json
import time
from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .config import DEFAULT_API_VERSION
from .errors import (
    APIError,
    AuthError,
    ConfigError,
    PollTimeoutError,
    ProtocolError,
    RundeckError,
    TransportError,
)
from .logger import logger
from .models import (
    ErrorEnvelope,
    Execution,
    ExecutionState,
    JobSummary,
    ListJobsFilters,
    OutputPage,
    RunJobParams,
)

LOGIN_PATH = "/j_security_check"

# Rundeck redirects here when form login fails or the session has expired
AUTH_FAILURE_PATHS = frozenset({"/user/login", "/user/error"})

OUTPUT_RETRY_INTERVAL_S = 0.5

ModelT = TypeVar("ModelT", bound=BaseModel)

_NO_BODY = object()


class RundeckClient:
    """
    Session-authenticated client for the Rundeck REST API.

    Logs in once with form credentials and reuses the session cookie for
    every later call. Use :func:`authenticate` to get a logged-in client.
    """

    def __init__(
        self,
        server_url: str,
        username: str,
        password: str,
        *,
        api_version: int | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize Rundeck client.

        Args:
            server_url: Rundeck base URL, trailing slash optional
            username: Rundeck username
            password: Rundeck password
            api_version: API version for data endpoints (default 24)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            ConfigError: If the URL or credentials are empty
        """
        server_url = (server_url or "").strip().rstrip("/")
        if not server_url:
            raise ConfigError("Rundeck client requires a server URL")
        if not username or not password:
            raise ConfigError("Rundeck client requires a username and password")
        if api_version is not None and api_version <= 0:
            raise ConfigError(f"Invalid API version: {api_version}")

        self.server_url = server_url
        self.username = username
        self._password = password
        self.api_version = api_version or DEFAULT_API_VERSION
        self.timeout = timeout
        self.logger = logger.child({"server": server_url})
        self._authenticated = False
        self._client = httpx.Client(
            headers={"User-Agent": "rundeck-cli"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self) -> "RundeckClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close HTTP client."""
        self._client.close()

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    def login(self) -> None:
        """
        Log in with form credentials.

        Raises:
            AuthError: If the server rejects the credentials or cannot be reached
        """
        url = self.server_url + LOGIN_PATH
        self.logger.debug("Logging in", {"user": self.username})
        try:
            response = self._client.post(
                url,
                data={"j_username": self.username, "j_password": self._password},
            )
        except httpx.RequestError as e:
            raise AuthError(f"Login failed: {e}") from e

        self._check_redirects(response)
        if not response.is_success:
            raise AuthError(
                f"Login failed: unexpected HTTP status {response.status_code}"
            )
        self._authenticated = True

    def api_url(self, *segments: str) -> str:
        """Build ``{base}/api/{version}/{segment}/...``."""
        return "/".join(
            [f"{self.server_url}/api/{self.api_version}", *(str(s) for s in segments)]
        )

    def _check_redirects(self, response: httpx.Response) -> None:
        """Reject responses that were redirected to the login or error page."""
        for hop in (*response.history, response):
            if hop.url.path in AUTH_FAILURE_PATHS:
                raise AuthError(f"Authentication error: redirected to {hop.url.path}")

    def _request(
        self,
        method: str,
        *segments: str,
        params: Mapping[str, str] | None = None,
        body: Any = _NO_BODY,
    ) -> httpx.Response:
        """Send an authenticated API request."""
        if not self._authenticated:
            raise AuthError("Not authenticated: log in before calling the API")

        url = self.api_url(*segments)
        headers = {"Accept": "application/json"}
        content = None
        if body is not _NO_BODY:
            headers["Content-Type"] = "application/json"
            content = json.dumps(body, separators=(",", ":"))

        self.logger.debug("API request", {"method": method, "url": url, "params": params})
        try:
            response = self._client.request(
                method, url, params=params, headers=headers, content=content
            )
        except httpx.RequestError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        self._check_redirects(response)
        return response

    def _decode(self, response: httpx.Response, operation: str) -> Any:
        """
        Decode a response body, surfacing server-reported errors first.

        Raises:
            APIError: If the body is an error envelope, whatever the status
            TransportError: If the status is not 2xx
            ProtocolError: If the body is not JSON
        """
        try:
            data = response.json()
        except ValueError:
            data = _NO_BODY

        if isinstance(data, dict) and data.get("error") is True:
            envelope = self._parse(ErrorEnvelope, data, operation)
            self.logger.debug(
                "API error",
                {"operation": operation, "code": envelope.error_code},
            )
            raise APIError(
                envelope.message or f"{operation} failed",
                code=envelope.error_code,
                status_code=response.status_code,
            )

        if not response.is_success:
            raise TransportError(
                f"{operation} returned HTTP status {response.status_code}",
                response.status_code,
            )

        if data is _NO_BODY:
            raise ProtocolError(f"{operation} returned a non-JSON response")
        return data

    @staticmethod
    def _is_error_envelope(response: httpx.Response) -> bool:
        try:
            data = response.json()
        except ValueError:
            return False
        return isinstance(data, dict) and data.get("error") is True

    @staticmethod
    def _parse(model: type[ModelT], data: Any, operation: str) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ProtocolError(
                f"{operation} returned an unexpected payload",
                details={"errors": e.error_count()},
            ) from e

    def list_jobs(
        self, project: str, filters: ListJobsFilters | None = None
    ) -> list[JobSummary]:
        """
        List the jobs of a project.

        Args:
            project: Project name
            filters: Optional query filters

        Returns:
            Job summaries

        Raises:
            APIError: If the server reports an error
        """
        response = self._request(
            "GET",
            "project",
            project,
            "jobs",
            params=filters.to_params() if filters else None,
        )
        data = self._decode(response, "ListJobs")
        if not isinstance(data, list):
            raise ProtocolError("ListJobs returned an unexpected payload")
        return [self._parse(JobSummary, job, "ListJobs") for job in data]

    def run_job(
        self,
        job_id: str,
        options: Mapping[str, str] | RunJobParams | None = None,
    ) -> Execution:
        """
        Run a job.

        Args:
            job_id: Job UUID
            options: Job options, or full run parameters

        Returns:
            The new execution

        Raises:
            APIError: If the server refuses to run the job
        """
        if isinstance(options, RunJobParams):
            params = options
        else:
            params = RunJobParams(options=dict(options or {}))

        response = self._request(
            "POST", "job", job_id, "executions", body=params.to_body()
        )
        data = self._decode(response, "RunJob")
        return self._parse(Execution, data, "RunJob")

    def execution_info(self, execution_id: int) -> Execution:
        """Get execution details."""
        response = self._request("GET", "execution", str(execution_id))
        data = self._decode(response, "ExecutionInfo")
        return self._parse(Execution, data, "ExecutionInfo")

    def execution_state(self, execution_id: int) -> ExecutionState:
        """Get execution state (polled by :func:`await_completion`)."""
        response = self._request("GET", "execution", str(execution_id), "state")
        data = self._decode(response, "ExecutionState")
        return self._parse(ExecutionState, data, "ExecutionState")

    def execution_output(
        self,
        execution_id: int,
        offset: str | None = "0",
        *,
        timeout: float | None = None,
        retry_interval: float = OUTPUT_RETRY_INTERVAL_S,
    ) -> OutputPage:
        """
        Get a page of execution output.

        The server answers a bare 404 until the execution's log exists; the
        same request is retried every ``retry_interval`` seconds until it
        doesn't. A 404 carrying an error envelope (unknown execution) raises.

        Args:
            execution_id: Execution ID
            offset: Opaque offset returned by the previous page
            timeout: Give up retrying after this many seconds (None waits forever)
            retry_interval: Seconds between retries on 404

        Raises:
            PollTimeoutError: If output is still unavailable at the timeout
        """
        params = {"offset": offset} if offset is not None else None
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            response = self._request(
                "GET", "execution", str(execution_id), "output", params=params
            )
            if (
                response.status_code != httpx.codes.NOT_FOUND
                or self._is_error_envelope(response)
            ):
                break
            if deadline is not None and time.monotonic() + retry_interval > deadline:
                raise PollTimeoutError(
                    timeout or 0, what=f"output of execution {execution_id}"
                )
            self.logger.debug(
                "Execution output not available yet",
                {"execution_id": execution_id, "offset": offset},
            )
            time.sleep(retry_interval)

        data = self._decode(response, "ExecutionOutput")
        return self._parse(OutputPage, data, "ExecutionOutput")


def authenticate(
    server_url: str,
    username: str,
    password: str,
    *,
    api_version: int | None = None,
    timeout: float = 30.0,
    transport: httpx.BaseTransport | None = None,
) -> RundeckClient:
    """
    Create a client and log in.

    Returns:
        Logged-in client

    Raises:
        ConfigError: If the URL or credentials are empty
        AuthError: If login fails
    """
    client = RundeckClient(
        server_url,
        username,
        password,
        api_version=api_version,
        timeout=timeout,
        transport=transport,
    )
    try:
        client.login()
    except RundeckError:
        client.close()
        raise
    return client
