"""Polling loops over a running execution."""

import time
from collections.abc import Callable, Iterator

import click

from .client import RundeckClient
from .errors import JobFailedError, PollTimeoutError
from .logger import logger
from .models import ExecutionState, OutputPage

TAIL_INTERVAL_S = 2.0
MAX_BACKOFF_S = 30.0


class Deadline:
    """Monotonic-clock deadline; ``None`` timeout never expires."""

    def __init__(self, timeout: float | None) -> None:
        self.timeout = timeout
        self._expires = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> float | None:
        if self._expires is None:
            return None
        return max(0.0, self._expires - time.monotonic())

    def check(self, what: str, upcoming: float = 0.0) -> None:
        """Raise if the deadline passes within ``upcoming`` seconds."""
        remaining = self.remaining()
        if remaining is not None and remaining <= upcoming:
            raise PollTimeoutError(self.timeout or 0, what=what)


def backoff_delays(cap: float = MAX_BACKOFF_S) -> Iterator[float]:
    """Yield 1, 2, 4, 8, ... seconds, capped at ``cap``."""
    n = 0
    while True:
        delay = float(2**n)
        if delay >= cap:
            break
        yield delay
        n += 1
    while True:
        yield cap


def await_completion(
    client: RundeckClient,
    execution_id: int,
    *,
    timeout: float | None = None,
    max_delay: float = MAX_BACKOFF_S,
    sleep: Callable[[float], None] = time.sleep,
) -> ExecutionState:
    """
    Poll the execution state until the server reports completion.

    Args:
        client: Logged-in client
        execution_id: Execution to wait for
        timeout: Give up after this many seconds (None waits forever)
        max_delay: Upper bound for the exponential backoff
        sleep: Sleep function

    Returns:
        Final execution state

    Raises:
        JobFailedError: If the execution finished in any state but SUCCEEDED
        PollTimeoutError: If the timeout elapses first
    """
    deadline = Deadline(timeout)
    what = f"execution {execution_id}"
    log = logger.child({"execution_id": execution_id})

    for delay in backoff_delays(max_delay):
        state = client.execution_state(execution_id)
        if state.completed:
            break
        deadline.check(what, upcoming=delay)
        log.debug("Execution still running", {"state": state.execution_state, "sleep_s": delay})
        sleep(delay)

    log.info("Execution completed", {"state": state.execution_state})
    if not state.succeeded:
        raise JobFailedError(execution_id, state.execution_state)
    return state


def tail_output(
    client: RundeckClient,
    execution_id: int,
    *,
    interval: float = TAIL_INTERVAL_S,
    timeout: float | None = None,
    echo: Callable[[str], None] = click.echo,
    sleep: Callable[[float], None] = time.sleep,
) -> OutputPage:
    """
    Print execution output as it arrives.

    Starts at offset "0" and follows the offset returned with each page
    until a page reports ``completed``.

    Returns:
        The last page fetched
    """
    deadline = Deadline(timeout)
    what = f"output of execution {execution_id}"
    offset = "0"

    while True:
        deadline.check(what)
        page = client.execution_output(
            execution_id, offset, timeout=deadline.remaining()
        )
        for entry in page.entries:
            echo(entry.format())
        if page.completed:
            return page
        offset = page.offset
        deadline.check(what, upcoming=interval)
        sleep(interval)
