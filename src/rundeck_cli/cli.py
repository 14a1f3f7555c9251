"""Rundeck command-line interface."""

import json
import os
import sys
import traceback
from typing import Any

import click
from pydantic import ValidationError

from .client import RundeckClient, authenticate
from .config import RundeckSettings
from .errors import EXIT_CONFIG, EXIT_FAILURE, ConfigError, RundeckError
from .logger import logger
from .models import ListJobsFilters, RundeckModel, RunJobParams
from .polling import Deadline, await_completion, tail_output

EXIT_CODES = {"success": 0, "config": EXIT_CONFIG, "failure": EXIT_FAILURE, "interrupted": 130}
DEBUG_ENABLED = os.getenv("DEBUG", "").lower() in {"1", "true"}

SETTING_SOURCES = {
    "server": "--server-url / RUNDECK_SERVER",
    "user": "--rundeck-user / RUNDECK_USER",
    "password": "--rundeck-password / RUNDECK_PASSWORD",
}


def log_unexpected_error(message: str, error: Exception) -> None:
    """Log an unexpected error with optional stack trace."""
    logger.error(message, {"error": str(error)})
    if logger.enabled("debug"):
        logger.error("Stack trace", {"trace": traceback.format_exc()})


def dump_json(value: Any) -> None:
    """Print models (or lists of models) as indented JSON."""

    def encode(item: Any) -> Any:
        if isinstance(item, RundeckModel):
            return item.to_json_dict()
        if isinstance(item, list):
            return [encode(i) for i in item]
        return item

    click.echo(json.dumps(encode(value), indent=2))


def load_settings(overrides: dict[str, Any]) -> RundeckSettings:
    """Load settings from the environment, with CLI flags taking precedence."""
    try:
        settings = RundeckSettings(**overrides)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e

    if settings.missing:
        needed = ", ".join(SETTING_SOURCES[name] for name in settings.missing)
        raise ConfigError(f"Missing required settings: {needed}")
    return settings


def connect(ctx: click.Context) -> RundeckClient:
    """Log in with the resolved settings; the client closes with the context."""
    settings = load_settings(ctx.obj["overrides"])
    ctx.obj["settings"] = settings

    client = authenticate(
        settings.server,
        settings.user,
        settings.password,
        api_version=settings.api_version,
        timeout=settings.request_timeout,
    )
    ctx.call_on_close(client.close)
    logger.debug("Logged in", {"server": settings.server, "user": settings.user})
    return client


def parse_options(args: tuple[str, ...]) -> dict[str, str]:
    """Parse ``key=value`` job options."""
    options: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep or not key:
            raise ConfigError(f"failed to parse option '{arg}'")
        options[key] = value
    return options


@click.group()
@click.option("--server-url", help="Rundeck server URL [env: RUNDECK_SERVER]")
@click.option("--rundeck-user", help="Rundeck username [env: RUNDECK_USER]")
@click.option("--rundeck-password", help="Rundeck password [env: RUNDECK_PASSWORD]")
@click.option(
    "--api-version", type=int, help="Rundeck API version [env: RUNDECK_API_VERSION, default: 24]"
)
@click.option(
    "--request-timeout",
    type=float,
    help="HTTP request timeout in seconds [env: RUNDECK_REQUEST_TIMEOUT, default: 30]",
)
@click.option(
    "--poll-timeout",
    type=float,
    help="Stop waiting for an execution after this many seconds [env: RUNDECK_POLL_TIMEOUT]",
)
@click.option("--debug", is_flag=True, help="Enable debug logging on stderr.")
@click.pass_context
def cli(
    ctx: click.Context,
    server_url: str | None,
    rundeck_user: str | None,
    rundeck_password: str | None,
    api_version: int | None,
    request_timeout: float | None,
    poll_timeout: float | None,
    debug: bool,
) -> None:
    """Rundeck CLI"""
    logger.set_level("debug" if debug or DEBUG_ENABLED else "info")

    overrides = {
        "server": server_url,
        "user": rundeck_user,
        "password": rundeck_password,
        "api_version": api_version,
        "request_timeout": request_timeout,
        "poll_timeout": poll_timeout,
    }
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {k: v for k, v in overrides.items() if v is not None}


@cli.command(name="list-jobs")
@click.option("--project", required=True, help="Project name.")
@click.option("--group-path", help="Only jobs under this group path.")
@click.option("--job-filter", help="Only jobs whose name matches this filter.")
@click.pass_context
def list_jobs(
    ctx: click.Context, project: str, group_path: str | None, job_filter: str | None
) -> None:
    """List the jobs of a project."""
    if not project:
        raise ConfigError("project is required")

    filters = None
    if group_path or job_filter:
        filters = ListJobsFilters(group_path=group_path, job_filter=job_filter)

    client = connect(ctx)
    dump_json(client.list_jobs(project, filters))


@cli.command(name="run-job")
@click.option("--id", "job_id", required=True, help="Job UUID.")
@click.option("--wait", is_flag=True, help="Wait for the execution to complete.")
@click.option("--tail", is_flag=True, help="Print execution output until it completes.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "VERBOSE", "INFO", "WARN", "ERROR"], case_sensitive=False),
    help="Execution log level.",
)
@click.option("--as-user", help="Run the job as this user.")
@click.option("--node-filter", help="Override the job's node filter.")
@click.argument("options", nargs=-1)
@click.pass_context
def run_job(
    ctx: click.Context,
    job_id: str,
    wait: bool,
    tail: bool,
    log_level: str | None,
    as_user: str | None,
    node_filter: str | None,
    options: tuple[str, ...],
) -> None:
    """Run a job, passing OPTIONS as key=value pairs."""
    if not job_id:
        raise ConfigError("job ID is required")

    params = RunJobParams(
        options=parse_options(options),
        log_level=log_level,
        as_user=as_user,
        node_filter=node_filter,
    )

    client = connect(ctx)
    execution = client.run_job(job_id, params)
    logger.debug("Execution submitted", {"job_id": job_id, "execution_id": execution.id})
    click.echo(f"Submitted execution {execution.id} <{execution.href}>")

    if not (tail or wait):
        return

    deadline = Deadline(ctx.obj["settings"].poll_timeout)
    if tail:
        tail_output(client, execution.id, timeout=deadline.remaining())
    await_completion(client, execution.id, timeout=deadline.remaining())


@cli.command(name="execution-info")
@click.option("--execution", "execution_id", required=True, type=click.IntRange(min=1))
@click.pass_context
def execution_info(ctx: click.Context, execution_id: int) -> None:
    """Show execution details."""
    client = connect(ctx)
    dump_json(client.execution_info(execution_id))


@cli.command(name="execution-state")
@click.option("--execution", "execution_id", required=True, type=click.IntRange(min=1))
@click.pass_context
def execution_state(ctx: click.Context, execution_id: int) -> None:
    """Show execution state."""
    client = connect(ctx)
    dump_json(client.execution_state(execution_id))


@cli.command(name="execution-output")
@click.option("--execution", "execution_id", required=True, type=click.IntRange(min=1))
@click.option("--tail", is_flag=True, help="Print output lines until the execution completes.")
@click.pass_context
def execution_output(ctx: click.Context, execution_id: int, tail: bool) -> None:
    """Show execution output."""
    client = connect(ctx)
    poll_timeout = ctx.obj["settings"].poll_timeout
    if tail:
        tail_output(client, execution_id, timeout=poll_timeout)
    else:
        dump_json(client.execution_output(execution_id, "0", timeout=poll_timeout))


def main(argv: list[str] | None = None) -> None:
    """Main CLI entrypoint."""
    try:
        code = cli.main(args=argv, prog_name="rundeck-cli", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(EXIT_CODES["config"])
    except click.Abort:
        click.echo("Interrupted", err=True)
        sys.exit(EXIT_CODES["interrupted"])
    except RundeckError as e:
        logger.debug("Command failed", {"error": type(e).__name__, **e.details})
        click.echo(f"Error: {e}", err=True)
        sys.exit(e.exit_code)
    except Exception as e:
        log_unexpected_error("Command crashed", e)
        sys.exit(EXIT_CODES["failure"])

    sys.exit(code if isinstance(code, int) else EXIT_CODES["success"])


if __name__ == "__main__":
    main()
