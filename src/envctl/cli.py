"""envctl CLI — stop, start and inspect non-production environments."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Annotated

import typer

from envctl import azure_ops, lifecycle, trigger
from envctl.config import EnvctlConfig, load_config
from envctl.console import (
    confirm_action,
    create_status,
    print_error,
    print_health,
    print_report,
    print_states,
    print_step,
    print_success,
    print_warning,
)
from envctl.environments import Environment
from envctl.errors import EnvctlError, StageFailedError
from envctl.lifecycle import ShutdownResult, StartupResult
from envctl.trigger import Action

app = typer.Typer(
    name="envctl",
    help="Stop and start Azure environments in dependency order.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# ---------------------------------------------------------------------------
# Shared option types
# ---------------------------------------------------------------------------

EnvironmentOpt = Annotated[
    Environment,
    typer.Option(
        "--environment",
        "-e",
        help="Environment to operate on (Development|QA, or dev|qa).",
        parser=Environment.parse,
        envvar="ENVCTL_ENVIRONMENT",
    ),
]
ResourceGroupOpt = Annotated[
    str | None,
    typer.Option(
        "--resource-group",
        "-g",
        help="Resource group (default: <prefix>-<env>, e.g. rg-tourbus-dev).",
    ),
]

# ---------------------------------------------------------------------------
# Setup helpers
# ---------------------------------------------------------------------------


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
) -> None:
    """Load configuration and configure logging for every command."""
    try:
        config = load_config()
    except ValueError as exc:
        print_error(str(exc))
        raise typer.Exit(code=1) from exc

    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=_LOG_FORMAT,
        handlers=[logging.StreamHandler(), logging.FileHandler(config.log_file, encoding="utf-8")],
        force=True,
    )
    ctx.obj = config


def _resolve_group(config: EnvctlConfig, env: Environment, resource_group: str | None) -> str:
    return resource_group or env.default_resource_group(config.resource_group_prefix)


def _require_prerequisites() -> None:
    prereq = azure_ops.check_prerequisites()
    if not prereq.success:
        print_error(prereq.stderr)
        raise typer.Exit(code=1)


def _fail(exc: EnvctlError) -> typer.Exit:
    if isinstance(exc, StageFailedError):
        print_report(exc.report, "Stages")
    print_error(str(exc))
    return typer.Exit(code=1)


def _show_shutdown(result: ShutdownResult, env: Environment) -> None:
    if result.report is not None:
        print_report(result.report, f"Shutdown: {env.value}")
    if result.snapshot_file is not None:
        print_success(f"Resource snapshot written to {result.snapshot_file}")
    print_success(f"{env.value} environment stopped")


def _show_startup(result: StartupResult, env: Environment) -> None:
    print_report(result.report, f"Startup: {env.value}")
    if result.health_checked:
        print_health(result.health)
    if result.exit_code == 0:
        print_success(f"{env.value} environment started")
    else:
        print_warning(f"{env.value} environment started, but health checks failed")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def shutdown(
    ctx: typer.Context,
    environment: EnvironmentOpt,
    resource_group: ResourceGroupOpt = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip the confirmation prompt.")
    ] = False,
) -> None:
    """Stop an environment: Container Apps, App Services, compute, then the database."""
    config: EnvctlConfig = ctx.obj
    group = _resolve_group(config, environment, resource_group)

    print_step("Checking prerequisites…")
    _require_prerequisites()

    try:
        spinner = create_status(f"Shutting down {environment.value}…") if force else nullcontext()
        with spinner:
            result = lifecycle.shutdown(
                environment, group, config=config, force=force, confirm=confirm_action
            )
    except EnvctlError as exc:
        raise _fail(exc) from exc

    if result.cancelled:
        print_warning("Shutdown cancelled by user")
        raise typer.Exit(code=0)
    _show_shutdown(result, environment)


@app.command()
def startup(
    ctx: typer.Context,
    environment: EnvironmentOpt,
    resource_group: ResourceGroupOpt = None,
    skip_health_check: Annotated[
        bool, typer.Option("--skip-health-check", help="Do not probe service endpoints.")
    ] = False,
) -> None:
    """Start an environment: database first, then compute and services, then health checks."""
    config: EnvctlConfig = ctx.obj
    group = _resolve_group(config, environment, resource_group)

    print_step("Checking prerequisites…")
    _require_prerequisites()

    try:
        with create_status(f"Starting {environment.value} - this may take several minutes…"):
            result = lifecycle.startup(
                environment, group, config=config, skip_health_check=skip_health_check
            )
    except EnvctlError as exc:
        raise _fail(exc) from exc

    _show_startup(result, environment)
    if result.exit_code:
        raise typer.Exit(code=result.exit_code)


@app.command()
def status(
    ctx: typer.Context,
    environment: EnvironmentOpt,
    resource_group: ResourceGroupOpt = None,
) -> None:
    """Show the state of every managed resource in an environment."""
    config: EnvctlConfig = ctx.obj
    group = _resolve_group(config, environment, resource_group)
    _require_prerequisites()

    try:
        with create_status("Querying resources…"):
            states = lifecycle.status(group)
    except EnvctlError as exc:
        raise _fail(exc) from exc
    print_states(states, f"{environment.value} ({group})")


@app.command(name="trigger")
def trigger_command(
    ctx: typer.Context,
    action: Annotated[
        Action, typer.Option("--action", "-a", help="Operation to run.", case_sensitive=False)
    ],
    environment: EnvironmentOpt,
    resource_group: ResourceGroupOpt = None,
    manual: Annotated[
        bool,
        typer.Option("--manual", help="Manual run: ignores and may set the schedule override."),
    ] = False,
    override_hours: Annotated[
        float,
        typer.Option(
            "--override-hours",
            min=0,
            help="With --manual, suppress scheduled runs for this many hours.",
        ),
    ] = 0,
    identity_client_id: Annotated[
        str | None,
        typer.Option(
            "--identity-client-id",
            help="Client ID of a user-assigned managed identity.",
            envvar="AZURE_CLIENT_ID",
        ),
    ] = None,
) -> None:
    """Run shutdown/startup non-interactively under a managed identity (for schedulers)."""
    config: EnvctlConfig = ctx.obj
    group = _resolve_group(config, environment, resource_group)

    if override_hours and not manual:
        print_warning("--override-hours only applies to --manual runs; ignoring")

    try:
        result = trigger.run_trigger(
            action,
            environment,
            group,
            config=config,
            manual=manual,
            override_hours=override_hours,
            identity_client_id=identity_client_id,
        )
    except EnvctlError as exc:
        raise _fail(exc) from exc

    if result is None:
        print_warning("Scheduled run skipped: manual override is active")
        return
    if isinstance(result, StartupResult):
        _show_startup(result, environment)
        if result.exit_code:
            raise typer.Exit(code=result.exit_code)
    else:
        _show_shutdown(result, environment)


if __name__ == "__main__":
    app()
