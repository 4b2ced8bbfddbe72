"""Environment shutdown and startup in dependency order.

Shutdown stops the stateless tiers before the database they depend on;
startup brings the database up first and only then the services that
talk to it.  Each operation is a :mod:`envctl.pipeline` of stages, so the
stop-on-required / continue-on-best-effort policy lives in one place.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from envctl import azure_ops, health, snapshot
from envctl.config import EnvctlConfig
from envctl.environments import Environment
from envctl.errors import EnvctlError, StageFailedError
from envctl.health import HealthResult
from envctl.notify import NotificationStatus, send_notification
from envctl.pipeline import PipelineReport, Stage, StagePolicy, run_pipeline
from envctl.retry import poll_until

logger = logging.getLogger(__name__)

_READY_STATE = "Ready"

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class ShutdownResult:
    cancelled: bool = False
    report: PipelineReport | None = None
    snapshot_file: Path | None = None


@dataclass
class StartupResult:
    """Startup outcome; a run can succeed while its health checks do not."""

    report: PipelineReport
    health_checked: bool = False
    health: list[HealthResult] = field(default_factory=list)

    @property
    def unhealthy(self) -> list[HealthResult]:
        return [h for h in self.health if not h.ok]

    @property
    def exit_code(self) -> int:
        return 1 if self.unhealthy else 0

    @property
    def notification_status(self) -> NotificationStatus:
        return NotificationStatus.WARNING if self.unhealthy else NotificationStatus.SUCCESS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _for_each(
    resources: Iterable[dict[str, Any]],
    verb: str,
    action: Callable[[str], object],
    *,
    keep_going: bool = False,
) -> None:
    """Apply *action* to each resource name, serially.

    With ``keep_going`` every resource is attempted and one combined error
    is raised at the end; otherwise the first failure propagates.
    """
    failures: list[str] = []
    for resource in resources:
        name = resource["name"]
        logger.info("%s %s", verb, name)
        if not keep_going:
            action(name)
            continue
        try:
            action(name)
        except Exception as exc:
            logger.warning("%s %s failed: %s", verb, name, exc)
            failures.append(f"{name}: {exc}")
    if failures:
        raise EnvctlError(f"{verb} failed for {len(failures)} resource(s): " + "; ".join(failures))


def _running_aks(clusters: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [c for c in clusters if (c.get("powerState") or {}).get("code") != "Stopped"]


def _stopped_aks(clusters: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [c for c in clusters if (c.get("powerState") or {}).get("code") == "Stopped"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _summarize(report: PipelineReport) -> str:
    if not report.warnings:
        return "All stages completed."
    names = ", ".join(w.name for w in report.warnings)
    return f"All required stages completed; warnings in: {names}."


# ---------------------------------------------------------------------------
# Shutdown
# ---------------------------------------------------------------------------


def shutdown(
    env: Environment,
    resource_group: str,
    *,
    config: EnvctlConfig,
    force: bool = False,
    confirm: Callable[[str], bool] | None = None,
    now: datetime | None = None,
) -> ShutdownResult:
    """Stop *env*'s compute and data tiers, database last.

    Without *force*, *confirm* is asked first; any answer but yes returns a
    cancelled result before anything is touched.

    Raises:
        StageFailedError: a required stage failed (after the failure
            notification has been attempted).
    """
    if not force:
        prompt = f"Shut down {env.value} environment in resource group '{resource_group}'?"
        if confirm is None or not confirm(prompt):
            logger.info("Shutdown of %s cancelled by user", env.value)
            return ShutdownResult(cancelled=True)

    started = now or _utcnow()
    result = ShutdownResult()

    def save_inventory() -> None:
        resources = azure_ops.list_resources(resource_group)
        result.snapshot_file = snapshot.save_snapshot(
            resources, env, config.state_dir, started.astimezone().date()
        )

    def scale_container_apps_to_zero() -> None:
        _for_each(
            azure_ops.list_container_apps(resource_group),
            "Scaling to zero",
            lambda name: azure_ops.scale_container_app(resource_group, name, 0, 1),
        )

    def stop_app_services() -> None:
        _for_each(
            azure_ops.list_webapps(resource_group),
            "Stopping App Service",
            lambda name: azure_ops.stop_webapp(resource_group, name),
        )

    def deallocate_compute() -> None:
        errors: list[str] = []
        try:
            _for_each(
                azure_ops.list_vms(resource_group),
                "Deallocating VM",
                lambda name: azure_ops.deallocate_vm(resource_group, name),
                keep_going=True,
            )
        except EnvctlError as exc:
            errors.append(str(exc))
        try:
            _for_each(
                _running_aks(azure_ops.list_aks_clusters(resource_group)),
                "Stopping AKS cluster",
                lambda name: azure_ops.stop_aks(resource_group, name),
                keep_going=True,
            )
        except EnvctlError as exc:
            errors.append(str(exc))
        if errors:
            raise EnvctlError("; ".join(errors))

    def stop_databases() -> None:
        _for_each(
            azure_ops.list_postgres_servers(resource_group),
            "Stopping PostgreSQL server",
            lambda name: azure_ops.stop_postgres(resource_group, name),
        )

    stages = [
        Stage("Save resource snapshot", save_inventory, StagePolicy.BEST_EFFORT),
        Stage("Scale Container Apps to zero", scale_container_apps_to_zero),
        Stage("Stop App Services", stop_app_services),
        Stage("Deallocate compute", deallocate_compute, StagePolicy.BEST_EFFORT),
        Stage("Stop PostgreSQL servers", stop_databases),
    ]

    logger.info("Shutting down %s (%s)", env.value, resource_group)
    title = f"Environment Shutdown: {env.value}"
    try:
        result.report = run_pipeline(stages)
    except StageFailedError as exc:
        send_notification(
            config.webhook_url, title, env, NotificationStatus.FAILURE, str(exc), _utcnow()
        )
        raise

    logger.info("Shutdown of %s complete", env.value)
    send_notification(
        config.webhook_url,
        title,
        env,
        NotificationStatus.SUCCESS,
        _summarize(result.report),
        _utcnow(),
    )
    return result


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def startup(
    env: Environment,
    resource_group: str,
    *,
    config: EnvctlConfig,
    skip_health_check: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> StartupResult:
    """Start *env*, database first, then verify service health.

    Health-check failures do not abort startup; they surface through
    :attr:`StartupResult.exit_code` and a "with warnings" notification.

    Raises:
        StageFailedError: a required stage failed, including the database
            never reporting ready.
    """

    def validate_inventory() -> None:
        previous = snapshot.load_latest_snapshot(env, config.state_dir)
        if previous is None:
            logger.info("No earlier resource snapshot for %s", env.value)
            return
        current = snapshot.to_records(azure_ops.list_resources(resource_group))
        for problem in snapshot.compare_inventory(previous, current):
            logger.warning(problem)

    def start_databases() -> None:
        for server in azure_ops.list_postgres_servers(resource_group):
            name = server["name"]
            logger.info("Starting PostgreSQL server %s", name)
            azure_ops.start_postgres(resource_group, name)
            poll_until(
                lambda: azure_ops.get_postgres_state(resource_group, name) == _READY_STATE,
                attempts=config.db_ready_attempts,
                delay=config.db_ready_delay,
                backoff=config.db_ready_backoff,
                deadline=config.db_ready_deadline,
                description=f"PostgreSQL server {name} to be ready",
                sleep=sleep,
            )
            logger.info("PostgreSQL server %s is ready", name)

    def start_compute() -> None:
        errors: list[str] = []
        try:
            _for_each(
                azure_ops.list_vms(resource_group),
                "Starting VM",
                lambda name: azure_ops.start_vm(resource_group, name),
                keep_going=True,
            )
        except EnvctlError as exc:
            errors.append(str(exc))

        def start_cluster(name: str) -> None:
            azure_ops.start_aks(resource_group, name)
            azure_ops.get_aks_credentials(resource_group, name)

        try:
            _for_each(
                _stopped_aks(azure_ops.list_aks_clusters(resource_group)),
                "Starting AKS cluster",
                start_cluster,
                keep_going=True,
            )
        except EnvctlError as exc:
            errors.append(str(exc))
        if errors:
            raise EnvctlError("; ".join(errors))

    def start_app_services() -> None:
        _for_each(
            azure_ops.list_webapps(resource_group),
            "Starting App Service",
            lambda name: azure_ops.start_webapp(resource_group, name),
        )

    def scale_container_apps_up() -> None:
        profile = env.replicas
        _for_each(
            azure_ops.list_container_apps(resource_group),
            f"Scaling to {profile.min_replicas}-{profile.max_replicas} replicas",
            lambda name: azure_ops.scale_container_app(
                resource_group, name, profile.min_replicas, profile.max_replicas
            ),
        )

    stages = [
        Stage("Validate resource inventory", validate_inventory, StagePolicy.BEST_EFFORT),
        Stage("Start PostgreSQL servers", start_databases),
        Stage("Start compute", start_compute, StagePolicy.BEST_EFFORT),
        Stage("Start App Services", start_app_services),
        Stage("Scale Container Apps up", scale_container_apps_up),
    ]

    logger.info("Starting %s (%s)", env.value, resource_group)
    title = f"Environment Startup: {env.value}"
    try:
        report = run_pipeline(stages)
    except StageFailedError as exc:
        send_notification(
            config.webhook_url, title, env, NotificationStatus.FAILURE, str(exc), _utcnow()
        )
        raise

    result = StartupResult(report=report)

    if skip_health_check:
        logger.info("Health checks skipped")
    else:
        if config.settle_delay > 0:
            logger.info("Waiting %.0fs for services to settle", config.settle_delay)
            sleep(config.settle_delay)
        try:
            endpoints = health.discover_endpoints(resource_group)
        except Exception as exc:
            # Cannot tell whether anything is healthy.
            logger.warning("Endpoint discovery failed: %s", exc)
            endpoints = []
            result.health.append(HealthResult("discovery", "", None, False, str(exc)))
        result.health.extend(
            health.run_health_checks(endpoints, config.health_path, config.health_timeout)
        )
        result.health_checked = True

    details = _summarize(report)
    if result.unhealthy:
        failing = ", ".join(f"{h.name} ({h.error})" for h in result.unhealthy)
        details += f" Health checks failed: {failing}."
    elif result.health_checked:
        details += f" {len(result.health)} health check(s) passed."

    status = result.notification_status
    logger.info("Startup of %s complete: %s", env.value, status.label)
    send_notification(config.webhook_url, title, env, status, details, _utcnow())
    return result


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ResourceState:
    kind: str
    name: str
    state: str


def status(resource_group: str) -> list[ResourceState]:
    """Report the power state of every managed resource type.  Read-only."""
    states: list[ResourceState] = []
    for server in azure_ops.list_postgres_servers(resource_group):
        states.append(ResourceState("PostgreSQL", server["name"], server.get("state", "Unknown")))
    for app in azure_ops.list_webapps(resource_group):
        states.append(ResourceState("App Service", app["name"], app.get("state", "Unknown")))
    for vm in azure_ops.list_vms(resource_group):
        states.append(ResourceState("VM", vm["name"], vm.get("powerState", "Unknown")))
    for cluster in azure_ops.list_aks_clusters(resource_group):
        code = (cluster.get("powerState") or {}).get("code", "Unknown")
        states.append(ResourceState("AKS", cluster["name"], code))
    for app in azure_ops.list_container_apps(resource_group):
        template = (app.get("properties") or {}).get("template") or {}
        scale = template.get("scale") or {}
        replicas = f"{scale.get('minReplicas', '?')}-{scale.get('maxReplicas', '?')} replicas"
        states.append(ResourceState("Container App", app["name"], replicas))
    return states
