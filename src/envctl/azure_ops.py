"""Azure operations module — wraps az cli commands via subprocess."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any

from envctl.errors import AzureOpsError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Structured result returned by every Azure CLI operation."""

    success: bool
    stdout: str
    stderr: str
    return_code: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _run_az(args: list[str], *, timeout: int = 900) -> CommandResult:
    """Execute an ``az`` CLI command and return a :class:`CommandResult`.

    Parameters
    ----------
    args:
        Arguments to pass **after** ``az`` (e.g. ``["vm", "list", ...]``).
    timeout:
        Maximum seconds to wait before killing the process.

    Raises
    ------
    AzureOpsError
        The process timed out or could not be launched.
    """
    logger.debug("az %s", " ".join(args))
    try:
        completed = subprocess.run(
            ["az", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise AzureOpsError(args, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise AzureOpsError(args, f"could not run az: {exc}") from exc
    return CommandResult(
        success=completed.returncode == 0,
        stdout=completed.stdout.strip(),
        stderr=completed.stderr.strip(),
        return_code=completed.returncode,
    )


def _run_checked(args: list[str]) -> CommandResult:
    """Run ``az`` and raise :class:`AzureOpsError` on a non-zero exit."""
    result = _run_az(args)
    if not result.success:
        raise AzureOpsError(args, result.stderr)
    return result


def _run_json(args: list[str]) -> Any:
    """Run ``az ... --output json`` and return the decoded payload."""
    full = [*args, "--output", "json"]
    result = _run_checked(full)
    if not result.stdout:
        return None
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise AzureOpsError(full, f"unparseable output: {exc}") from exc


def _list(args: list[str]) -> list[dict[str, Any]]:
    payload = _run_json(args)
    return payload if isinstance(payload, list) else []


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


def check_prerequisites() -> CommandResult:
    """Verify that the ``az`` CLI is installed and holds a logged-in session.

    Returns a successful :class:`CommandResult` when both hold, or a failure
    result describing what is missing.
    """
    if shutil.which("az") is None:
        return CommandResult(
            success=False,
            stdout="",
            stderr="Azure CLI (az) is not installed or not on PATH.",
            return_code=1,
        )

    try:
        account = _run_az(["account", "show", "--query", "name", "--output", "tsv"], timeout=60)
    except AzureOpsError as exc:
        return CommandResult(success=False, stdout="", stderr=str(exc), return_code=1)
    if not account.success:
        return CommandResult(
            success=False,
            stdout="",
            stderr="Not logged in to Azure. Run: az login",
            return_code=1,
        )

    return CommandResult(
        success=True,
        stdout=f"az CLI found. Subscription: {account.stdout}",
        stderr="",
        return_code=0,
    )


def login_managed_identity(client_id: str | None = None) -> CommandResult:
    """Log in with the host's managed identity.

    Parameters
    ----------
    client_id:
        Client ID of a user-assigned identity.  ``None`` uses the
        system-assigned identity.
    """
    args = ["login", "--identity", "--output", "none"]
    if client_id:
        args.extend(["--username", client_id])
    return _run_checked(args)


# ---------------------------------------------------------------------------
# Generic inventory
# ---------------------------------------------------------------------------


def list_resources(resource_group: str) -> list[dict[str, Any]]:
    """List every resource in *resource_group* (``name``, ``type``, ``location``, ``id``)."""
    return _list(["resource", "list", "--resource-group", resource_group])


# ---------------------------------------------------------------------------
# Container Apps
# ---------------------------------------------------------------------------


def list_container_apps(resource_group: str) -> list[dict[str, Any]]:
    return _list(["containerapp", "list", "--resource-group", resource_group])


def scale_container_app(
    resource_group: str,
    name: str,
    min_replicas: int,
    max_replicas: int,
) -> CommandResult:
    """Set the replica bounds of a Container App (max must be at least 1)."""
    return _run_checked(
        [
            "containerapp",
            "update",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--min-replicas",
            str(min_replicas),
            "--max-replicas",
            str(max_replicas),
            "--output",
            "none",
        ]
    )


# ---------------------------------------------------------------------------
# App Service
# ---------------------------------------------------------------------------


def list_webapps(resource_group: str) -> list[dict[str, Any]]:
    return _list(["webapp", "list", "--resource-group", resource_group])


def stop_webapp(resource_group: str, name: str) -> CommandResult:
    return _run_checked(["webapp", "stop", "--resource-group", resource_group, "--name", name])


def start_webapp(resource_group: str, name: str) -> CommandResult:
    return _run_checked(["webapp", "start", "--resource-group", resource_group, "--name", name])


# ---------------------------------------------------------------------------
# Virtual machines
# ---------------------------------------------------------------------------


def list_vms(resource_group: str) -> list[dict[str, Any]]:
    """List VMs including their power state (``powerState`` key)."""
    return _list(["vm", "list", "--resource-group", resource_group, "--show-details"])


def deallocate_vm(resource_group: str, name: str) -> CommandResult:
    return _run_checked(["vm", "deallocate", "--resource-group", resource_group, "--name", name])


def start_vm(resource_group: str, name: str) -> CommandResult:
    return _run_checked(["vm", "start", "--resource-group", resource_group, "--name", name])


# ---------------------------------------------------------------------------
# AKS
# ---------------------------------------------------------------------------


def list_aks_clusters(resource_group: str) -> list[dict[str, Any]]:
    return _list(["aks", "list", "--resource-group", resource_group])


def stop_aks(resource_group: str, name: str) -> CommandResult:
    return _run_checked(["aks", "stop", "--resource-group", resource_group, "--name", name])


def start_aks(resource_group: str, name: str) -> CommandResult:
    return _run_checked(["aks", "start", "--resource-group", resource_group, "--name", name])


def get_aks_credentials(resource_group: str, name: str) -> CommandResult:
    """Refresh the local kubeconfig context for a cluster."""
    return _run_checked(
        [
            "aks",
            "get-credentials",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--overwrite-existing",
        ]
    )


# ---------------------------------------------------------------------------
# PostgreSQL flexible server
# ---------------------------------------------------------------------------


def list_postgres_servers(resource_group: str) -> list[dict[str, Any]]:
    return _list(["postgres", "flexible-server", "list", "--resource-group", resource_group])


def stop_postgres(resource_group: str, name: str) -> CommandResult:
    return _run_checked(
        ["postgres", "flexible-server", "stop", "--resource-group", resource_group, "--name", name]
    )


def start_postgres(resource_group: str, name: str) -> CommandResult:
    return _run_checked(
        ["postgres", "flexible-server", "start", "--resource-group", resource_group, "--name", name]
    )


def get_postgres_state(resource_group: str, name: str) -> str:
    """Return the server's reported state, e.g. ``"Ready"`` or ``"Stopped"``."""
    result = _run_checked(
        [
            "postgres",
            "flexible-server",
            "show",
            "--resource-group",
            resource_group,
            "--name",
            name,
            "--query",
            "state",
            "--output",
            "tsv",
        ]
    )
    return result.stdout
