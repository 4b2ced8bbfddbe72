"""Scheduled / manual trigger wrapper around shutdown and startup.

A scheduler (e.g. an Automation runbook or a cron job on a VM with a
managed identity) calls :func:`run_trigger` on a fixed timetable.  A manual
run can leave an override marker that suppresses scheduled runs until the
marker's timestamp passes.

The marker is a single timestamp with no locking: the last writer wins.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path

from envctl import azure_ops, lifecycle
from envctl.config import EnvctlConfig
from envctl.environments import Environment
from envctl.lifecycle import ShutdownResult, StartupResult

logger = logging.getLogger(__name__)


class Action(str, Enum):
    SHUTDOWN = "shutdown"
    STARTUP = "startup"


def override_path(env: Environment, state_dir: Path) -> Path:
    return state_dir / f"override-{env.short_name}.txt"


def write_override(env: Environment, hours: float, state_dir: Path, now: datetime) -> datetime:
    """Suppress scheduled runs for *env* until ``now + hours``."""
    until = now + timedelta(hours=hours)
    state_dir.mkdir(parents=True, exist_ok=True)
    override_path(env, state_dir).write_text(until.isoformat(), encoding="utf-8")
    logger.info("Scheduled runs for %s suppressed until %s", env.value, until.isoformat())
    return until


def read_override(env: Environment, state_dir: Path) -> datetime | None:
    """Return the override expiry, or ``None`` if absent or unreadable."""
    path = override_path(env, state_dir)
    if not path.is_file():
        return None
    raw = path.read_text(encoding="utf-8").strip()
    try:
        until = datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("Ignoring unreadable override marker %s: %r", path, raw)
        return None
    if until.tzinfo is None:
        until = until.replace(tzinfo=timezone.utc)
    return until


def is_suppressed(env: Environment, state_dir: Path, now: datetime) -> bool:
    until = read_override(env, state_dir)
    return until is not None and now < until


def run_trigger(
    action: Action,
    env: Environment,
    resource_group: str,
    *,
    config: EnvctlConfig,
    manual: bool = False,
    override_hours: float = 0,
    identity_client_id: str | None = None,
    now: datetime | None = None,
) -> ShutdownResult | StartupResult | None:
    """Log in with the managed identity and run *action* non-interactively.

    Returns ``None`` when a scheduled run is skipped because an override
    is active.  Manual runs ignore the override and, with a positive
    *override_hours*, set a new one after the action succeeds.
    """
    now = now or datetime.now(timezone.utc)

    logger.info("Logging in with managed identity")
    azure_ops.login_managed_identity(identity_client_id)

    if not manual and is_suppressed(env, config.state_dir, now):
        until = read_override(env, config.state_dir)
        logger.info(
            "Scheduled %s of %s skipped: manual override active until %s",
            action.value,
            env.value,
            until.isoformat() if until else "?",
        )
        return None

    result: ShutdownResult | StartupResult
    if action is Action.SHUTDOWN:
        result = lifecycle.shutdown(env, resource_group, config=config, force=True, now=now)
    else:
        result = lifecycle.startup(env, resource_group, config=config)

    if manual and override_hours > 0:
        write_override(env, override_hours, config.state_dir, now)

    return result
