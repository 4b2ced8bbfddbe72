"""envctl configuration loaded from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class EnvctlConfig:
    """Immutable envctl configuration."""

    webhook_url: str | None = None
    resource_group_prefix: str = "rg-tourbus"
    state_dir: Path = Path(".")
    log_file: Path = Path("envctl.log")
    db_ready_attempts: int = 3
    db_ready_delay: float = 30.0
    db_ready_backoff: float = 2.0
    db_ready_deadline: float = 600.0
    settle_delay: float = 30.0
    health_timeout: float = 30.0
    health_path: str = "/health"


logger = logging.getLogger(__name__)


def _parse_int_env(name: str, default: str) -> int:
    """Parse an integer environment variable with a clear error on bad values."""
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


def _parse_float_env(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from exc


def load_config() -> EnvctlConfig:
    """Load envctl config from environment variables.

    Reads a ``.env`` file if present, then builds an :class:`EnvctlConfig` from:

    - ``TEAMS_WEBHOOK_URL`` (default ``None`` — notifications disabled)
    - ``ENVCTL_RESOURCE_GROUP_PREFIX`` (default ``"rg-tourbus"``)
    - ``ENVCTL_STATE_DIR`` (default ``"."``)
    - ``ENVCTL_LOG_FILE`` (default ``"envctl.log"``)
    - ``ENVCTL_DB_READY_ATTEMPTS`` (default ``3``)
    - ``ENVCTL_DB_READY_DELAY`` (default ``30``)
    - ``ENVCTL_DB_READY_BACKOFF`` (default ``2.0``)
    - ``ENVCTL_DB_READY_DEADLINE`` (default ``600``)
    - ``ENVCTL_SETTLE_DELAY`` (default ``30``)
    - ``ENVCTL_HEALTH_TIMEOUT`` (default ``30``)
    - ``ENVCTL_HEALTH_PATH`` (default ``"/health"``)
    """
    load_dotenv()

    webhook_url = os.environ.get("TEAMS_WEBHOOK_URL")
    attempts = _parse_int_env("ENVCTL_DB_READY_ATTEMPTS", "3")
    if attempts < 1:
        raise ValueError(f"ENVCTL_DB_READY_ATTEMPTS must be at least 1, got {attempts}")

    health_path = os.environ.get("ENVCTL_HEALTH_PATH", "/health")
    if not health_path.startswith("/"):
        health_path = "/" + health_path

    cfg = EnvctlConfig(
        webhook_url=webhook_url if webhook_url else None,
        resource_group_prefix=os.environ.get("ENVCTL_RESOURCE_GROUP_PREFIX", "rg-tourbus"),
        state_dir=Path(os.environ.get("ENVCTL_STATE_DIR", ".")),
        log_file=Path(os.environ.get("ENVCTL_LOG_FILE", "envctl.log")),
        db_ready_attempts=attempts,
        db_ready_delay=_parse_float_env("ENVCTL_DB_READY_DELAY", "30"),
        db_ready_backoff=_parse_float_env("ENVCTL_DB_READY_BACKOFF", "2.0"),
        db_ready_deadline=_parse_float_env("ENVCTL_DB_READY_DEADLINE", "600"),
        settle_delay=_parse_float_env("ENVCTL_SETTLE_DELAY", "30"),
        health_timeout=_parse_float_env("ENVCTL_HEALTH_TIMEOUT", "30"),
        health_path=health_path,
    )

    if cfg.webhook_url is None:
        logger.warning("TEAMS_WEBHOOK_URL is not set; notifications will be skipped.")

    return cfg
