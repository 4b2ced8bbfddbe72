"""Shared fixtures for envctl tests."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from envctl.config import EnvctlConfig

WEBHOOK = "https://hooks.example.test/webhook"


@pytest.fixture
def config(tmp_path: Path) -> EnvctlConfig:
    """Config with zero waits and state kept under ``tmp_path``."""
    return EnvctlConfig(
        webhook_url=WEBHOOK,
        state_dir=tmp_path,
        log_file=tmp_path / "envctl.log",
        db_ready_attempts=3,
        db_ready_delay=0.0,
        db_ready_backoff=2.0,
        db_ready_deadline=60.0,
        settle_delay=0.0,
        health_timeout=30.0,
    )


@pytest.fixture
def ops() -> Iterator[MagicMock]:
    """Replace ``azure_ops`` everywhere the orchestration code reaches it.

    Every list call returns an empty inventory and databases report ready,
    so tests only describe the resources they care about.  ``method_calls``
    records call order across all operations.
    """
    fake = MagicMock(name="azure_ops")
    for lister in (
        "list_resources",
        "list_container_apps",
        "list_webapps",
        "list_vms",
        "list_aks_clusters",
        "list_postgres_servers",
    ):
        getattr(fake, lister).return_value = []
    fake.get_postgres_state.return_value = "Ready"
    with (
        patch("envctl.lifecycle.azure_ops", fake),
        patch("envctl.health.azure_ops", fake),
        patch("envctl.trigger.azure_ops", fake),
    ):
        yield fake


@pytest.fixture
def notify() -> Iterator[MagicMock]:
    """Capture notifications sent by the lifecycle module."""
    with patch("envctl.lifecycle.send_notification", return_value=True) as mock_send:
        yield mock_send
