"""Tests for envctl.config."""

from pathlib import Path

import pytest
from envctl.config import EnvctlConfig, load_config

_VARS = (
    "TEAMS_WEBHOOK_URL",
    "ENVCTL_RESOURCE_GROUP_PREFIX",
    "ENVCTL_STATE_DIR",
    "ENVCTL_LOG_FILE",
    "ENVCTL_DB_READY_ATTEMPTS",
    "ENVCTL_DB_READY_DELAY",
    "ENVCTL_DB_READY_BACKOFF",
    "ENVCTL_DB_READY_DEADLINE",
    "ENVCTL_SETTLE_DELAY",
    "ENVCTL_HEALTH_TIMEOUT",
    "ENVCTL_HEALTH_PATH",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("envctl.config.load_dotenv", lambda *a, **kw: None)
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


class TestEnvctlConfigDefaults:
    def test_defaults(self) -> None:
        cfg = EnvctlConfig()
        assert cfg.webhook_url is None
        assert cfg.resource_group_prefix == "rg-tourbus"
        assert cfg.db_ready_attempts == 3
        assert cfg.health_timeout == 30.0
        assert cfg.health_path == "/health"

    def test_frozen(self) -> None:
        cfg = EnvctlConfig()
        with pytest.raises(AttributeError):
            cfg.db_ready_attempts = 5  # type: ignore[misc]


class TestLoadConfig:
    def test_defaults_when_env_absent(self) -> None:
        cfg = load_config()
        assert cfg == EnvctlConfig()

    def test_reads_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEAMS_WEBHOOK_URL", "https://hooks.example.test/x")
        monkeypatch.setenv("ENVCTL_RESOURCE_GROUP_PREFIX", "rg-other")
        monkeypatch.setenv("ENVCTL_STATE_DIR", "/var/lib/envctl")
        monkeypatch.setenv("ENVCTL_DB_READY_ATTEMPTS", "5")
        monkeypatch.setenv("ENVCTL_DB_READY_DELAY", "12.5")
        monkeypatch.setenv("ENVCTL_HEALTH_PATH", "healthz")

        cfg = load_config()

        assert cfg.webhook_url == "https://hooks.example.test/x"
        assert cfg.resource_group_prefix == "rg-other"
        assert cfg.state_dir == Path("/var/lib/envctl")
        assert cfg.db_ready_attempts == 5
        assert cfg.db_ready_delay == 12.5
        assert cfg.health_path == "/healthz"

    def test_empty_webhook_treated_as_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEAMS_WEBHOOK_URL", "")
        assert load_config().webhook_url is None

    def test_missing_webhook_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            load_config()
        assert "TEAMS_WEBHOOK_URL is not set" in caplog.text

    def test_bad_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVCTL_DB_READY_ATTEMPTS", "three")
        with pytest.raises(ValueError, match="ENVCTL_DB_READY_ATTEMPTS must be an integer"):
            load_config()

    def test_zero_attempts_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVCTL_DB_READY_ATTEMPTS", "0")
        with pytest.raises(ValueError, match="at least 1"):
            load_config()

    def test_bad_float(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVCTL_HEALTH_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="ENVCTL_HEALTH_TIMEOUT must be a number"):
            load_config()
