"""Known environments and their per-environment settings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True, slots=True)
class ReplicaProfile:
    """Container App replica bounds restored on startup."""

    min_replicas: int
    max_replicas: int


class Environment(str, Enum):
    """Environments that may be stopped and started."""

    DEVELOPMENT = "Development"
    QA = "QA"

    @property
    def short_name(self) -> str:
        return _SHORT_NAMES[self]

    @property
    def replicas(self) -> ReplicaProfile:
        return _REPLICAS[self]

    def default_resource_group(self, prefix: str) -> str:
        """Return the conventional resource group name, e.g. ``rg-tourbus-dev``."""
        return f"{prefix}-{self.short_name}"

    @classmethod
    def parse(cls, value: str) -> Environment:
        """Resolve a display name or short name, case-insensitively."""
        needle = value.strip().lower()
        for env in cls:
            if needle in (env.value.lower(), env.short_name):
                return env
        valid = ", ".join(e.value for e in cls)
        raise ValueError(f"Unknown environment {value!r} (expected one of: {valid})")


_SHORT_NAMES: dict[Environment, str] = {
    Environment.DEVELOPMENT: "dev",
    Environment.QA: "qa",
}

_REPLICAS: dict[Environment, ReplicaProfile] = {
    Environment.DEVELOPMENT: ReplicaProfile(min_replicas=1, max_replicas=3),
    Environment.QA: ReplicaProfile(min_replicas=1, max_replicas=5),
}
