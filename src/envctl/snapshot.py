"""Resource-inventory snapshots written before shutdown.

The snapshot is an audit trail.  Startup reads it back only to log a
warning when the inventory has drifted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import date
from pathlib import Path
from typing import Any

from envctl.environments import Environment

logger = logging.getLogger(__name__)


def snapshot_path(state_dir: Path, env: Environment, day: date) -> Path:
    """Return ``resource-state-{env}-{yyyyMMdd}.json`` under *state_dir*."""
    return state_dir / f"resource-state-{env.short_name}-{day:%Y%m%d}.json"


def to_records(resources: Iterable[dict[str, Any]]) -> list[dict[str, str]]:
    """Reduce ``az resource list`` entries to ``{Name, Type, Location, Id}``."""
    return [
        {
            "Name": r.get("name", ""),
            "Type": r.get("type", ""),
            "Location": r.get("location", ""),
            "Id": r.get("id", ""),
        }
        for r in resources
    ]


def save_snapshot(
    resources: Iterable[dict[str, Any]],
    env: Environment,
    state_dir: Path,
    day: date,
) -> Path:
    """Write the snapshot file, replacing any earlier one from the same day."""
    records = to_records(resources)
    state_dir.mkdir(parents=True, exist_ok=True)
    path = snapshot_path(state_dir, env, day)
    path.write_text(json.dumps(records, indent=2), encoding="utf-8")
    logger.info("Saved %d resource records to %s", len(records), path)
    return path


def load_latest_snapshot(env: Environment, state_dir: Path) -> list[dict[str, str]] | None:
    """Return the records of the newest snapshot for *env*, or ``None``."""
    # yyyyMMdd sorts lexically in date order
    candidates = sorted(state_dir.glob(f"resource-state-{env.short_name}-*.json"))
    if not candidates:
        return None
    latest = candidates[-1]
    data = json.loads(latest.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{latest} does not contain a list of resource records")
    logger.debug("Loaded snapshot %s", latest)
    return data


def compare_inventory(
    snapshot: list[dict[str, str]],
    current: list[dict[str, str]],
) -> list[str]:
    """Describe how *current* differs from *snapshot* (empty when they match)."""
    problems: list[str] = []
    if len(snapshot) != len(current):
        problems.append(
            f"Resource count changed: {len(snapshot)} in snapshot, {len(current)} now"
        )

    before = {r.get("Name", "") for r in snapshot}
    after = {r.get("Name", "") for r in current}
    missing = sorted(before - after)
    added = sorted(after - before)
    if missing:
        problems.append(f"Missing since snapshot: {', '.join(missing)}")
    if added:
        problems.append(f"New since snapshot: {', '.join(added)}")
    return problems
