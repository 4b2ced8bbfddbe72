"""Ordered stage runner with per-stage failure policy.

A lifecycle operation is a list of :class:`Stage` objects run in order.
``REQUIRED`` stages abort the run on failure; ``BEST_EFFORT`` stages are
downgraded to warnings and the run continues.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from envctl.errors import StageFailedError

logger = logging.getLogger(__name__)


class StagePolicy(str, Enum):
    REQUIRED = "required"
    BEST_EFFORT = "best-effort"


class StageStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class Stage:
    """A named step of a lifecycle operation."""

    name: str
    action: Callable[[], object]
    policy: StagePolicy = StagePolicy.REQUIRED


@dataclass(frozen=True, slots=True)
class StageOutcome:
    name: str
    policy: StagePolicy
    status: StageStatus
    error: str | None = None


@dataclass
class PipelineReport:
    """Outcome of every stage, in execution order."""

    outcomes: list[StageOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.status is StageStatus.OK for o in self.outcomes)

    @property
    def warnings(self) -> list[StageOutcome]:
        return [o for o in self.outcomes if o.status is StageStatus.WARNING]

    @property
    def failed(self) -> StageOutcome | None:
        return next((o for o in self.outcomes if o.status is StageStatus.FAILED), None)


def run_pipeline(stages: Sequence[Stage]) -> PipelineReport:
    """Run *stages* in order and return the report.

    Raises:
        StageFailedError: a ``REQUIRED`` stage raised.  Remaining stages are
            recorded as skipped and the report is attached to the error.
    """
    report = PipelineReport()

    for index, stage in enumerate(stages):
        logger.info("Stage %d/%d: %s", index + 1, len(stages), stage.name)
        try:
            stage.action()
        except Exception as exc:
            if stage.policy is StagePolicy.BEST_EFFORT:
                logger.warning("Stage '%s' failed (continuing): %s", stage.name, exc)
                report.outcomes.append(
                    StageOutcome(stage.name, stage.policy, StageStatus.WARNING, str(exc))
                )
                continue

            logger.error("Stage '%s' failed: %s", stage.name, exc)
            report.outcomes.append(
                StageOutcome(stage.name, stage.policy, StageStatus.FAILED, str(exc))
            )
            for remaining in stages[index + 1 :]:
                report.outcomes.append(
                    StageOutcome(remaining.name, remaining.policy, StageStatus.SKIPPED)
                )
            raise StageFailedError(stage.name, report, exc) from exc

        report.outcomes.append(StageOutcome(stage.name, stage.policy, StageStatus.OK))

    return report
