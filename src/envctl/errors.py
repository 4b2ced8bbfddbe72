"""Exception types raised by envctl."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from envctl.pipeline import PipelineReport


class EnvctlError(Exception):
    """Base class for envctl failures."""


class AzureOpsError(EnvctlError):
    """Raised when an ``az`` command fails or returns unusable output."""

    def __init__(self, command: list[str], stderr: str) -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(f"az {' '.join(command)} failed: {stderr or 'no error output'}")


class ReadinessTimeoutError(EnvctlError):
    """Raised when a polled condition is not met in time."""


class StageFailedError(EnvctlError):
    """Raised when a required pipeline stage fails.

    Carries the partial report so callers can still show what ran.
    """

    def __init__(self, stage: str, report: PipelineReport, cause: BaseException) -> None:
        self.stage = stage
        self.report = report
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")
