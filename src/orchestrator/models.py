"""Data models for pipeline stages and run results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from src.context import StageContext

StageAction = Callable[[StageContext], Optional[dict[str, Any]]]


class StageOutcome(Enum):
    """Outcome of a single stage."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Stage:
    """Declarative description of one pipeline stage.

    Attributes:
        name: Stage name shown in logs and reports.
        action: Function of the run context; returns optional details.
        always_run: Runs even after an earlier stage failed. Its own
            failure is reported as a warning and never fails the run.
        best_effort: Failure is reported as a warning and the run continues.
    """

    name: str
    action: StageAction
    always_run: bool = False
    best_effort: bool = False


@dataclass(frozen=True)
class StageResult:
    """Result of a single pipeline stage."""

    name: str
    outcome: StageOutcome
    duration_seconds: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    warning: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == StageOutcome.SUCCESS

    @property
    def skipped(self) -> bool:
        return self.outcome == StageOutcome.SKIPPED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "outcome": self.outcome.value,
            "duration_seconds": self.duration_seconds,
            "details": self.details,
            "error": self.error,
            "warning": self.warning,
        }


@dataclass
class PipelineRun:
    """Aggregate result of a full pipeline run.

    Stage results are append-only: ``record`` adds to the end and nothing
    rewrites an earlier entry.
    """

    started_at: datetime
    finished_at: Optional[datetime] = None
    _results: list[StageResult] = field(default_factory=list, init=False, repr=False)

    @property
    def results(self) -> tuple[StageResult, ...]:
        return tuple(self._results)

    def record(self, result: StageResult) -> None:
        self._results.append(result)

    @property
    def failed_result(self) -> Optional[StageResult]:
        """The first failed stage, if any."""
        return next((r for r in self._results if r.outcome == StageOutcome.FAILURE), None)

    @property
    def outcome(self) -> StageOutcome:
        """FAILURE if any stage failed, else SUCCESS."""
        return StageOutcome.FAILURE if self.failed_result else StageOutcome.SUCCESS

    @property
    def success(self) -> bool:
        return self.outcome == StageOutcome.SUCCESS

    @property
    def failed_stage(self) -> Optional[str]:
        failed = self.failed_result
        return failed.name if failed else None

    @property
    def error_detail(self) -> Optional[str]:
        failed = self.failed_result
        return failed.error if failed else None

    @property
    def warnings(self) -> list[str]:
        return [f"{r.name}: {r.warning}" for r in self._results if r.warning]

    def result_for(self, name: str) -> Optional[StageResult]:
        return next((r for r in self._results if r.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "outcome": self.outcome.value,
            "failed_stage": self.failed_stage,
            "error": self.error_detail,
            "warnings": self.warnings,
            "stages": [r.to_dict() for r in self._results],
        }
