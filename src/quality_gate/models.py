"""Data models for the quality gate module."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class QualityGateStatus(Enum):
    """Verdict of the code-quality server for one analysis."""

    PASSED = "passed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"

    @property
    def blocks_release(self) -> bool:
        """Whether an aborting policy escalates this verdict to a run failure."""
        return self in (QualityGateStatus.FAILED, QualityGateStatus.TIMEOUT)


@dataclass(frozen=True)
class QualityGateResult:
    """Outcome of waiting for a quality gate verdict.

    Attributes:
        status: Final verdict.
        detail: Server-provided explanation, if any.
        elapsed_seconds: Time spent waiting.
        polls: Number of times the verdict source was queried.
    """

    status: QualityGateStatus
    detail: Optional[str] = None
    elapsed_seconds: float = 0.0
    polls: int = 0

    @property
    def passed(self) -> bool:
        return self.status == QualityGateStatus.PASSED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "status": self.status.value,
            "detail": self.detail,
            "elapsed_seconds": self.elapsed_seconds,
            "polls": self.polls,
        }
