"""Quality gate module for waiting on code-quality verdicts.

Public API:
    - QualityGateWaiter: Bounded polling for a verdict
    - enforce_policy: Escalate or log a non-passing verdict
    - VerdictSource: Interface for verdict providers (for custom implementations)
    - SonarQubeVerdictSource: SonarQube Web API implementation
    - QualityGateResult / QualityGateStatus: Verdict models

Example:
    from src.quality_gate import QualityGateWaiter, SonarQubeVerdictSource

    waiter = QualityGateWaiter(SonarQubeVerdictSource(url, token, report_path))
    result = waiter.wait(timeout=300)
"""

from .exceptions import (
    AnalysisServerError,
    QualityGateError,
    QualityGateFailed,
    QualityGateTimeout,
    ScannerReportError,
)
from .models import QualityGateResult, QualityGateStatus
from .sonarqube_source import SonarQubeVerdictSource, read_report_task
from .source import VerdictSource
from .waiter import QualityGateWaiter, enforce_policy

__all__ = [
    # Main classes
    "QualityGateWaiter",
    "enforce_policy",
    "VerdictSource",
    "SonarQubeVerdictSource",
    "read_report_task",
    # Models
    "QualityGateResult",
    "QualityGateStatus",
    # Exceptions
    "QualityGateError",
    "AnalysisServerError",
    "ScannerReportError",
    "QualityGateFailed",
    "QualityGateTimeout",
]
