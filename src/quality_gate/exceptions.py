"""Custom exceptions for the quality gate module."""

from typing import Optional

from .models import QualityGateResult


class QualityGateError(Exception):
    """Base exception for quality gate errors."""

    pass


class AnalysisServerError(QualityGateError):
    """The code-quality server could not be reached or returned an error.

    Treated as transient while polling.

    Attributes:
        status_code: HTTP status code, if a response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ScannerReportError(QualityGateError):
    """The scanner metadata file with the analysis task id is missing or invalid."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Cannot read scanner report {path}: {reason}")


class QualityGateFailed(QualityGateError):
    """The analysis verdict is a failure and the policy aborts the run."""

    def __init__(self, result: QualityGateResult):
        self.result = result
        message = "Quality gate failed"
        if result.detail:
            message += f": {result.detail}"
        super().__init__(message)


class QualityGateTimeout(QualityGateError):
    """No verdict arrived in time and the policy aborts the run."""

    def __init__(self, result: QualityGateResult, timeout: float):
        self.result = result
        self.timeout = timeout
        super().__init__(f"Quality gate verdict not received within {timeout:g}s")
