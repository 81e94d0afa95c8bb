"""SonarQube verdict source implementation."""

import logging
import time
from pathlib import Path
from typing import Any, Optional

import requests

from .exceptions import AnalysisServerError, ScannerReportError
from .models import QualityGateStatus
from .source import VerdictSource

logger = logging.getLogger(__name__)

# Compute-engine task states that mean the analysis is still being processed
_PENDING_TASK_STATES = {"PENDING", "IN_PROGRESS"}
_FAILED_TASK_STATES = {"FAILED", "CANCELED"}

# urllib3 rejects a zero read timeout
_MIN_REQUEST_TIMEOUT = 0.1

_GATE_STATUSES = {
    "OK": QualityGateStatus.PASSED,
    "WARN": QualityGateStatus.PASSED,
    "ERROR": QualityGateStatus.FAILED,
}


def read_report_task(path: Path) -> dict[str, str]:
    """Parse the scanner's ``report-task.txt`` key=value metadata file.

    Raises:
        ScannerReportError: If the file is missing or has no ``ceTaskId``.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScannerReportError(str(path), str(e)) from e

    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip()
    if not values.get("ceTaskId"):
        raise ScannerReportError(str(path), "no ceTaskId entry")
    return values


class SonarQubeVerdictSource(VerdictSource):
    """Reads the quality gate verdict of the latest scan from SonarQube.

    The scanner writes ``report-task.txt`` with the compute-engine task id.
    Each poll checks the task; once processed, the quality gate status of
    the resulting analysis is the verdict.

    Example usage:
        source = SonarQubeVerdictSource(
            "http://sonar:9000", token="squ_...",
            report_task_path=Path("target/sonar/report-task.txt"),
        )
    """

    DEFAULT_REQUEST_TIMEOUT = 10.0

    def __init__(
        self,
        host_url: str,
        token: str,
        report_task_path: Path,
        session: Optional[requests.Session] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize the source.

        Args:
            host_url: Base URL of the SonarQube server.
            token: User token; sent as the basic-auth user name.
            report_task_path: Path of the scanner's report-task.txt.
            session: Optional pre-configured requests session.
            request_timeout: Per-request timeout in seconds.
        """
        self._host_url = host_url.rstrip("/")
        self._token = token
        self._report_task_path = Path(report_task_path)
        self._session = session
        self._request_timeout = request_timeout
        self._task_id: Optional[str] = None
        self._analysis_id: Optional[str] = None
        self._detail: Optional[str] = None

    def _get_session(self) -> requests.Session:
        """Get or create the HTTP session (lazy initialization)."""
        if self._session is None:
            self._session = requests.Session()
            self._session.auth = (self._token, "")
        return self._session

    def _get_task_id(self) -> str:
        if self._task_id is None:
            self._task_id = read_report_task(self._report_task_path)["ceTaskId"]
            logger.debug("Analysis task id: %s", self._task_id)
        return self._task_id

    def _request_timeout_for(self, deadline: Optional[float]) -> float:
        """Per-request timeout, shortened to whatever is left before ``deadline``."""
        if deadline is None:
            return self._request_timeout
        remaining = deadline - time.monotonic()
        return max(min(self._request_timeout, remaining), _MIN_REQUEST_TIMEOUT)

    def _get_json(
        self, endpoint: str, params: dict[str, str], deadline: Optional[float] = None
    ) -> dict[str, Any]:
        url = f"{self._host_url}/{endpoint}"
        try:
            response = self._get_session().get(
                url, params=params, timeout=self._request_timeout_for(deadline)
            )
            response.raise_for_status()
            return response.json()
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise AnalysisServerError(
                f"SonarQube request to {endpoint} failed: {e}", status_code
            ) from e
        except requests.RequestException as e:
            raise AnalysisServerError(f"Failed to connect to SonarQube: {e}") from e
        except ValueError as e:
            raise AnalysisServerError(f"Invalid JSON from SonarQube {endpoint}: {e}") from e

    def fetch_verdict(self, timeout: Optional[float] = None) -> Optional[QualityGateStatus]:
        deadline = time.monotonic() + timeout if timeout is not None else None
        if self._analysis_id is None:
            data = self._get_json("api/ce/task", {"id": self._get_task_id()}, deadline)
            task = data.get("task", {})
            task_status = task.get("status", "")
            if task_status in _PENDING_TASK_STATES:
                logger.debug("Analysis task %s is %s", self._task_id, task_status)
                return None
            if task_status in _FAILED_TASK_STATES:
                self._detail = task.get("errorMessage") or f"analysis task {task_status.lower()}"
                return QualityGateStatus.FAILED
            self._analysis_id = task.get("analysisId")
            if not self._analysis_id:
                self._detail = f"unexpected task status {task_status!r}"
                return QualityGateStatus.UNKNOWN

        data = self._get_json(
            "api/qualitygates/project_status", {"analysisId": self._analysis_id}, deadline
        )
        project_status = data.get("projectStatus", {})
        gate = project_status.get("status", "NONE")
        failing = [
            c.get("metricKey", "?")
            for c in project_status.get("conditions", [])
            if c.get("status") == "ERROR"
        ]
        self._detail = f"status {gate}"
        if failing:
            self._detail += f"; failing conditions: {', '.join(failing)}"
        return _GATE_STATUSES.get(gate, QualityGateStatus.UNKNOWN)

    @property
    def detail(self) -> Optional[str]:
        return self._detail
