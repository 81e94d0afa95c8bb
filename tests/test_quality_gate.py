"""Unit tests for the quality gate waiter and the SonarQube verdict source."""

import logging
import time
from pathlib import Path
from typing import Optional
from unittest.mock import MagicMock

import pytest
import requests

from src.quality_gate import (
    AnalysisServerError,
    QualityGateError,
    QualityGateFailed,
    QualityGateResult,
    QualityGateStatus,
    QualityGateTimeout,
    QualityGateWaiter,
    ScannerReportError,
    SonarQubeVerdictSource,
    VerdictSource,
    enforce_policy,
    read_report_task,
)


class FakeClock:
    """Manual clock; sleep advances time instead of blocking."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedSource(VerdictSource):
    """Returns queued verdicts in order, then ``None`` forever."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = 0
        self.timeouts: list[Optional[float]] = []

    def fetch_verdict(self, timeout: Optional[float] = None) -> Optional[QualityGateStatus]:
        self.calls += 1
        self.timeouts.append(timeout)
        if not self._responses:
            return None
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def detail(self) -> Optional[str]:
        return "scripted"


class TestQualityGateWaiter:
    def test_returns_first_verdict(self):
        clock = FakeClock()
        source = ScriptedSource(None, None, QualityGateStatus.PASSED)
        waiter = QualityGateWaiter(source, poll_interval=5.0, clock=clock, sleep=clock.sleep)

        result = waiter.wait(timeout=60)

        assert result.status == QualityGateStatus.PASSED
        assert result.polls == 3
        assert result.detail == "scripted"
        assert clock.sleeps == [5.0, 5.0]

    def test_times_out_without_sleeping_past_deadline(self):
        clock = FakeClock()
        waiter = QualityGateWaiter(ScriptedSource(), poll_interval=4.0, clock=clock, sleep=clock.sleep)

        result = waiter.wait(timeout=10)

        assert result.status == QualityGateStatus.TIMEOUT
        assert clock.now == pytest.approx(10.0)
        assert clock.sleeps == [4.0, 4.0, 2.0]
        assert result.polls == 4

    def test_zero_timeout_polls_once(self):
        clock = FakeClock()
        source = ScriptedSource()
        result = QualityGateWaiter(source, clock=clock, sleep=clock.sleep).wait(timeout=0)

        assert result.status == QualityGateStatus.TIMEOUT
        assert source.calls == 1
        assert clock.sleeps == []

    def test_transient_server_errors_keep_polling(self):
        clock = FakeClock()
        source = ScriptedSource(
            AnalysisServerError("connection refused"),
            AnalysisServerError("503", status_code=503),
            QualityGateStatus.FAILED,
        )
        result = QualityGateWaiter(source, poll_interval=1.0, clock=clock, sleep=clock.sleep).wait(30)

        assert result.status == QualityGateStatus.FAILED
        assert result.polls == 3

    def test_unreadable_scanner_report_is_a_failed_verdict(self):
        clock = FakeClock()
        source = ScriptedSource(ScannerReportError("report-task.txt", "missing"))

        result = QualityGateWaiter(source, clock=clock, sleep=clock.sleep).wait(60)

        assert result.status == QualityGateStatus.FAILED
        assert "report-task.txt" in result.detail
        assert source.calls == 1

    def test_other_permanent_errors_propagate(self):
        source = ScriptedSource(QualityGateError("no project"))
        with pytest.raises(QualityGateError, match="no project"):
            QualityGateWaiter(source, poll_interval=0.01).wait(1)

    def test_each_poll_gets_the_remaining_time(self):
        clock = FakeClock()
        source = ScriptedSource()

        QualityGateWaiter(source, poll_interval=4.0, clock=clock, sleep=clock.sleep).wait(10)

        assert source.timeouts == [10.0, 6.0, 2.0, 0.0]

    def test_blocking_source_is_cut_off_at_deadline(self):
        class SlowSource(VerdictSource):
            def fetch_verdict(self, timeout=None):
                time.sleep(min(timeout, 1.5))
                return None

        started = time.monotonic()
        result = QualityGateWaiter(SlowSource(), poll_interval=0.05).wait(timeout=0.2)
        elapsed = time.monotonic() - started

        assert result.status == QualityGateStatus.TIMEOUT
        assert elapsed < 0.5

    def test_real_clock_returns_near_deadline(self):
        waiter = QualityGateWaiter(ScriptedSource(), poll_interval=0.05)

        started = time.monotonic()
        result = waiter.wait(timeout=0.2)
        elapsed = time.monotonic() - started

        assert result.status == QualityGateStatus.TIMEOUT
        assert elapsed < 1.0


class TestEnforcePolicy:
    def test_passed_is_returned(self):
        result = QualityGateResult(QualityGateStatus.PASSED)
        assert enforce_policy(result, abort_on_failure=True, timeout=300) is result

    def test_failed_aborts(self):
        result = QualityGateResult(QualityGateStatus.FAILED, detail="coverage below 80%")
        with pytest.raises(QualityGateFailed, match="coverage below 80%"):
            enforce_policy(result, abort_on_failure=True, timeout=300)

    def test_timeout_aborts(self):
        result = QualityGateResult(QualityGateStatus.TIMEOUT)
        with pytest.raises(QualityGateTimeout) as exc_info:
            enforce_policy(result, abort_on_failure=True, timeout=300)
        assert exc_info.value.timeout == 300

    @pytest.mark.parametrize(
        "status", [QualityGateStatus.FAILED, QualityGateStatus.TIMEOUT]
    )
    def test_non_aborting_policy_warns(self, status, caplog):
        result = QualityGateResult(status)
        with caplog.at_level(logging.WARNING):
            assert enforce_policy(result, abort_on_failure=False, timeout=300) is result
        assert any("continuing" in r.message for r in caplog.records)

    def test_unknown_never_aborts(self):
        result = QualityGateResult(QualityGateStatus.UNKNOWN)
        assert enforce_policy(result, abort_on_failure=True, timeout=300) is result


def _response(payload=None, status_code=200):
    response = MagicMock()
    response.json.return_value = payload
    if status_code >= 400:
        error = requests.HTTPError(f"{status_code} Server Error")
        error.response = MagicMock(status_code=status_code)
        response.raise_for_status.side_effect = error
    return response


@pytest.fixture
def report_task(tmp_path) -> Path:
    path = tmp_path / "report-task.txt"
    path.write_text(
        "projectKey=hospital\nserverUrl=http://sonar:9000\nceTaskId=AX-123\n",
        encoding="utf-8",
    )
    return path


class TestSonarQubeVerdictSource:
    def _source(self, report_task, *responses):
        session = MagicMock()
        session.get.side_effect = list(responses)
        source = SonarQubeVerdictSource(
            "http://sonar:9000/", token="squ_token", report_task_path=report_task, session=session
        )
        return source, session

    def test_read_report_task(self, report_task):
        assert read_report_task(report_task)["ceTaskId"] == "AX-123"

    def test_missing_report(self, tmp_path):
        with pytest.raises(ScannerReportError):
            read_report_task(tmp_path / "absent.txt")

    def test_report_without_task_id(self, tmp_path):
        path = tmp_path / "report-task.txt"
        path.write_text("projectKey=hospital\n", encoding="utf-8")
        with pytest.raises(ScannerReportError, match="ceTaskId"):
            read_report_task(path)

    def test_pending_task_has_no_verdict(self, report_task):
        source, session = self._source(
            report_task, _response({"task": {"status": "IN_PROGRESS"}})
        )
        assert source.fetch_verdict() is None
        session.get.assert_called_once_with(
            "http://sonar:9000/api/ce/task", params={"id": "AX-123"}, timeout=10.0
        )

    def test_passing_gate(self, report_task):
        source, session = self._source(
            report_task,
            _response({"task": {"status": "SUCCESS", "analysisId": "AN-1"}}),
            _response({"projectStatus": {"status": "OK", "conditions": []}}),
        )
        assert source.fetch_verdict() == QualityGateStatus.PASSED
        assert session.get.call_args.kwargs["params"] == {"analysisId": "AN-1"}

    def test_failing_gate_lists_conditions(self, report_task):
        source, _ = self._source(
            report_task,
            _response({"task": {"status": "SUCCESS", "analysisId": "AN-1"}}),
            _response(
                {
                    "projectStatus": {
                        "status": "ERROR",
                        "conditions": [
                            {"metricKey": "new_coverage", "status": "ERROR"},
                            {"metricKey": "new_bugs", "status": "OK"},
                        ],
                    }
                }
            ),
        )
        assert source.fetch_verdict() == QualityGateStatus.FAILED
        assert "new_coverage" in source.detail
        assert "new_bugs" not in source.detail

    def test_failed_analysis_task(self, report_task):
        source, _ = self._source(
            report_task,
            _response({"task": {"status": "FAILED", "errorMessage": "out of memory"}}),
        )
        assert source.fetch_verdict() == QualityGateStatus.FAILED
        assert source.detail == "out of memory"

    def test_http_error_is_analysis_server_error(self, report_task):
        source, _ = self._source(report_task, _response(status_code=503))
        with pytest.raises(AnalysisServerError) as exc_info:
            source.fetch_verdict()
        assert exc_info.value.status_code == 503

    def test_connection_error_is_analysis_server_error(self, report_task):
        source, _ = self._source(report_task, requests.ConnectionError("refused"))
        with pytest.raises(AnalysisServerError, match="Failed to connect"):
            source.fetch_verdict()

    def test_waiter_with_sonarqube_source(self, report_task):
        source, _ = self._source(
            report_task,
            _response({"task": {"status": "PENDING"}}),
            _response({"task": {"status": "SUCCESS", "analysisId": "AN-1"}}),
            _response({"projectStatus": {"status": "WARN"}}),
        )
        clock = FakeClock()
        result = QualityGateWaiter(source, poll_interval=2.0, clock=clock, sleep=clock.sleep).wait(60)

        assert result.status == QualityGateStatus.PASSED
        assert result.polls == 2
        assert result.detail == "status WARN"

    def test_request_timeout_shortened_to_remaining_time(self, report_task):
        source, session = self._source(
            report_task, _response({"task": {"status": "PENDING"}})
        )
        source.fetch_verdict(timeout=2.0)
        assert 0 < session.get.call_args.kwargs["timeout"] <= 2.0

    def test_request_timeout_has_a_floor(self, report_task):
        source, session = self._source(
            report_task, _response({"task": {"status": "PENDING"}})
        )
        source.fetch_verdict(timeout=0.0)
        assert session.get.call_args.kwargs["timeout"] == pytest.approx(0.1)

    def test_missing_report_does_not_abort_when_policy_is_off(self, tmp_path):
        source = SonarQubeVerdictSource(
            "http://sonar:9000", token="squ_token",
            report_task_path=tmp_path / "report-task.txt", session=MagicMock(),
        )
        result = QualityGateWaiter(source, poll_interval=0.01).wait(1)

        assert result.status == QualityGateStatus.FAILED
        assert enforce_policy(result, abort_on_failure=False, timeout=1) is result
        with pytest.raises(QualityGateFailed, match="Cannot read scanner report"):
            enforce_policy(result, abort_on_failure=True, timeout=1)
