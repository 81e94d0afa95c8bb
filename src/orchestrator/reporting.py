"""Run reporting: test and scan summaries plus the end-of-run report file."""

import glob
import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.context import StageContext

from .engine import StageListener
from .models import Stage, StageOutcome, StageResult

logger = logging.getLogger(__name__)

REPORT_FILENAME = "pipeline-report.json"


@dataclass
class JUnitSummary:
    """Totals across JUnit XML report files.

    Attributes:
        files: Number of report files read.
        tests: Total test cases.
        failures: Assertion failures.
        errors: Tests that errored.
        skipped: Skipped tests.
    """

    files: int = 0
    tests: int = 0
    failures: int = 0
    errors: int = 0
    skipped: int = 0

    @property
    def passed(self) -> int:
        return self.tests - self.failures - self.errors - self.skipped

    def to_dict(self) -> dict[str, int]:
        """Serialize to dictionary."""
        return {
            "files": self.files,
            "tests": self.tests,
            "passed": self.passed,
            "failures": self.failures,
            "errors": self.errors,
            "skipped": self.skipped,
        }


def _int_attr(element: ET.Element, name: str) -> int:
    try:
        return int(float(element.get(name, 0)))
    except ValueError:
        return 0


def parse_junit_reports(workspace: Path, pattern: str) -> JUnitSummary:
    """Sum test counts over every JUnit XML file matching ``pattern``.

    Unreadable files are logged and skipped.
    """
    summary = JUnitSummary()
    for name in sorted(glob.glob(pattern, root_dir=workspace, recursive=True)):
        path = Path(workspace) / name
        try:
            root = ET.parse(path).getroot()
        except (ET.ParseError, OSError) as e:
            logger.warning("Skipping unreadable test report %s: %s", name, e)
            continue

        suites = [root] if root.tag == "testsuite" else root.findall("testsuite")
        for suite in suites:
            summary.tests += _int_attr(suite, "tests")
            summary.failures += _int_attr(suite, "failures")
            summary.errors += _int_attr(suite, "errors")
            summary.skipped += _int_attr(suite, "skipped")
        summary.files += 1
    return summary


def summarize_scan_report(path: Path) -> dict[str, int]:
    """Count vulnerabilities per severity in a scanner JSON report.

    Returns an empty mapping when the report is missing or unreadable.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read scan report %s: %s", path, e)
        return {}

    counts: dict[str, int] = {}
    for target in data.get("Results") or []:
        for vulnerability in target.get("Vulnerabilities") or []:
            severity = vulnerability.get("Severity", "UNKNOWN")
            counts[severity] = counts.get(severity, 0) + 1
    return counts


class RunReporter(StageListener):
    """Collects stage results as they finish and writes the run report.

    Attach as a listener to the PipelineEngine; the Report stage then calls
    ``write_report`` to persist everything recorded so far.
    """

    def __init__(self) -> None:
        self._results: list[StageResult] = []

    @property
    def results(self) -> list[StageResult]:
        return list(self._results)

    def stage_started(self, stage: Stage) -> None:
        logger.debug("Reporter observed start of '%s'", stage.name)

    def stage_finished(self, result: StageResult) -> None:
        self._results.append(result)

    def build_report(self, context: StageContext) -> dict[str, Any]:
        failed = next(
            (r for r in self._results if r.outcome == StageOutcome.FAILURE), None
        )
        tests = parse_junit_reports(context.workspace, context.test_reports)
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "build_number": context.build_number,
            "image": context.image_ref,
            "release": context.release_name,
            "namespace": context.namespace,
            "status": StageOutcome.FAILURE.value if failed else StageOutcome.SUCCESS.value,
            "failed_stage": failed.name if failed else None,
            "error": failed.error if failed else None,
            "tests": tests.to_dict(),
            "stages": [r.to_dict() for r in self._results],
        }

    def write_report(self, context: StageContext) -> Path:
        """Write ``pipeline-report.json`` into the archive directory.

        Returns:
            Path of the written report.
        """
        report = self.build_report(context)
        archive_dir = Path(context.archive_dir)
        if not archive_dir.is_absolute():
            archive_dir = context.workspace / archive_dir
        archive_dir.mkdir(parents=True, exist_ok=True)
        path = archive_dir / REPORT_FILENAME
        path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")

        tests = report["tests"]
        logger.info(
            "Run report: status=%s tests=%d failures=%d errors=%d skipped=%d -> %s",
            report["status"],
            tests["tests"],
            tests["failures"],
            tests["errors"],
            tests["skipped"],
            path,
        )
        return path
