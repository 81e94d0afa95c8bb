"""PipelineEngine - sequences stages with fail-fast and always-run semantics."""

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from src.context import StageContext
from src.credentials import CredentialNotFound
from src.logging_config import mask_secrets

from .models import PipelineRun, Stage, StageOutcome, StageResult

logger = logging.getLogger(__name__)


class StageListener:
    """Observer of stage transitions. Override the hooks you need."""

    def stage_started(self, stage: Stage) -> None:
        pass

    def stage_finished(self, result: StageResult) -> None:
        pass


class PipelineEngine:
    """Runs stages strictly in order against one immutable context.

    - The first failing ordinary stage stops every later ordinary stage;
      those are recorded as SKIPPED.
    - ``always_run`` stages execute regardless. Their failures are warnings.
    - ``best_effort`` stage failures are warnings, except CredentialNotFound,
      which is always fatal.
    - Nothing is retried.

    Example:
        run = PipelineEngine(context).run(stages)
        print(run.outcome, run.failed_stage)
    """

    def __init__(
        self,
        context: StageContext,
        listeners: Optional[Sequence[StageListener]] = None,
    ):
        self._context = context
        self._listeners = list(listeners or [])

    def _notify(self, hook: str, payload) -> None:
        for listener in self._listeners:
            try:
                getattr(listener, hook)(payload)
            except Exception:
                logger.warning("Stage listener %r failed in %s", listener, hook, exc_info=True)

    def _skip_stage(self, stage: Stage) -> StageResult:
        """Record a stage as skipped due to a prior failure."""
        logger.info("Skipping stage '%s' after earlier failure", stage.name)
        return StageResult(name=stage.name, outcome=StageOutcome.SKIPPED)

    def _run_stage(self, stage: Stage) -> StageResult:
        """Run a single stage with timing and error isolation."""
        self._notify("stage_started", stage)
        logger.info("Stage '%s' started", stage.name)
        start = time.monotonic()
        try:
            details = stage.action(self._context) or {}
        except Exception as e:
            duration = round(time.monotonic() - start, 2)
            message = mask_secrets(str(e))
            tolerated = stage.always_run or (
                stage.best_effort and not isinstance(e, CredentialNotFound)
            )
            if tolerated:
                logger.warning(
                    "Stage '%s' failed but does not fail the run: %s",
                    stage.name,
                    message,
                    exc_info=True,
                )
                return StageResult(
                    name=stage.name,
                    outcome=StageOutcome.SUCCESS,
                    duration_seconds=duration,
                    details={"error_type": type(e).__name__},
                    warning=message,
                )
            logger.exception("Stage '%s' failed", stage.name)
            return StageResult(
                name=stage.name,
                outcome=StageOutcome.FAILURE,
                duration_seconds=duration,
                details={"error_type": type(e).__name__},
                error=message,
            )

        duration = round(time.monotonic() - start, 2)
        logger.info("Stage '%s' succeeded in %.2fs", stage.name, duration)
        return StageResult(
            name=stage.name,
            outcome=StageOutcome.SUCCESS,
            duration_seconds=duration,
            details=details,
        )

    def run(self, stages: Iterable[Stage]) -> PipelineRun:
        """Execute the stages in order.

        Args:
            stages: Ordered stage descriptions.

        Returns:
            PipelineRun with one StageResult per stage.
        """
        run = PipelineRun(started_at=datetime.now(timezone.utc))
        failed = False

        for stage in stages:
            if failed and not stage.always_run:
                result = self._skip_stage(stage)
            else:
                result = self._run_stage(stage)
                if result.outcome == StageOutcome.FAILURE:
                    failed = True
            run.record(result)
            self._notify("stage_finished", result)

        run.finished_at = datetime.now(timezone.utc)
        if run.success:
            logger.info("Pipeline succeeded (%d stages)", len(run.results))
        else:
            logger.error(
                "Pipeline failed at stage '%s': %s", run.failed_stage, run.error_detail
            )
        return run
