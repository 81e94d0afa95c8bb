"""QualityGateWaiter - bounded wait for a code-quality verdict."""

import logging
import time
from typing import Callable

from .exceptions import (
    AnalysisServerError,
    QualityGateFailed,
    QualityGateTimeout,
    ScannerReportError,
)
from .models import QualityGateResult, QualityGateStatus
from .source import VerdictSource

logger = logging.getLogger(__name__)


class QualityGateWaiter:
    """Polls a verdict source until it answers or the timeout elapses.

    The waiter never sleeps past the deadline and hands each poll the time
    that is left, so ``wait(T)`` returns within ``T`` plus the source's
    minimum request time. Whether a non-passing verdict aborts
    the run is decided separately by ``enforce_policy``.

    Example:
        waiter = QualityGateWaiter(source, poll_interval=5.0)
        result = waiter.wait(timeout=300)
        enforce_policy(result, abort_on_failure=True, timeout=300)
    """

    def __init__(
        self,
        source: VerdictSource,
        poll_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._source = source
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    def wait(self, timeout: float) -> QualityGateResult:
        """Wait up to ``timeout`` seconds for a verdict.

        Args:
            timeout: Maximum seconds to wait.

        Returns:
            QualityGateResult; status TIMEOUT if no verdict arrived in time,
            FAILED if the scanner report needed to find the analysis is unusable.

        Raises:
            QualityGateError: Other permanent errors from the source (transient
                AnalysisServerError is logged and polling continues).
        """
        start = self._clock()
        deadline = start + timeout
        polls = 0

        while True:
            polls += 1
            try:
                status = self._source.fetch_verdict(
                    timeout=max(deadline - self._clock(), 0.0)
                )
            except AnalysisServerError as e:
                logger.warning("Quality gate poll %d failed: %s", polls, e)
                status = None
            except ScannerReportError as e:
                logger.warning("Quality gate cannot be evaluated: %s", e)
                return QualityGateResult(
                    status=QualityGateStatus.FAILED,
                    detail=str(e),
                    elapsed_seconds=round(self._clock() - start, 2),
                    polls=polls,
                )

            now = self._clock()
            if status is not None:
                result = QualityGateResult(
                    status=status,
                    detail=self._source.detail,
                    elapsed_seconds=round(now - start, 2),
                    polls=polls,
                )
                logger.info(
                    "Quality gate verdict %s after %d poll(s)", status.value, polls
                )
                return result

            remaining = deadline - now
            if remaining <= 0:
                logger.warning(
                    "No quality gate verdict within %gs (%d polls)", timeout, polls
                )
                return QualityGateResult(
                    status=QualityGateStatus.TIMEOUT,
                    detail=f"no verdict within {timeout:g}s",
                    elapsed_seconds=round(now - start, 2),
                    polls=polls,
                )
            self._sleep(min(self._poll_interval, remaining))


def enforce_policy(
    result: QualityGateResult, abort_on_failure: bool, timeout: float
) -> QualityGateResult:
    """Apply the abort policy to a verdict.

    Args:
        result: Verdict returned by ``QualityGateWaiter.wait``.
        abort_on_failure: If True, FAILED and TIMEOUT verdicts raise;
            otherwise they are logged as warnings and the run continues.
        timeout: The timeout the verdict was awaited with (for messages).

    Returns:
        The same result when the run may continue.

    Raises:
        QualityGateFailed: FAILED verdict under an aborting policy.
        QualityGateTimeout: TIMEOUT verdict under an aborting policy.
    """
    if result.passed:
        return result

    if result.status.blocks_release and abort_on_failure:
        if result.status == QualityGateStatus.TIMEOUT:
            raise QualityGateTimeout(result, timeout)
        raise QualityGateFailed(result)

    logger.warning(
        "Quality gate %s (%s); continuing because abort policy is %s",
        result.status.value,
        result.detail or "no detail",
        "on" if abort_on_failure else "off",
    )
    return result
