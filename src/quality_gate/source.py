"""Abstract interface for quality gate verdict sources."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import QualityGateStatus


class VerdictSource(ABC):
    """Abstract base class for code-quality verdict providers.

    Implementations should handle:
    - Authentication with the analysis server
    - Locating the analysis produced by the scanner
    - Mapping server statuses to QualityGateStatus
    - Translating transport errors to AnalysisServerError

    Example usage:
        source = SonarQubeVerdictSource("http://sonar:9000", token="...")
        status = source.fetch_verdict(timeout=30)  # None while analysis is pending
    """

    @abstractmethod
    def fetch_verdict(self, timeout: Optional[float] = None) -> Optional[QualityGateStatus]:
        """Query the verdict once without waiting.

        Args:
            timeout: Seconds this query may block at most. None means the
                source's own default applies.

        Returns:
            The verdict, or None if the analysis is still in progress.

        Raises:
            AnalysisServerError: Transient failure talking to the server.
            QualityGateError: Permanent failure (e.g. no analysis to look up).
        """
        pass

    @property
    def detail(self) -> Optional[str]:
        """Explanation accompanying the last verdict, if any."""
        return None
