"""Data models for the release module."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class DeployAction(Enum):
    """Chart manager action chosen for a deploy."""

    INSTALL = "install"
    UPGRADE = "upgrade"


@dataclass(frozen=True)
class ReleaseState:
    """Observed state of a named release in a namespace.

    Queried fresh every run; a previous run's view of the cluster may be
    stale because the cluster can change externally.

    Attributes:
        exists: Whether the release is present.
        current_tag: Image tag the release currently references, if known.
    """

    exists: bool
    current_tag: Optional[str] = None

    @property
    def action(self) -> DeployAction:
        """The deploy action this state calls for."""
        return DeployAction.UPGRADE if self.exists else DeployAction.INSTALL

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"exists": self.exists, "current_tag": self.current_tag}


@dataclass(frozen=True)
class PodSummary:
    """Readiness of the pods belonging to a release.

    Attributes:
        total: Number of pods matched by the release selector.
        ready: Number of pods whose containers are all ready.
        names: Pod names, in listing order.
    """

    total: int = 0
    ready: int = 0
    names: tuple[str, ...] = ()

    @property
    def all_ready(self) -> bool:
        return self.total > 0 and self.ready == self.total

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {"total": self.total, "ready": self.ready, "pods": list(self.names)}
