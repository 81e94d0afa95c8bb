"""Data models for the artifact archiver."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class ArchivedArtifact:
    """Outcome of archiving one file, or one pattern that matched nothing.

    Attributes:
        source_path: Workspace-relative path, or the pattern when nothing matched.
        archived: Whether a copy now exists in the archive directory.
        destination: Path of the archived copy.
        sha256: Fingerprint of the archived file.
        reason: Why the file was not archived, if it was not.
    """

    source_path: str
    archived: bool
    destination: Optional[str] = None
    sha256: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "source_path": self.source_path,
            "archived": self.archived,
            "destination": self.destination,
            "sha256": self.sha256,
            "reason": self.reason,
        }
