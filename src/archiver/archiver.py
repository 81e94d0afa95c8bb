"""ArtifactArchiver - best-effort collection of declared output files."""

import glob
import hashlib
import logging
import shutil
from pathlib import Path
from typing import Iterable

from .models import ArchivedArtifact

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def fingerprint(path: Path) -> str:
    """SHA-256 hex digest of a file."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ArtifactArchiver:
    """Copies files matching glob patterns into an archive directory.

    Archiving never raises for missing inputs: a pattern matching zero files
    is recorded with ``archived=False``, and copy errors are logged and
    recorded the same way.

    Example:
        archiver = ArtifactArchiver(Path("/workspace"), Path("archive"))
        artifacts = archiver.archive(["target/*.jar", "trivy-report.json"])
    """

    def __init__(self, workspace: Path, archive_dir: Path):
        """Initialize the archiver.

        Args:
            workspace: Directory patterns are resolved against.
            archive_dir: Destination directory. Relative paths are taken
                relative to the workspace.
        """
        self._workspace = Path(workspace)
        archive_dir = Path(archive_dir)
        self._archive_dir = archive_dir if archive_dir.is_absolute() else self._workspace / archive_dir

    @property
    def archive_dir(self) -> Path:
        return self._archive_dir

    def _matches(self, pattern: str) -> list[Path]:
        matches = []
        for name in sorted(glob.glob(pattern, root_dir=self._workspace, recursive=True)):
            path = self._workspace / name
            if not path.is_file():
                continue
            # Never re-archive earlier copies
            if path.resolve().is_relative_to(self._archive_dir.resolve()):
                continue
            matches.append(path)
        return matches

    def _archive_file(self, path: Path) -> ArchivedArtifact:
        try:
            relative = path.relative_to(self._workspace)
        except ValueError:
            relative = Path(path.name)
        destination = self._archive_dir / relative
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, destination)
            digest = fingerprint(destination)
        except OSError as e:
            logger.warning("Failed to archive %s: %s", relative, e)
            return ArchivedArtifact(source_path=str(relative), archived=False, reason=str(e))
        logger.debug("Archived %s (sha256 %s)", relative, digest[:12])
        return ArchivedArtifact(
            source_path=str(relative),
            archived=True,
            destination=str(destination),
            sha256=digest,
        )

    def archive(self, patterns: Iterable[str]) -> list[ArchivedArtifact]:
        """Archive every file matching the given glob patterns.

        Args:
            patterns: Glob patterns, relative to the workspace. ``**`` recurses.

        Returns:
            One record per archived file, plus one ``archived=False`` record
            for each pattern that matched nothing.
        """
        artifacts: list[ArchivedArtifact] = []
        seen: set[Path] = set()
        for pattern in patterns:
            matches = self._matches(pattern)
            if not matches:
                logger.info("No files match artifact pattern '%s'", pattern)
                artifacts.append(
                    ArchivedArtifact(source_path=pattern, archived=False, reason="no match")
                )
                continue
            for path in matches:
                if path in seen:
                    continue
                seen.add(path)
                artifacts.append(self._archive_file(path))

        archived = sum(1 for a in artifacts if a.archived)
        logger.info("Archived %d file(s) into %s", archived, self._archive_dir)
        return artifacts
