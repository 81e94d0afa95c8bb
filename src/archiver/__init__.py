"""Artifact archival for pipeline runs.

Public API:
    - ArtifactArchiver: Copy declared output files into the archive directory
    - ArchivedArtifact: Per-file archival record
    - fingerprint: SHA-256 digest of a file
"""

from .archiver import ArtifactArchiver, fingerprint
from .models import ArchivedArtifact

__all__ = [
    "ArtifactArchiver",
    "ArchivedArtifact",
    "fingerprint",
]
