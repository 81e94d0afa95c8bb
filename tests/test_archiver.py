"""Unit tests for the artifact archiver."""

import hashlib
from pathlib import Path

from src.archiver import ArtifactArchiver, fingerprint


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestArtifactArchiver:
    def test_pattern_without_matches_is_recorded(self, tmp_path):
        artifacts = ArtifactArchiver(tmp_path, Path("archive")).archive(["target/*.jar"])

        assert len(artifacts) == 1
        assert artifacts[0].archived is False
        assert artifacts[0].source_path == "target/*.jar"
        assert artifacts[0].reason == "no match"

    def test_copies_matches_with_fingerprint(self, tmp_path):
        _write(tmp_path / "target" / "app.jar", "jar-bytes")
        archiver = ArtifactArchiver(tmp_path, Path("archive"))

        [artifact] = archiver.archive(["target/*.jar"])

        copy = tmp_path / "archive" / "target" / "app.jar"
        assert artifact.archived is True
        assert artifact.source_path == str(Path("target") / "app.jar")
        assert copy.read_text(encoding="utf-8") == "jar-bytes"
        assert artifact.sha256 == hashlib.sha256(b"jar-bytes").hexdigest()

    def test_recursive_patterns(self, tmp_path):
        _write(tmp_path / "module-a" / "target" / "surefire-reports" / "TEST-a.xml", "<a/>")
        _write(tmp_path / "module-b" / "target" / "surefire-reports" / "TEST-b.xml", "<b/>")

        artifacts = ArtifactArchiver(tmp_path, Path("archive")).archive(
            ["**/surefire-reports/*.xml"]
        )

        assert [a.archived for a in artifacts] == [True, True]

    def test_mixed_patterns(self, tmp_path):
        _write(tmp_path / "trivy-report.json", "{}")

        artifacts = ArtifactArchiver(tmp_path, Path("archive")).archive(
            ["target/*.jar", "trivy-report.json"]
        )

        assert [(a.source_path, a.archived) for a in artifacts] == [
            ("target/*.jar", False),
            ("trivy-report.json", True),
        ]

    def test_skips_archive_directory(self, tmp_path):
        _write(tmp_path / "report.json", "{}")
        archiver = ArtifactArchiver(tmp_path, Path("archive"))
        archiver.archive(["report.json"])

        artifacts = archiver.archive(["**/*.json"])

        assert [a.source_path for a in artifacts] == ["report.json"]

    def test_duplicate_matches_archived_once(self, tmp_path):
        _write(tmp_path / "app.jar", "x")
        artifacts = ArtifactArchiver(tmp_path, Path("archive")).archive(["*.jar", "app.*"])
        assert len(artifacts) == 1

    def test_absolute_archive_dir(self, tmp_path):
        _write(tmp_path / "ws" / "app.jar", "x")
        destination = tmp_path / "out"
        archiver = ArtifactArchiver(tmp_path / "ws", destination)

        [artifact] = archiver.archive(["app.jar"])

        assert archiver.archive_dir == destination
        assert Path(artifact.destination) == destination / "app.jar"

    def test_fingerprint(self, tmp_path):
        path = _write(tmp_path / "f.txt", "hello")
        assert fingerprint(path) == hashlib.sha256(b"hello").hexdigest()
