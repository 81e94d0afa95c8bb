"""Unit tests for the StageContext configuration snapshot."""

import dataclasses
from pathlib import Path

import pytest

from src.context import ConfigurationError, StageContext, parse_bool, parse_duration


BASE_ENV = {"BUILD_NUMBER": "42", "REGISTRY_USERNAME": "alice"}


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [("300", 300.0), ("300s", 300.0), ("5m", 300.0), ("1h", 3600.0), ("500ms", 0.5), (90, 90.0)],
    )
    def test_valid_durations(self, value, expected):
        assert parse_duration(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", ["", "five minutes", "5d", "-3s"])
    def test_invalid_durations(self, value):
        with pytest.raises(ConfigurationError):
            parse_duration(value, key="DEPLOY_TIMEOUT")


class TestParseBool:
    @pytest.mark.parametrize("value", ["1", "true", "YES", "on", True])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "No", "off", False])
    def test_falsy(self, value):
        assert parse_bool(value) is False

    def test_invalid(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_bool("maybe", key="QUALITY_GATE_ABORT")
        assert exc_info.value.key == "QUALITY_GATE_ABORT"


class TestStageContext:
    def test_defaults_derived_from_build_number_and_image(self):
        ctx = StageContext(build_number="42", registry_username="alice", image_name="app")

        assert ctx.image_tag == "42"
        assert ctx.release_name == "app"
        assert ctx.deployment_name == "app"
        assert ctx.image_repository == "alice/app"
        assert ctx.image_ref == "alice/app:42"
        assert ctx.latest_ref == "alice/app:latest"
        assert ctx.severity == "HIGH,CRITICAL"
        assert ctx.scan_report == "trivy-report.json"

    def test_private_registry_prefixes_repository(self):
        ctx = StageContext(
            build_number="7", registry_username="team", image_name="app", registry="ghcr.io"
        )
        assert ctx.image_ref == "ghcr.io/team/app:7"

    def test_is_immutable(self):
        ctx = StageContext(build_number="42", registry_username="alice")
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.image_tag = "43"

    def test_deploy_timeout_argument(self):
        ctx = StageContext(build_number="42", registry_username="alice", deploy_timeout=300.0)
        assert ctx.deploy_timeout_arg == "300s"

    def test_invalid_tag_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StageContext(build_number="42", registry_username="alice", image_tag="bad tag!")
        assert exc_info.value.key == "image_tag"

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ConfigurationError):
            StageContext(build_number="42", registry_username="alice", deploy_timeout=0)


class TestFromEnv:
    def test_reads_environment_keys(self, tmp_path):
        env = {
            **BASE_ENV,
            "IMAGE_NAME": "hospital-app",
            "K8S_NAMESPACE": "prod",
            "RELEASE_NAME": "hospital",
            "CHART_PATH": "charts/hospital",
            "TRIVY_SEVERITY": "CRITICAL",
            "QUALITY_GATE_TIMEOUT": "2m",
            "QUALITY_GATE_ABORT": "false",
            "DEPLOY_TIMEOUT": "10m",
            "WORKSPACE": str(tmp_path),
            "ARTIFACT_PATTERNS": "target/*.jar, trivy-report.json",
        }
        ctx = StageContext.from_env(env)

        assert ctx.image_ref == "alice/hospital-app:42"
        assert ctx.namespace == "prod"
        assert ctx.release_name == "hospital"
        assert ctx.chart_path == "charts/hospital"
        assert ctx.severity == "CRITICAL"
        assert ctx.quality_gate_timeout == 120.0
        assert ctx.quality_gate_abort is False
        assert ctx.deploy_timeout == 600.0
        assert ctx.workspace == Path(tmp_path)
        assert ctx.artifact_patterns == ("target/*.jar", "trivy-report.json")

    def test_overrides_take_precedence(self):
        ctx = StageContext.from_env(
            {**BASE_ENV, "K8S_NAMESPACE": "prod", "QUALITY_GATE_ABORT": "true"},
            namespace="staging",
            quality_gate_abort=False,
            image_tag="hotfix-1",
        )
        assert ctx.namespace == "staging"
        assert ctx.quality_gate_abort is False
        assert ctx.image_tag == "hotfix-1"

    def test_none_overrides_are_ignored(self):
        ctx = StageContext.from_env({**BASE_ENV, "K8S_NAMESPACE": "prod"}, namespace=None)
        assert ctx.namespace == "prod"

    def test_missing_build_number(self):
        with pytest.raises(ConfigurationError) as exc_info:
            StageContext.from_env({"REGISTRY_USERNAME": "alice"})
        assert exc_info.value.key == "BUILD_NUMBER"

    def test_missing_registry_username(self):
        with pytest.raises(ConfigurationError):
            StageContext.from_env({"BUILD_NUMBER": "42"})

    def test_unknown_override_rejected(self):
        with pytest.raises(ConfigurationError):
            StageContext.from_env(BASE_ENV, not_a_field="x")

    def test_env_mapping_changes_after_construction_are_not_observed(self):
        env = dict(BASE_ENV)
        ctx = StageContext.from_env(env)
        env["BUILD_NUMBER"] = "43"
        assert ctx.image_tag == "42"

    def test_to_dict_is_serializable(self):
        data = StageContext.from_env(BASE_ENV).to_dict()
        assert data["build_number"] == "42"
        assert isinstance(data["workspace"], str)
        assert isinstance(data["artifact_patterns"], list)
