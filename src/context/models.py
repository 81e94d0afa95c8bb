"""Run-scoped configuration snapshot shared by every pipeline stage."""

import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from .exceptions import ConfigurationError

DEFAULT_REGISTRY = "docker.io"
DEFAULT_SEVERITY = "HIGH,CRITICAL"
DEFAULT_SCAN_REPORT = "trivy-report.json"
DEFAULT_ARTIFACT_PATTERNS = (
    "target/*.jar",
    "trivy-report.json",
    "target/surefire-reports/*.xml",
)
DEFAULT_TEST_REPORTS = "target/surefire-reports/*.xml"

# Docker reference grammar for tags
_TAG_PATTERN = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}")
_DURATION_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)?")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def parse_duration(value: str | int | float, key: str | None = None) -> float:
    """Parse a duration such as ``"5m"``, ``"300s"`` or ``"300"`` into seconds.

    Raises:
        ConfigurationError: If the value is not a recognised duration.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    match = _DURATION_PATTERN.fullmatch(str(value).strip().lower())
    if not match:
        raise ConfigurationError(f"Invalid duration {value!r}", key=key)
    return float(match.group(1)) * _DURATION_UNITS[match.group(2)]


def parse_bool(value: str | bool, key: str | None = None) -> bool:
    """Parse an environment-style boolean flag."""
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean {value!r}", key=key)


def format_duration(seconds: float) -> str:
    """Render seconds as a helm/kubectl duration argument (e.g. ``300s``)."""
    return f"{int(round(seconds))}s"


@dataclass(frozen=True)
class StageContext:
    """Immutable configuration for one pipeline run.

    Built once at run start by ``from_env`` and passed explicitly to every
    stage. Stages never read process environment themselves.

    Attributes:
        build_number: Monotonically increasing build identifier.
        registry_username: Registry namespace the image is pushed under.
        image_name: Repository name of the application image.
        image_tag: Tag for the built image. Defaults to the build number.
        registry: Registry host. Docker Hub references omit it.
        namespace: Target cluster namespace.
        release_name: Chart release name. Defaults to the image name.
        deployment_name: Deployment watched by the rollout check.
            Defaults to the release name.
        chart_path: Path to the chart used for install/upgrade.
        severity: Comma-separated severity filter for the scanner.
        scan_report: Path of the JSON vulnerability report.
        scan_fail_on_findings: Fail the scan stage when findings match.
        quality_gate_timeout: Seconds to wait for the analysis verdict.
        quality_gate_poll_interval: Seconds between verdict polls.
        quality_gate_abort: Abort the run on a failed or timed out verdict.
        deploy_timeout: Seconds to wait for the release to become ready.
        registry_credentials_id: Credential id used for registry login.
        sonar_credentials_id: Credential id used for analysis server auth.
        sonar_host_url: Base URL of the analysis server.
        sonar_project_key: Project key on the analysis server.
        sonar_report_task: Scanner metadata file holding the task id.
        repository_url: Source repository to check out. Empty skips cloning.
        branch: Branch to check out.
        workspace: Working directory for every command.
        archive_dir: Directory archived artifacts are copied into.
        artifact_patterns: Glob patterns collected after every run.
        test_reports: Glob pattern of JUnit XML reports.
        build_tool: Executable for test and package commands.
        push_latest: Also tag and push ``latest``.
    """

    build_number: str
    registry_username: str
    image_name: str = "hospital-appointment-app"
    image_tag: str = ""
    registry: str = DEFAULT_REGISTRY
    namespace: str = "default"
    release_name: str = ""
    deployment_name: str = ""
    chart_path: str = "helm/app"
    severity: str = DEFAULT_SEVERITY
    scan_report: str = DEFAULT_SCAN_REPORT
    scan_fail_on_findings: bool = False
    quality_gate_timeout: float = 300.0
    quality_gate_poll_interval: float = 5.0
    quality_gate_abort: bool = True
    deploy_timeout: float = 300.0
    registry_credentials_id: str = "dockerhub-creds"
    sonar_credentials_id: str = "sonar-token"
    sonar_host_url: str = "http://localhost:9000"
    sonar_project_key: str = ""
    sonar_report_task: str = "target/sonar/report-task.txt"
    repository_url: str = ""
    branch: str = "main"
    workspace: Path = field(default_factory=Path.cwd)
    archive_dir: str = "archive"
    artifact_patterns: tuple[str, ...] = DEFAULT_ARTIFACT_PATTERNS
    test_reports: str = DEFAULT_TEST_REPORTS
    build_tool: str = "mvn"
    push_latest: bool = True

    def __post_init__(self) -> None:
        if not str(self.build_number).strip():
            raise ConfigurationError("Build number is required", key="build_number")
        if not self.registry_username:
            raise ConfigurationError(
                "Registry username is required", key="registry_username"
            )
        if not self.image_name:
            raise ConfigurationError("Image name is required", key="image_name")

        # Frozen: derived defaults go through object.__setattr__
        if not self.image_tag:
            object.__setattr__(self, "image_tag", str(self.build_number))
        if not self.release_name:
            object.__setattr__(self, "release_name", self.image_name)
        if not self.deployment_name:
            object.__setattr__(self, "deployment_name", self.release_name)
        if not self.sonar_project_key:
            object.__setattr__(self, "sonar_project_key", self.image_name)
        object.__setattr__(self, "workspace", Path(self.workspace))
        object.__setattr__(self, "artifact_patterns", tuple(self.artifact_patterns))

        if not _TAG_PATTERN.fullmatch(self.image_tag):
            raise ConfigurationError(
                f"Invalid image tag {self.image_tag!r}", key="image_tag"
            )
        for name in ("quality_gate_timeout", "quality_gate_poll_interval", "deploy_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive", key=name)

    @property
    def image_repository(self) -> str:
        """Repository reference without tag, e.g. ``alice/app``."""
        repository = f"{self.registry_username}/{self.image_name}"
        if self.registry and self.registry != DEFAULT_REGISTRY:
            repository = f"{self.registry}/{repository}"
        return repository

    @property
    def image_ref(self) -> str:
        """Full image reference for this build."""
        return f"{self.image_repository}:{self.image_tag}"

    @property
    def latest_ref(self) -> str:
        return f"{self.image_repository}:latest"

    @property
    def deploy_timeout_arg(self) -> str:
        return format_duration(self.deploy_timeout)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for reports."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["workspace"] = str(self.workspace)
        data["artifact_patterns"] = list(self.artifact_patterns)
        return data

    @classmethod
    def from_env(
        cls, env: Mapping[str, str], **overrides: Optional[Any]
    ) -> "StageContext":
        """Build a context from an environment mapping plus invocation overrides.

        Args:
            env: Environment-style key/value mapping (e.g. ``os.environ``).
            **overrides: Field values that take precedence over ``env``.
                ``None`` values are ignored.

        Returns:
            A validated, immutable StageContext.

        Raises:
            ConfigurationError: If a required key is missing or a value is invalid.
        """
        values: dict[str, Any] = {}
        for key, name in ENV_KEYS.items():
            raw = env.get(key)
            if raw is None or raw == "":
                continue
            values[name] = _convert(name, raw, key)

        for name, value in overrides.items():
            if value is None:
                continue
            if name not in _FIELD_NAMES:
                raise ConfigurationError(f"Unknown configuration key {name!r}", key=name)
            values[name] = _convert(name, value, name)

        if "build_number" not in values:
            raise ConfigurationError(
                "BUILD_NUMBER is required to derive the image tag", key="BUILD_NUMBER"
            )
        if "registry_username" not in values:
            raise ConfigurationError(
                "REGISTRY_USERNAME is required", key="REGISTRY_USERNAME"
            )
        return cls(**values)


ENV_KEYS = {
    "BUILD_NUMBER": "build_number",
    "REGISTRY_USERNAME": "registry_username",
    "IMAGE_NAME": "image_name",
    "IMAGE_TAG": "image_tag",
    "REGISTRY": "registry",
    "K8S_NAMESPACE": "namespace",
    "RELEASE_NAME": "release_name",
    "DEPLOYMENT_NAME": "deployment_name",
    "CHART_PATH": "chart_path",
    "TRIVY_SEVERITY": "severity",
    "TRIVY_REPORT": "scan_report",
    "TRIVY_FAIL_ON_FINDINGS": "scan_fail_on_findings",
    "QUALITY_GATE_TIMEOUT": "quality_gate_timeout",
    "QUALITY_GATE_POLL_INTERVAL": "quality_gate_poll_interval",
    "QUALITY_GATE_ABORT": "quality_gate_abort",
    "DEPLOY_TIMEOUT": "deploy_timeout",
    "REGISTRY_CREDENTIALS_ID": "registry_credentials_id",
    "SONAR_CREDENTIALS_ID": "sonar_credentials_id",
    "SONAR_HOST_URL": "sonar_host_url",
    "SONAR_PROJECT_KEY": "sonar_project_key",
    "SONAR_REPORT_TASK": "sonar_report_task",
    "GIT_URL": "repository_url",
    "GIT_BRANCH": "branch",
    "WORKSPACE": "workspace",
    "ARCHIVE_DIR": "archive_dir",
    "ARTIFACT_PATTERNS": "artifact_patterns",
    "TEST_REPORTS": "test_reports",
    "BUILD_TOOL": "build_tool",
    "PUSH_LATEST": "push_latest",
}

_FIELD_NAMES = {f.name for f in fields(StageContext)}
_DURATION_FIELDS = {"quality_gate_timeout", "quality_gate_poll_interval", "deploy_timeout"}
_BOOL_FIELDS = {"scan_fail_on_findings", "quality_gate_abort", "push_latest"}


def _convert(name: str, value: Any, key: str) -> Any:
    if name in _DURATION_FIELDS:
        return parse_duration(value, key=key)
    if name in _BOOL_FIELDS:
        return parse_bool(value, key=key)
    if name == "workspace":
        return Path(value)
    if name == "artifact_patterns":
        if isinstance(value, str):
            return tuple(p.strip() for p in value.split(",") if p.strip())
        return tuple(value)
    return str(value)
