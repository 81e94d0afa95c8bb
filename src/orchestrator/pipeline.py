"""DeploymentPipeline - the declarative stage list for build, scan and release."""

import logging
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from src.archiver import ArtifactArchiver
from src.context import StageContext
from src.credentials import CredentialHandle, CredentialScope, EnvCredentialStore
from src.quality_gate import (
    QualityGateWaiter,
    SonarQubeVerdictSource,
    VerdictSource,
    enforce_policy,
)
from src.release import ReleaseDeployer, ReleaseError, ReleaseResolver
from src.runner import CommandRunner

from .engine import PipelineEngine
from .models import PipelineRun, Stage
from .reporting import RunReporter, parse_junit_reports, summarize_scan_report

logger = logging.getLogger(__name__)

CHECKOUT = "Checkout"
STATIC_ANALYSIS = "Static-Analysis"
QUALITY_GATE = "QualityGate"
BUILD_AND_TEST = "Build&Test"
PACKAGE = "Package"
CONTAINER_BUILD = "ContainerBuild"
VULNERABILITY_SCAN = "VulnerabilityScan"
PUBLISH = "Publish"
DEPLOY = "Deploy"
VERIFY_DEPLOYMENT = "VerifyDeployment"
CLEANUP = "Cleanup"
ARCHIVE_ARTIFACTS = "ArchiveArtifacts"
REPORT = "Report"

VerdictSourceFactory = Callable[[StageContext, CredentialHandle], VerdictSource]


def sonarqube_source_factory(
    context: StageContext, handle: CredentialHandle
) -> VerdictSource:
    """Build the default verdict source from the run context."""
    return SonarQubeVerdictSource(
        host_url=context.sonar_host_url,
        token=handle.secret,
        report_task_path=context.workspace / context.sonar_report_task,
    )


class DeploymentPipeline:
    """Takes source code through analysis, build, scan, publish and rollout.

    Builds an ordered list of Stage values and hands it to PipelineEngine.
    Collaborators are injected for testing or created lazily from defaults;
    the defaults read the environment only through ``env``.

    Example:
        env = dict(os.environ)
        context = StageContext.from_env(env)
        run = DeploymentPipeline(context, env).run()
        print(f"Success: {run.success}")
    """

    def __init__(
        self,
        context: StageContext,
        env: Mapping[str, str],
        runner: Optional[CommandRunner] = None,
        credentials: Optional[CredentialScope] = None,
        verdict_source_factory: Optional[VerdictSourceFactory] = None,
        resolver: Optional[ReleaseResolver] = None,
        deployer: Optional[ReleaseDeployer] = None,
        archiver: Optional[ArtifactArchiver] = None,
        reporter: Optional[RunReporter] = None,
    ):
        self._context = context
        self._env = dict(env)
        self._runner = runner
        self._credentials = credentials
        self._verdict_source_factory = verdict_source_factory or sonarqube_source_factory
        self._resolver = resolver
        self._deployer = deployer
        self._archiver = archiver
        self._reporter = reporter

    def _get_runner(self) -> CommandRunner:
        if self._runner is None:
            self._runner = CommandRunner(base_env=self._env, cwd=self._context.workspace)
        return self._runner

    def _get_credentials(self) -> CredentialScope:
        if self._credentials is None:
            self._credentials = CredentialScope(EnvCredentialStore(self._env))
        return self._credentials

    def _get_resolver(self) -> ReleaseResolver:
        if self._resolver is None:
            self._resolver = ReleaseResolver(self._get_runner())
        return self._resolver

    def _get_deployer(self) -> ReleaseDeployer:
        if self._deployer is None:
            self._deployer = ReleaseDeployer(self._get_runner())
        return self._deployer

    def _get_archiver(self) -> ArtifactArchiver:
        if self._archiver is None:
            self._archiver = ArtifactArchiver(
                self._context.workspace, Path(self._context.archive_dir)
            )
        return self._archiver

    def _get_reporter(self) -> RunReporter:
        if self._reporter is None:
            self._reporter = RunReporter()
        return self._reporter

    # -------------------- Stages --------------------

    def _checkout(self, ctx: StageContext) -> dict[str, Any]:
        if not ctx.repository_url:
            logger.info("No repository configured; using workspace contents")
            return {"source": "workspace"}

        git = self._get_runner()
        if (ctx.workspace / ".git").exists():
            git.execute("git", ["fetch", "--prune", "origin", ctx.branch])
            git.execute("git", ["checkout", "--force", "-B", ctx.branch, f"origin/{ctx.branch}"])
        else:
            git.execute(
                "git",
                ["clone", "--branch", ctx.branch, "--single-branch", ctx.repository_url, "."],
            )
        commit = git.execute("git", ["rev-parse", "HEAD"]).stdout.strip()
        return {"branch": ctx.branch, "commit": commit}

    def _static_analysis(self, ctx: StageContext) -> dict[str, Any]:
        def analyze(handle: CredentialHandle) -> None:
            self._get_runner().execute(
                ctx.build_tool,
                [
                    "-B",
                    "sonar:sonar",
                    f"-Dsonar.projectKey={ctx.sonar_project_key}",
                    f"-Dsonar.host.url={ctx.sonar_host_url}",
                ],
                env={"SONAR_TOKEN": handle.secret},
            )

        self._get_credentials().with_credential(ctx.sonar_credentials_id, analyze)
        return {"project_key": ctx.sonar_project_key, "host_url": ctx.sonar_host_url}

    def _quality_gate(self, ctx: StageContext) -> dict[str, Any]:
        with self._get_credentials().open(ctx.sonar_credentials_id) as handle:
            waiter = QualityGateWaiter(
                self._verdict_source_factory(ctx, handle),
                poll_interval=ctx.quality_gate_poll_interval,
            )
            result = waiter.wait(ctx.quality_gate_timeout)
        enforce_policy(result, ctx.quality_gate_abort, ctx.quality_gate_timeout)
        details = result.to_dict()
        details["abort_on_failure"] = ctx.quality_gate_abort
        return details

    def _build_and_test(self, ctx: StageContext) -> dict[str, Any]:
        self._get_runner().execute(ctx.build_tool, ["-B", "clean", "test"])
        return parse_junit_reports(ctx.workspace, ctx.test_reports).to_dict()

    def _package(self, ctx: StageContext) -> dict[str, Any]:
        self._get_runner().execute(ctx.build_tool, ["-B", "package", "-DskipTests"])
        packages = sorted(str(p.relative_to(ctx.workspace)) for p in ctx.workspace.glob("target/*.jar"))
        return {"packages": packages}

    def _container_build(self, ctx: StageContext) -> dict[str, Any]:
        docker = self._get_runner()
        docker.execute("docker", ["build", "-t", ctx.image_ref, "."])
        tags = [ctx.image_ref]
        if ctx.push_latest:
            docker.execute("docker", ["tag", ctx.image_ref, ctx.latest_ref])
            tags.append(ctx.latest_ref)
        return {"tags": tags}

    def _vulnerability_scan(self, ctx: StageContext) -> dict[str, Any]:
        trivy = self._get_runner()
        exit_code = "1" if ctx.scan_fail_on_findings else "0"
        # Filesystem first, then image; sequential so a failure names its scan
        trivy.execute(
            "trivy",
            ["fs", "--severity", ctx.severity, "--exit-code", exit_code, "--no-progress", "."],
        )
        trivy.execute(
            "trivy",
            [
                "image",
                "--severity",
                ctx.severity,
                "--format",
                "json",
                "--output",
                ctx.scan_report,
                "--exit-code",
                exit_code,
                "--no-progress",
                ctx.image_ref,
            ],
        )
        findings = summarize_scan_report(ctx.workspace / ctx.scan_report)
        if findings:
            logger.warning("Image scan findings (%s): %s", ctx.severity, findings)
        return {"report": ctx.scan_report, "severity": ctx.severity, "findings": findings}

    def _publish(self, ctx: StageContext) -> dict[str, Any]:
        docker = self._get_runner()

        def push(handle: CredentialHandle) -> list[str]:
            docker.execute(
                "docker",
                ["login", "--username", handle.username or ctx.registry_username,
                 "--password-stdin", ctx.registry],
                input=handle.secret,
            )
            pushed = [ctx.image_ref]
            docker.execute("docker", ["push", ctx.image_ref])
            if ctx.push_latest:
                docker.execute("docker", ["push", ctx.latest_ref])
                pushed.append(ctx.latest_ref)
            return pushed

        def logout(handle: CredentialHandle) -> None:
            docker.execute("docker", ["logout", ctx.registry], best_effort=True)

        pushed = self._get_credentials().with_credential(
            ctx.registry_credentials_id, push, release=logout
        )
        return {"pushed": pushed}

    def _deploy(self, ctx: StageContext) -> dict[str, Any]:
        state = self._get_resolver().resolve(ctx.release_name, ctx.namespace)
        action = self._get_deployer().deploy(ctx, state)
        return {
            "action": action.value,
            "previous_tag": state.current_tag,
            "tag": ctx.image_tag,
        }

    def _verify_deployment(self, ctx: StageContext) -> dict[str, Any]:
        pods = self._get_deployer().verify(ctx)
        state = self._get_resolver().resolve(ctx.release_name, ctx.namespace)
        if not state.exists or state.current_tag != ctx.image_tag:
            raise ReleaseError(
                f"Release '{ctx.release_name}' references tag {state.current_tag!r}, "
                f"expected {ctx.image_tag!r}"
            )
        details = pods.to_dict()
        details["tag"] = state.current_tag
        return details

    def _cleanup(self, ctx: StageContext) -> dict[str, Any]:
        images = [ctx.image_ref]
        if ctx.push_latest:
            images.append(ctx.latest_ref)
        # Cleanup is a best-effort stage; a failed rmi becomes its warning
        self._get_runner().execute("docker", ["rmi", *images])
        return {"removed": images}

    def _archive_artifacts(self, ctx: StageContext) -> dict[str, Any]:
        artifacts = self._get_archiver().archive(ctx.artifact_patterns)
        return {
            "archived": [a.source_path for a in artifacts if a.archived],
            "missing": [a.source_path for a in artifacts if not a.archived],
        }

    def _report(self, ctx: StageContext) -> dict[str, Any]:
        path = self._get_reporter().write_report(ctx)
        return {"report": str(path)}

    # -------------------- Public API --------------------

    def build_stages(self) -> list[Stage]:
        """Return the ordered stage list for one run."""
        return [
            Stage(CHECKOUT, self._checkout),
            Stage(STATIC_ANALYSIS, self._static_analysis),
            Stage(QUALITY_GATE, self._quality_gate),
            Stage(BUILD_AND_TEST, self._build_and_test),
            Stage(PACKAGE, self._package),
            Stage(CONTAINER_BUILD, self._container_build),
            Stage(VULNERABILITY_SCAN, self._vulnerability_scan),
            Stage(PUBLISH, self._publish),
            Stage(DEPLOY, self._deploy),
            Stage(VERIFY_DEPLOYMENT, self._verify_deployment),
            Stage(CLEANUP, self._cleanup, always_run=True, best_effort=True),
            Stage(ARCHIVE_ARTIFACTS, self._archive_artifacts, always_run=True),
            Stage(REPORT, self._report, always_run=True),
        ]

    def run(self) -> PipelineRun:
        """Execute the full pipeline.

        Returns:
            PipelineRun with one result per stage.
        """
        engine = PipelineEngine(self._context, listeners=[self._get_reporter()])
        credentials = self._get_credentials()
        try:
            return engine.run(self.build_stages())
        finally:
            credentials.close()
