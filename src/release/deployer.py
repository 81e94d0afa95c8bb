"""ReleaseDeployer - installs or upgrades a release and verifies its rollout."""

import json
import logging

from src.context import StageContext
from src.runner import CommandFailure, CommandRunner, CommandTimeout

from .exceptions import DeployTimeout
from .models import DeployAction, PodSummary, ReleaseState

logger = logging.getLogger(__name__)

# stderr markers the chart manager and cluster CLI print when a wait expires
TIMEOUT_MARKERS = (
    "timed out waiting for the condition",
    "context deadline exceeded",
)

# Extra wall-clock allowance on top of the tool's own --timeout
TIMEOUT_SLACK_SECONDS = 60.0


def _is_timeout(error: CommandFailure) -> bool:
    if isinstance(error, CommandTimeout):
        return True
    stderr = error.stderr.lower()
    return any(marker in stderr for marker in TIMEOUT_MARKERS)


class ReleaseDeployer:
    """Applies the install or upgrade chosen from a ReleaseState.

    Both paths pass the same image coordinates and wait for readiness, so
    they converge on one release in the namespace that references the new
    image tag. Deploying twice with the same context is a no-op change.
    """

    def __init__(self, runner: CommandRunner, helm: str = "helm", kubectl: str = "kubectl"):
        self._runner = runner
        self._helm = helm
        self._kubectl = kubectl

    def deploy(self, context: StageContext, state: ReleaseState) -> DeployAction:
        """Install or upgrade the release for this run's image.

        Args:
            context: Run configuration.
            state: Fresh state from ReleaseResolver.

        Returns:
            The action that was performed.

        Raises:
            DeployTimeout: The release did not become ready in time.
            CommandFailure: The chart manager failed for another reason.
        """
        action = state.action
        args = [
            action.value,
            context.release_name,
            context.chart_path,
            "--namespace",
            context.namespace,
            "--set",
            f"image.repository={context.image_repository}",
            "--set",
            f"image.tag={context.image_tag}",
            "--wait",
            "--timeout",
            context.deploy_timeout_arg,
        ]
        if action == DeployAction.INSTALL:
            args.append("--create-namespace")

        logger.info(
            "%s release '%s' in '%s' with image %s",
            action.value.capitalize(),
            context.release_name,
            context.namespace,
            context.image_ref,
        )
        try:
            self._runner.execute(
                self._helm, args, timeout=context.deploy_timeout + TIMEOUT_SLACK_SECONDS
            )
        except CommandFailure as e:
            if _is_timeout(e):
                raise DeployTimeout(
                    context.release_name,
                    context.namespace,
                    context.deploy_timeout_arg,
                    e.stderr.strip(),
                ) from e
            raise
        return action

    def verify(self, context: StageContext) -> PodSummary:
        """Wait for the deployment rollout, then summarize pod readiness.

        Raises:
            DeployTimeout: The rollout did not finish within the deploy timeout.
            CommandFailure: The cluster CLI failed for another reason.
        """
        try:
            self._runner.execute(
                self._kubectl,
                [
                    "rollout",
                    "status",
                    f"deployment/{context.deployment_name}",
                    "--namespace",
                    context.namespace,
                    f"--timeout={context.deploy_timeout_arg}",
                ],
                timeout=context.deploy_timeout + TIMEOUT_SLACK_SECONDS,
            )
        except CommandFailure as e:
            if _is_timeout(e):
                raise DeployTimeout(
                    context.release_name,
                    context.namespace,
                    context.deploy_timeout_arg,
                    e.stderr.strip(),
                ) from e
            raise

        result = self._runner.execute(
            self._kubectl,
            [
                "get",
                "pods",
                "--namespace",
                context.namespace,
                "--selector",
                f"app.kubernetes.io/instance={context.release_name}",
                "--output",
                "json",
            ],
        )
        summary = parse_pod_listing(result.stdout)
        logger.info(
            "Release '%s': %d/%d pods ready",
            context.release_name,
            summary.ready,
            summary.total,
        )
        return summary


def parse_pod_listing(output: str) -> PodSummary:
    """Summarize ``kubectl get pods -o json`` output.

    Unparseable output yields an empty summary rather than an error; the
    rollout status check is the readiness gate.
    """
    try:
        items = json.loads(output or "{}").get("items", [])
    except (json.JSONDecodeError, AttributeError):
        logger.warning("Could not parse pod listing")
        return PodSummary()

    names = []
    ready = 0
    for pod in items:
        names.append(pod.get("metadata", {}).get("name", "?"))
        statuses = pod.get("status", {}).get("containerStatuses", [])
        if statuses and all(s.get("ready") for s in statuses):
            ready += 1
    return PodSummary(total=len(items), ready=ready, names=tuple(names))
