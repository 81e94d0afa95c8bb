"""ReleaseResolver - decides between install and upgrade of a release."""

import json
import logging

from src.runner import CommandFailure, CommandRunner

from .exceptions import ReleaseResolutionFailure
from .models import ReleaseState

logger = logging.getLogger(__name__)

# Printed by the chart manager when the named release does not exist
NOT_FOUND_SENTINEL = "release: not found"


class ReleaseResolver:
    """Queries the cluster for an existing release.

    Never caches: every call asks the cluster, which is the source of truth.
    Check-then-act is not atomic, so concurrent runs against the same
    release must be serialized outside this process.
    """

    def __init__(self, runner: CommandRunner, helm: str = "helm"):
        self._runner = runner
        self._helm = helm

    def resolve(self, release_name: str, namespace: str) -> ReleaseState:
        """Look up a release by name in a namespace.

        Args:
            release_name: Name of the release.
            namespace: Namespace to look in.

        Returns:
            ReleaseState with ``exists`` and, if present, the current image tag.

        Raises:
            ReleaseResolutionFailure: If the query failed for any reason other
                than the release being absent.
        """
        try:
            self._runner.execute(
                self._helm, ["status", release_name, "--namespace", namespace]
            )
        except CommandFailure as e:
            if NOT_FOUND_SENTINEL in e.stderr:
                logger.info(
                    "Release '%s' not found in namespace '%s'", release_name, namespace
                )
                return ReleaseState(exists=False)
            raise ReleaseResolutionFailure(release_name, namespace, str(e)) from e

        current_tag = self._current_tag(release_name, namespace)
        logger.info(
            "Release '%s' exists in namespace '%s' (tag %s)",
            release_name,
            namespace,
            current_tag or "unknown",
        )
        return ReleaseState(exists=True, current_tag=current_tag)

    def _current_tag(self, release_name: str, namespace: str) -> str | None:
        try:
            result = self._runner.execute(
                self._helm,
                ["get", "values", release_name, "--namespace", namespace, "--output", "json"],
            )
        except CommandFailure as e:
            raise ReleaseResolutionFailure(release_name, namespace, str(e)) from e

        try:
            # `helm get values` prints "null" when no values were supplied
            values = json.loads(result.stdout or "null") or {}
        except json.JSONDecodeError as e:
            raise ReleaseResolutionFailure(
                release_name, namespace, f"invalid values JSON: {e}"
            ) from e

        image = values.get("image") if isinstance(values, dict) else None
        if isinstance(image, dict) and image.get("tag") is not None:
            return str(image["tag"])
        return None
