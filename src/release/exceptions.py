"""Exceptions for the release module."""


class ReleaseError(Exception):
    """Base exception for release resolution and deployment errors."""

    pass


class ReleaseResolutionFailure(ReleaseError):
    """The cluster query itself failed (distinct from "release not found")."""

    def __init__(self, release_name: str, namespace: str, detail: str):
        self.release_name = release_name
        self.namespace = namespace
        self.detail = detail
        super().__init__(
            f"Could not resolve release '{release_name}' in namespace '{namespace}': {detail}"
        )


class DeployTimeout(ReleaseError):
    """The readiness wait for a release exceeded its timeout."""

    def __init__(self, release_name: str, namespace: str, timeout: str, detail: str = ""):
        self.release_name = release_name
        self.namespace = namespace
        self.timeout = timeout
        message = (
            f"Release '{release_name}' in namespace '{namespace}' "
            f"not ready within {timeout}"
        )
        if detail:
            message += f": {detail}"
        super().__init__(message)
