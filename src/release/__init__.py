"""Release resolution and deployment to the target cluster.

Public API:
    - ReleaseResolver: Query whether a release exists (install vs upgrade)
    - ReleaseDeployer: Perform the install/upgrade and verify the rollout
    - ReleaseState / DeployAction / PodSummary: Models
    - ReleaseResolutionFailure: Cluster query failed
    - DeployTimeout: Readiness wait exceeded
"""

from .deployer import ReleaseDeployer, parse_pod_listing
from .exceptions import DeployTimeout, ReleaseError, ReleaseResolutionFailure
from .models import DeployAction, PodSummary, ReleaseState
from .resolver import NOT_FOUND_SENTINEL, ReleaseResolver

__all__ = [
    "ReleaseResolver",
    "ReleaseDeployer",
    "parse_pod_listing",
    "NOT_FOUND_SENTINEL",
    "ReleaseState",
    "DeployAction",
    "PodSummary",
    "ReleaseError",
    "ReleaseResolutionFailure",
    "DeployTimeout",
]
