"""Pipeline orchestration for build, scan and release.

Connects the command runner, credential scope, quality gate, release
resolver and archiver into a single ordered run with fail-fast ordinary
stages, always-run cleanup stages and structured results.
"""

from .engine import PipelineEngine, StageListener
from .models import PipelineRun, Stage, StageOutcome, StageResult
from .pipeline import DeploymentPipeline
from .reporting import RunReporter

__all__ = [
    "DeploymentPipeline",
    "PipelineEngine",
    "StageListener",
    "RunReporter",
    "PipelineRun",
    "Stage",
    "StageOutcome",
    "StageResult",
]
