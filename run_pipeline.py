"""CLI entry point for the deployment pipeline."""

import argparse
import os
import sys

from dotenv import load_dotenv

from src.context import ConfigurationError, StageContext
from src.logging_config import configure_logging
from src.orchestrator import DeploymentPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build, scan, publish and deploy the application"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (overrides LOG_LEVEL env var)",
    )
    parser.add_argument("--build-number", help="Build identifier (overrides BUILD_NUMBER)")
    parser.add_argument("--image-tag", help="Image tag (defaults to the build number)")
    parser.add_argument("--namespace", help="Target namespace (overrides K8S_NAMESPACE)")
    parser.add_argument("--release", dest="release_name", help="Release name")
    parser.add_argument("--chart", dest="chart_path", help="Chart path")
    parser.add_argument(
        "--severity", help="Scanner severity filter (default: HIGH,CRITICAL)"
    )
    parser.add_argument(
        "--quality-gate-timeout",
        help="Maximum wait for the quality gate verdict, e.g. 5m",
    )
    parser.add_argument(
        "--deploy-timeout", help="Maximum wait for the release to become ready, e.g. 5m"
    )
    parser.add_argument(
        "--abort-on-quality-gate",
        dest="quality_gate_abort",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail the run when the quality gate fails or times out "
        "(overrides QUALITY_GATE_ABORT)",
    )
    return parser


def main() -> int:
    load_dotenv()

    args = build_parser().parse_args()
    configure_logging(level_override=args.log_level)

    env = dict(os.environ)
    try:
        context = StageContext.from_env(
            env,
            build_number=args.build_number,
            image_tag=args.image_tag,
            namespace=args.namespace,
            release_name=args.release_name,
            chart_path=args.chart_path,
            severity=args.severity,
            quality_gate_timeout=args.quality_gate_timeout,
            deploy_timeout=args.deploy_timeout,
            quality_gate_abort=args.quality_gate_abort,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    pipeline = DeploymentPipeline(context, env)
    result = pipeline.run()

    # Print summary
    print("\n--- Pipeline Summary ---")
    for stage in result.results:
        status = {"success": "OK", "failure": "FAILED", "skipped": "SKIPPED"}[
            stage.outcome.value
        ]
        print(f"  {stage.name}: {status} ({stage.duration_seconds}s)")
        for key, value in stage.details.items():
            print(f"    {key}: {value}")
        if stage.warning:
            print(f"    warning: {stage.warning}")
        if stage.error:
            print(f"    error: {stage.error}")

    overall = "SUCCESS" if result.success else "FAILURE"
    print(f"\nResult: {overall}")
    if not result.success:
        print(
            f"Failed stage: {result.failed_stage}: {result.error_detail}",
            file=sys.stderr,
        )

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
