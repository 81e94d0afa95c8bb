#!/usr/bin/env python3
"""Local smoke test for run_pipeline.py.

Validates that the external tools are on PATH and the required environment
variables are present before running the pipeline.

Run from project root:
    python scripts/check_prerequisites.py
"""

import os
import shutil
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

sys.path.insert(0, str(PROJECT_ROOT))
from dotenv import load_dotenv

load_dotenv(PROJECT_ROOT / ".env")

REQUIRED_ENV_VARS = [
    "BUILD_NUMBER",
    "REGISTRY_USERNAME",
]

REQUIRED_TOOLS = [
    "git",
    "mvn",
    "docker",
    "trivy",
    "helm",
    "kubectl",
]

# Credential id variables and their defaults
CREDENTIAL_ID_VARS = {
    "REGISTRY_CREDENTIALS_ID": "dockerhub-creds",
    "SONAR_CREDENTIALS_ID": "sonar-token",
}


def check_prerequisites() -> list[str]:
    errors = []

    for var in REQUIRED_ENV_VARS:
        if not os.environ.get(var):
            errors.append(f"Missing env var: {var}")

    for tool in REQUIRED_TOOLS:
        if shutil.which(tool) is None:
            errors.append(f"Missing tool on PATH: {tool}")

    from src.credentials import env_prefix

    for var, default in CREDENTIAL_ID_VARS.items():
        prefix = env_prefix(os.environ.get(var, default))
        if not (os.environ.get(f"{prefix}_PSW") or os.environ.get(prefix)):
            errors.append(f"Missing credential binding: {prefix}_USR/{prefix}_PSW or {prefix}")

    return errors


def main() -> int:
    print("Checking prerequisites ...\n")
    errors = check_prerequisites()

    if errors:
        for err in errors:
            print(f"  ✗ {err}")
        print(
            "\nSetup instructions:"
            "\n  1. Set BUILD_NUMBER and REGISTRY_USERNAME in .env or export them"
            "\n  2. Export credential bindings, e.g. DOCKERHUB_CREDS_USR/DOCKERHUB_CREDS_PSW"
            "\n     and SONAR_TOKEN"
            "\n  3. Install git, mvn, docker, trivy, helm and kubectl"
        )
        return 1

    for var in REQUIRED_ENV_VARS:
        print(f"  ✓ {var}")
    for tool in REQUIRED_TOOLS:
        print(f"  ✓ {tool}")

    print("\nAll prerequisites met. Running pipeline ...\n")

    from run_pipeline import main as run_pipeline

    sys.argv = [sys.argv[0]]
    return run_pipeline()


if __name__ == "__main__":
    sys.exit(main())
