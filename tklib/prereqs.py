"""
tklib.prereqs: Startup prerequisite checks.

Verifies that the SDK stack is importable and that the configured AWS
credentials are accepted by STS. Failures are not retried; the caller is
expected to exit after printing the remediation text.
"""

import importlib
import logging
import shutil
from collections import namedtuple
from typing import Any, Callable, List, Optional

from tklib.errors import AwsOperationError, CredentialsError

logger = logging.getLogger(__name__)

# (distribution name, import name, description)
REQUIRED_PACKAGES = [
    ("boto3", "boto3", "AWS SDK for Python"),
    ("botocore", "botocore", "Low-level AWS client library"),
    ("pandas", "pandas", "Tabular output formatting"),
]

PrerequisiteResult = namedtuple("PrerequisiteResult", ["ok", "identity", "reason"])


def find_missing_packages(packages=None) -> List[str]:
    """
    Return the distribution names of required packages that fail to import.

    Args:
        packages: Optional override of REQUIRED_PACKAGES

    Returns:
        list: Missing distribution names, empty when all are present
    """
    missing = []
    for dist_name, import_name, _ in packages or REQUIRED_PACKAGES:
        try:
            importlib.import_module(import_name)
        except ImportError:
            missing.append(dist_name)
    return missing


def find_aws_cli() -> Optional[str]:
    """Path to the `aws` executable, or None when it is not on PATH."""
    return shutil.which("aws")


def check_prerequisites(console, client_factory: Callable[[], Any]) -> PrerequisiteResult:
    """
    Run the startup checks and print their outcome.

    Args:
        console: tklib.console.Console used for status output
        client_factory: Zero-argument callable building the AWS client

    Returns:
        PrerequisiteResult: ok flag, caller identity on success, reason on failure
    """
    console.info("Checking AWS prerequisites...")

    missing = find_missing_packages()
    if missing:
        for package in missing:
            console.error(f"{package} is not installed. Please run ./install.py first.")
        return PrerequisiteResult(False, None, "missing-packages")

    try:
        identity = client_factory().get_caller_identity()
    except CredentialsError as e:
        logger.debug("Credential check failed: %s", e)
        return _credential_failure(console, e)
    except AwsOperationError as e:
        # NoRegionError, endpoint failures and the like also mean
        # the toolkit cannot talk to AWS with the current setup
        logger.debug("Identity check failed: %s", e)
        return _credential_failure(console, e)

    console.success("AWS credentials are properly configured")
    return PrerequisiteResult(True, identity, None)


def _credential_failure(console, error: AwsOperationError) -> PrerequisiteResult:
    console.error("AWS credentials are not configured or are invalid.")
    if find_aws_cli():
        console.info("Please run 'aws configure' to set up your credentials.")
    else:
        console.info("Please run ./install.py to install the AWS CLI and configure your credentials.")
    return PrerequisiteResult(False, None, error.detail)
