#!/usr/bin/env python3

"""
===========================
=       AWS TOOLKIT       =
===========================

Title: Demo Resource Cleanup
Version: v1.0.0

Description:
Removes the demo buckets created by setup_demo_resources.py. Only buckets
whose name starts with the demo prefix are considered; each one is emptied
(objects, versions and delete markers) and then deleted.

Usage:
- python scripts/cleanup_demo_resources.py            (asks for confirmation)
- python scripts/cleanup_demo_resources.py --yes      (no confirmation)
- python scripts/cleanup_demo_resources.py --dry-run  (list only)
"""

import argparse
import datetime
import sys
from pathlib import Path
from typing import Callable, List

# Add path to import utils module
try:
    # Try to import directly (if utils.py is in Python path)
    import utils
except ImportError:
    # If import fails, try to find the module relative to this script
    script_dir = Path(__file__).parent.absolute()

    # Check if we're in the scripts directory
    if script_dir.name.lower() == "scripts":
        # Add the parent directory (toolkit root) to the path
        sys.path.append(str(script_dir.parent))
    else:
        # Add the current directory to the path
        sys.path.append(str(script_dir))

    # Try import again
    try:
        import utils
    except ImportError:
        print("ERROR: Could not import the utils module. Make sure utils.py is in the AWS Toolkit directory.")
        sys.exit(1)

from tklib import config as tkconfig
from tklib.aws_client import build_client
from tklib.console import Console
from tklib.errors import AwsOperationError

BUCKET_PREVIEW = 10


def find_demo_buckets(client, prefix: str) -> List[str]:
    """Names of buckets starting with prefix (prefix match, never substring)."""
    if not prefix:
        raise ValueError("demo bucket prefix must not be empty")
    return [b.name for b in client.list_buckets() if b.name.startswith(prefix)]


def cleanup_demo_buckets(client, console, prefix: str, confirm: Callable[[], bool], dry_run: bool = False) -> int:
    """
    Delete every demo bucket after confirmation.

    Returns:
        int: Number of buckets that could not be deleted
    """
    console.info("Looking for demo S3 buckets...")
    buckets = find_demo_buckets(client, prefix)

    if not buckets:
        console.info("No demo S3 buckets found.")
        return 0

    console.echo("Found demo buckets:")
    for name in buckets:
        console.echo(f"  {name}")
    console.echo()

    if dry_run:
        console.info(f"Dry run: {len(buckets)} bucket(s) would be deleted.")
        return 0

    if not confirm():
        console.info("Bucket cleanup cancelled.")
        return 0

    failures = 0
    for name in buckets:
        console.info(f"Deleting bucket: {name}")
        try:
            removed = client.delete_bucket(name, force=True)
        except AwsOperationError as e:
            console.error(f"Failed to delete {name}: {e.detail}")
            failures += 1
            continue
        utils.log_debug(f"Removed {removed} object entries from {name}")
        console.success(f"Deleted: {name}")
    return failures


def show_remaining_resources(client, console) -> None:
    console.info("Remaining AWS resources:")
    console.echo()
    console.info("S3 Buckets:")
    with utils.handle_aws_operation("Listing remaining S3 buckets", suppress_errors=True):
        for bucket in client.list_buckets()[:BUCKET_PREVIEW]:
            console.echo(f"  {bucket.name}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete the demo AWS resources created for the toolkit.")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    parser.add_argument("--dry-run", action="store_true", help="List demo buckets without deleting them")
    return parser.parse_args(argv)


def main(argv=None, prompt: Callable[[str], str] = input, client_factory: Callable = build_client) -> int:
    args = parse_args(argv)

    logger = utils.setup_logging(tkconfig.get_log_file())
    start_time = datetime.datetime.now()
    utils.log_script_start("cleanup_demo_resources.py", "Demo resource cleanup")
    console = Console(logger, use_color=bool(tkconfig.config_value("use_color", True)))

    def confirm() -> bool:
        if args.yes:
            return True
        return utils.prompt_for_confirmation("Delete these buckets and all their contents?", prompt=prompt)

    try:
        console.echo("AWS Toolkit - Demo Resource Cleanup")
        console.echo("===================================")
        console.echo()

        console.warning("This script will delete demo AWS resources.")
        console.warning("Make sure you don't have important data in demo buckets!")
        console.echo()

        try:
            client = client_factory()
            failures = cleanup_demo_buckets(
                client, console, tkconfig.get_demo_bucket_prefix(), confirm, dry_run=args.dry_run
            )
        except AwsOperationError as e:
            console.error(f"Failed to clean up demo resources: {e.detail}")
            return 1
        except ValueError as e:
            console.error(f"Invalid demo bucket prefix in configuration: {e}")
            return 1

        console.echo()
        show_remaining_resources(client, console)
        console.echo()
        if failures:
            console.error(f"Cleanup finished with {failures} bucket(s) not deleted.")
            return 1
        console.success("Cleanup completed!")
        return 0

    except (KeyboardInterrupt, EOFError):
        console.echo()
        console.warning("Script interrupted by user")
        return 130
    finally:
        utils.log_script_end("cleanup_demo_resources.py", start_time)


if __name__ == "__main__":
    sys.exit(main())
