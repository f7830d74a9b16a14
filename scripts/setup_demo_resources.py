#!/usr/bin/env python3

"""
===========================
=       AWS TOOLKIT       =
===========================

Title: Demo Resource Setup
Version: v1.0.0

Description:
Creates a small set of sample AWS resources to try the toolkit against: one
S3 bucket named <demo prefix><unix epoch seconds> holding demo-file.txt. Then
shows the buckets and EC2 instances currently in the account.

Usage:
- python scripts/setup_demo_resources.py         (asks for confirmation)
- python scripts/setup_demo_resources.py --yes   (no confirmation)
"""

import argparse
import datetime
import sys
from pathlib import Path
from typing import Callable

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

DEMO_KEY = "demo-file.txt"
BUCKET_PREVIEW = 10
INSTANCE_PREVIEW = 15


def demo_bucket_name(prefix: str, now: datetime.datetime) -> str:
    return f"{prefix}{int(now.timestamp())}"


def build_demo_body(region: str, now: datetime.datetime) -> str:
    return (
        "This is a demo file created by AWS Toolkit\n"
        f"Timestamp: {now.strftime('%Y-%m-%d %H:%M:%S')}\n"
        f"Region: {region}\n"
    )


def create_demo_bucket(client, console, prefix: str, now=None) -> str:
    """
    Create the demo bucket and upload the sample file into it.

    Returns:
        str: Name of the bucket that was created
    """
    now = now or datetime.datetime.now()
    bucket = demo_bucket_name(prefix, now)
    region = client.region or "us-east-1"

    console.info(f"Creating demo S3 bucket: {bucket}")
    client.create_bucket(bucket)
    client.put_text_object(bucket, DEMO_KEY, build_demo_body(region, now))

    console.success(f"Demo S3 bucket created: {bucket}")
    console.echo(f"  - Contains: {DEMO_KEY}")
    console.echo("  - You can test download functionality with this file")
    return bucket


def show_current_resources(client, console) -> None:
    console.info("Current AWS resources in your account:")
    console.echo()

    console.info("S3 Buckets:")
    try:
        for bucket in client.list_buckets()[:BUCKET_PREVIEW]:
            console.echo(f"  {bucket.name}")
    except AwsOperationError as e:
        console.warning(f"Could not list S3 buckets: {e.detail}")
    console.echo()

    console.info("EC2 Instances:")
    try:
        instances = client.describe_instances()[:INSTANCE_PREVIEW]
    except AwsOperationError as e:
        console.warning(f"Could not describe EC2 instances: {e.detail}")
        return
    if not instances:
        console.echo("  (none)")
    for inst in instances:
        console.echo(f"  {inst.instance_id}  {inst.state:<10}  {inst.instance_type}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create demo AWS resources for the toolkit.")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")
    return parser.parse_args(argv)


def main(argv=None, prompt: Callable[[str], str] = input, client_factory: Callable = build_client) -> int:
    args = parse_args(argv)

    logger = utils.setup_logging(tkconfig.get_log_file())
    start_time = datetime.datetime.now()
    utils.log_script_start("setup_demo_resources.py", "Demo resource setup")
    console = Console(logger, use_color=bool(tkconfig.config_value("use_color", True)))

    try:
        console.echo("AWS Toolkit - Demo Resource Setup")
        console.echo("=================================")
        console.echo()

        console.warning("This script will create demo AWS resources that may incur charges.")
        if not args.yes and not utils.prompt_for_confirmation(prompt=prompt):
            console.info("Setup cancelled.")
            return 0

        console.echo()
        try:
            client = client_factory()
            create_demo_bucket(client, console, tkconfig.get_demo_bucket_prefix())
        except AwsOperationError as e:
            console.error(f"Failed to create demo resources: {e.detail}")
            return 1

        console.echo()
        show_current_resources(client, console)
        console.echo()
        console.success("Demo setup completed!")
        console.info("You can now test the AWS Toolkit with these resources.")
        return 0

    except (KeyboardInterrupt, EOFError):
        console.echo()
        console.warning("Script interrupted by user")
        return 130
    finally:
        utils.log_script_end("setup_demo_resources.py", start_time)


if __name__ == "__main__":
    sys.exit(main())
