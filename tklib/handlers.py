"""
tklib.handlers: The interactive operations behind the main menu.

Each handler prompts for its parameters, validates any named remote resource
with one AWS call, performs the primary action through ToolkitClient and
reports the outcome. Handlers return True on success and False on failure;
they never terminate the process.
"""

import logging
from collections import deque
from enum import IntEnum
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional, Sequence

import pandas as pd

from tklib.aws_client import ToolkitClient
from tklib.errors import AwsOperationError, CredentialsError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class InstanceAction(IntEnum):
    START = 1
    STOP = 2
    REBOOT = 3


# action -> (state that makes the action a no-op, warning shown)
REDUNDANT_STATES = {
    InstanceAction.START: ("running", "Instance is already running."),
    InstanceAction.STOP: ("stopped", "Instance is already stopped."),
}


def render_table(rows: Sequence[Sequence], columns: List[str]) -> str:
    """
    Format rows as a plain-text table.

    Args:
        rows: Row values, one sequence per row
        columns: Column headers

    Returns:
        str: Table text (headers only when rows is empty)
    """
    df = pd.DataFrame(list(rows), columns=columns)
    if df.empty:
        return "  ".join(columns)
    return df.fillna("-").to_string(index=False)


def _format_time(value) -> str:
    if value is None:
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime(TIMESTAMP_FORMAT)
    return str(value)


def default_download_path(key: str) -> str:
    """Local destination used when the user leaves the path blank."""
    name = PurePosixPath(key).name or key.strip("/").replace("/", "_")
    return f"./{name}"


class OperationHandlers:
    """
    The six menu operations.

    Args:
        client: AWS client used for every remote call
        console: tklib.console.Console for status output
        log_file: Path of the toolkit log (for view_logs)
        prompt: Line reader, input() by default
        object_preview_limit: Objects listed before a download
        log_tail_lines: Log lines shown by view_logs
    """

    def __init__(
        self,
        client: ToolkitClient,
        console,
        log_file: Path,
        prompt: Callable[[str], str] = input,
        object_preview_limit: int = 20,
        log_tail_lines: int = 20,
    ):
        self.client = client
        self.console = console
        self.log_file = Path(log_file)
        self.prompt = prompt
        self.object_preview_limit = object_preview_limit
        self.log_tail_lines = log_tail_lines

    def _ask(self, text: str) -> str:
        return self.prompt(text).strip()

    # -----------------------------------------------------------------------
    # S3
    # -----------------------------------------------------------------------

    def list_buckets(self) -> bool:
        self.console.header("📦 Listing S3 Buckets")
        self.console.echo()

        try:
            buckets = self.client.list_buckets()
        except AwsOperationError as e:
            self.console.error(f"Failed to list S3 buckets. Check your permissions. {e.detail}")
            return False

        if not buckets:
            self.console.warning("No S3 buckets found.")
            return True

        rows = [(_format_time(b.creation_date), b.name) for b in buckets]
        self.console.table(render_table(rows, ["Creation Date", "Bucket Name"]))
        self.console.success("S3 buckets listed successfully")
        return True

    def _show_available_buckets(self) -> None:
        self.console.info("Available S3 buckets:")
        try:
            buckets = self.client.list_buckets()
        except AwsOperationError as e:
            self.console.warning(f"Could not list buckets: {e.detail}")
            return
        if not buckets:
            self.console.echo("  (none)")
        for bucket in buckets:
            self.console.echo(f"  - {bucket.name}")
        self.console.echo()

    def _validate_bucket(self, bucket: str) -> bool:
        try:
            exists = self.client.bucket_exists(bucket)
        except CredentialsError as e:
            self.console.error(f"AWS rejected the configured credentials. {e.detail}")
            return False
        except AwsOperationError as e:
            # Malformed names fail client-side validation before any request
            logger.debug("Bucket check failed for %r: %s", bucket, e)
            exists = False
        if not exists:
            self.console.error(f"Bucket '{bucket}' does not exist or you don't have access.")
            return False
        return True

    def upload_file(self) -> bool:
        self.console.header("📤 Upload File to S3")
        self.console.echo()

        file_path = self._ask("Enter the full path to the file you want to upload: ")
        source = Path(file_path).expanduser()
        if not file_path or not source.is_file():
            self.console.error(f"File does not exist: {file_path}")
            return False

        self._show_available_buckets()

        bucket = self._ask("Enter the S3 bucket name: ")
        if not self._validate_bucket(bucket):
            return False

        key = self._ask("Enter S3 key/path (press Enter for filename only): ")
        if not key:
            key = source.name

        destination = f"s3://{bucket}/{key}"
        self.console.info(f"Uploading {file_path} to {destination}...")
        try:
            self.client.upload_file(str(source), bucket, key)
        except AwsOperationError as e:
            self.console.error(f"Failed to upload file: {e.detail}")
            return False

        self.console.success(f"File uploaded successfully to {destination}")
        return True

    def download_file(self) -> bool:
        self.console.header("📥 Download File from S3")
        self.console.echo()

        self._show_available_buckets()

        bucket = self._ask("Enter the S3 bucket name: ")
        if not self._validate_bucket(bucket):
            return False

        self.console.info(f"Contents of bucket '{bucket}':")
        try:
            objects = self.client.list_objects(bucket, limit=self.object_preview_limit)
        except AwsOperationError as e:
            self.console.warning(f"Could not list bucket contents: {e.detail}")
        else:
            if objects:
                rows = [(_format_time(o.last_modified), o.size, o.key) for o in objects]
                self.console.table(render_table(rows, ["Last Modified", "Size", "Key"]))
            else:
                self.console.echo("  (empty)")
        self.console.echo()

        key = self._ask("Enter the S3 key/path of the file to download: ")
        if not key:
            self.console.error("An S3 key is required.")
            return False

        local_path = self._ask("Enter local destination path (press Enter for current directory): ")
        if not local_path:
            local_path = default_download_path(key)
        target = Path(local_path).expanduser()
        if target.is_dir():
            target = target / PurePosixPath(default_download_path(key)).name
            local_path = str(target)

        source = f"s3://{bucket}/{key}"
        self.console.info(f"Downloading {source} to {local_path}...")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            self.client.download_file(bucket, key, str(target))
        except (AwsOperationError, OSError) as e:
            detail = e.detail if isinstance(e, AwsOperationError) else str(e)
            self.console.error(f"Failed to download file: {detail}")
            return False

        self.console.success(f"File downloaded successfully to {local_path}")
        return True

    # -----------------------------------------------------------------------
    # EC2
    # -----------------------------------------------------------------------

    def _instance_table(self, instances, include_type: bool = True) -> str:
        if include_type:
            rows = [(i.instance_id, i.state, i.instance_type, i.name or "-") for i in instances]
            return render_table(rows, ["Instance ID", "State", "Type", "Name"])
        rows = [(i.instance_id, i.state, i.name or "-") for i in instances]
        return render_table(rows, ["Instance ID", "State", "Name"])

    def view_instances(self) -> bool:
        self.console.header("🖥️  EC2 Instances Overview")
        self.console.echo()

        try:
            instances = self.client.describe_instances()
        except AwsOperationError as e:
            self.console.error(f"Failed to describe EC2 instances: {e.detail}")
            return False

        if not instances:
            self.console.warning("No EC2 instances found in the current region.")
            return True

        self.console.table(self._instance_table(instances))
        self.console.success("EC2 instances retrieved successfully")
        return True

    def manage_instance(self) -> bool:
        self.console.header("⚡ Start/Stop EC2 Instance")
        self.console.echo()

        self.console.info("Current EC2 instances:")
        try:
            instances = self.client.describe_instances()
        except AwsOperationError as e:
            self.console.warning(f"Could not describe instances: {e.detail}")
        else:
            self.console.table(self._instance_table(instances, include_type=False))
        self.console.echo()

        instance_id = self._ask("Enter the EC2 Instance ID: ")
        try:
            current_state = self.client.get_instance_state(instance_id)
        except AwsOperationError as e:
            logger.debug("Instance lookup failed for %r: %s", instance_id, e)
            self.console.error(f"Instance '{instance_id}' not found or you don't have access.")
            return False

        self.console.info(f"Current state of {instance_id}: {current_state}")

        self.console.echo()
        self.console.echo("Available actions:")
        self.console.echo("  1) Start instance")
        self.console.echo("  2) Stop instance")
        self.console.echo("  3) Reboot instance")
        self.console.echo()

        action = parse_action(self._ask("Select action (1-3): "))
        if action is None:
            self.console.error("Invalid selection")
            return False

        return self.apply_instance_action(action, instance_id, current_state)

    def apply_instance_action(self, action: InstanceAction, instance_id: str, current_state: str) -> bool:
        """
        Issue a start/stop/reboot call unless the instance is already in the target state.

        Reboot is never short-circuited.
        """
        redundant = REDUNDANT_STATES.get(action)
        if redundant and current_state == redundant[0]:
            self.console.warning(redundant[1])
            return True

        calls = {
            InstanceAction.START: ("Starting", "start", self.client.start_instance),
            InstanceAction.STOP: ("Stopping", "stop", self.client.stop_instance),
            InstanceAction.REBOOT: ("Rebooting", "reboot", self.client.reboot_instance),
        }
        progress, verb, call = calls[action]

        self.console.info(f"{progress} instance {instance_id}...")
        try:
            call(instance_id)
        except AwsOperationError as e:
            self.console.error(f"Failed to {verb} instance: {e.detail}")
            return False

        self.console.success(f"Instance {verb} command sent successfully")
        return True

    # -----------------------------------------------------------------------
    # Logs
    # -----------------------------------------------------------------------

    def view_logs(self) -> bool:
        self.console.header("📋 Recent Log Entries")
        self.console.echo()

        if self.log_file.is_file():
            with open(self.log_file, "r", encoding="utf-8", errors="replace") as f:
                for line in deque(f, maxlen=self.log_tail_lines):
                    self.console.echo(line.rstrip("\n"))
        else:
            self.console.warning("No log file found.")

        self.console.echo()
        self.prompt("Press Enter to continue...")
        return True


def parse_action(raw: str) -> Optional[InstanceAction]:
    """Map the sub-menu input to an InstanceAction, None when invalid."""
    try:
        return InstanceAction(int(raw))
    except ValueError:
        return None
