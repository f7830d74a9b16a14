#!/usr/bin/env python3
# awstoolkit.py - Main menu script for the AWS Toolkit

"""
===========================
=       AWS TOOLKIT       =
===========================

Title: AWS Toolkit - Main Menu
Version: v1.0.0

Description:
Interactive menu for a fixed set of everyday S3 and EC2 operations: list
buckets, upload and download files, list instances and start / stop / reboot
an instance. Every operation talks to AWS directly through boto3; the toolkit
keeps no state of its own besides its append-only log file.

Usage:
- python awstoolkit.py                      (interactive menu)
- python awstoolkit.py --region eu-west-1   (override the region)
- python awstoolkit.py --profile dev        (use a named AWS profile)
- python awstoolkit.py --no-color           (plain output)

Exit codes:
- 0   normal exit
- 1   missing prerequisite (packages or credentials)
- 130 interrupted by the user
"""

import argparse
import datetime
import os
import sys
from enum import IntEnum
from typing import Callable, Dict, Optional

# Add the current directory to the path to ensure we can import utils
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

# Import the utility module
try:
    import utils
except ImportError:
    print("ERROR: Could not import the utils module. Make sure utils.py is in the same directory as this script.")
    sys.exit(1)

try:
    from tklib.aws_client import build_client
    from tklib.handlers import OperationHandlers
    from tklib.prereqs import check_prerequisites
except ImportError as e:
    print(f"ERROR: {e.name} is not installed. Please run ./install.py first.")
    sys.exit(1)

from tklib import config as tkconfig
from tklib.console import Console
from tklib.errors import AwsOperationError, ToolkitError

VERSION = "1.0.0"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class MenuChoice(IntEnum):
    LIST_BUCKETS = 1
    UPLOAD_FILE = 2
    DOWNLOAD_FILE = 3
    VIEW_INSTANCES = 4
    MANAGE_INSTANCE = 5
    VIEW_LOGS = 6
    EXIT = 7


MENU_LABELS = {
    MenuChoice.LIST_BUCKETS: "List all S3 buckets",
    MenuChoice.UPLOAD_FILE: "Upload file to S3 bucket",
    MenuChoice.DOWNLOAD_FILE: "Download file from S3 bucket",
    MenuChoice.VIEW_INSTANCES: "View EC2 instances",
    MenuChoice.MANAGE_INSTANCE: "Start/Stop EC2 instance",
    MenuChoice.VIEW_LOGS: "View logs",
    MenuChoice.EXIT: "Exit",
}

MENU_SECTIONS = (
    ("S3 Operations:", (MenuChoice.LIST_BUCKETS, MenuChoice.UPLOAD_FILE, MenuChoice.DOWNLOAD_FILE)),
    ("EC2 Operations:", (MenuChoice.VIEW_INSTANCES, MenuChoice.MANAGE_INSTANCE)),
    ("System:", (MenuChoice.VIEW_LOGS, MenuChoice.EXIT)),
)


def parse_choice(raw: str) -> Optional[MenuChoice]:
    """Map menu input to a MenuChoice, None when it is not 1-7."""
    try:
        return MenuChoice(int(raw.strip()))
    except ValueError:
        return None


@utils.aws_error_handler("Fetching caller identity for banner", default_return=None)
def fetch_identity(client):
    return client.get_caller_identity()


class ToolkitApp:
    """
    The main menu loop.

    Args:
        console: tklib.console.Console for all output
        client: ToolkitClient (banner identity and region)
        handlers: OperationHandlers backing the menu entries
        prompt: Line reader, input() by default
    """

    def __init__(self, console, client, handlers: OperationHandlers, prompt: Callable[[str], str] = input):
        self.console = console
        self.client = client
        self.prompt = prompt
        self.dispatch: Dict[MenuChoice, Callable[[], bool]] = {
            MenuChoice.LIST_BUCKETS: handlers.list_buckets,
            MenuChoice.UPLOAD_FILE: handlers.upload_file,
            MenuChoice.DOWNLOAD_FILE: handlers.download_file,
            MenuChoice.VIEW_INSTANCES: handlers.view_instances,
            MenuChoice.MANAGE_INSTANCE: handlers.manage_instance,
            MenuChoice.VIEW_LOGS: handlers.view_logs,
        }

    def show_banner(self) -> None:
        utils.clear_screen()
        self.console.banner(utils.format_box([
            f"AWS Toolkit v{VERSION}",
            "Everyday S3 & EC2 Operations",
        ]))
        self.console.echo()

        identity = fetch_identity(self.client)
        account = identity.account if identity else "Unknown"
        region = self.client.region or "Not set"

        self.console.highlight("AWS Account: ", account)
        self.console.highlight("AWS Region:  ", region)
        self.console.echo()

    def show_menu(self) -> None:
        self.console.header("═" * 39)
        self.console.header("           MAIN MENU OPTIONS           ")
        self.console.header("═" * 39)
        for title, choices in MENU_SECTIONS:
            self.console.echo()
            self.console.section(title)
            for choice in choices:
                self.console.echo(f"  {choice.value}) {MENU_LABELS[choice]}")
        self.console.echo()

    def run_once(self) -> Optional[int]:
        """
        Render the menu, read one choice and act on it.

        Returns:
            Exit status when the user chose to exit, otherwise None
        """
        self.show_banner()
        self.show_menu()

        raw = self.prompt(f"Please select an option (1-{len(MenuChoice)}): ")
        self.console.echo()

        choice = parse_choice(raw)
        if choice is None:
            self.console.error(f"Invalid option. Please select 1-{len(MenuChoice)}.")
        elif choice is MenuChoice.EXIT:
            self.console.success("Thank you for using AWS Toolkit!")
            return EXIT_OK
        else:
            utils.log_menu_selection(str(choice.value), MENU_LABELS[choice])
            try:
                self.dispatch[choice]()
            except ToolkitError as e:
                self.console.error(f"{MENU_LABELS[choice]} failed: {e}")

        self.console.echo()
        self.prompt("Press Enter to continue...")
        return None

    def run(self) -> int:
        """Loop until the user exits; Ctrl+C or closed input yields 130."""
        try:
            while True:
                status = self.run_once()
                if status is not None:
                    return status
        except (KeyboardInterrupt, EOFError):
            self.console.echo()
            self.console.warning("Script interrupted by user")
            return EXIT_INTERRUPTED


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="awstoolkit.py",
        description="Interactive menu for everyday S3 and EC2 operations.",
    )
    parser.add_argument("--region", help="AWS region to use (overrides configuration)")
    parser.add_argument("--profile", help="Named AWS profile to use")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--version", action="version", version=f"AWS Toolkit v{VERSION}")
    return parser.parse_args(argv)


def main(argv=None, prompt: Callable[[str], str] = input) -> int:
    """
    Set up logging, check prerequisites and run the menu.

    Returns:
        int: Process exit status
    """
    args = parse_args(argv)
    tkconfig.set_override("region", args.region)
    tkconfig.set_override("profile", args.profile)

    log_file = tkconfig.get_log_file()
    logger = utils.setup_logging(log_file)
    start_time = datetime.datetime.now()
    utils.log_script_start("awstoolkit.py", "AWS Toolkit main menu")
    utils.log_system_info()

    use_color = not args.no_color and bool(tkconfig.config_value("use_color", True))
    console = Console(logger, use_color=use_color)

    try:
        try:
            client = build_client(args.region, args.profile)
        except AwsOperationError as e:
            console.error(f"Could not create an AWS session: {e.detail}")
            console.info("Check the configured profile and region, or run 'aws configure'.")
            return EXIT_FAILURE

        result = check_prerequisites(console, lambda: client)
        if not result.ok:
            return EXIT_FAILURE

        handlers = OperationHandlers(
            client,
            console,
            log_file,
            prompt=prompt,
            object_preview_limit=tkconfig.config_int("object_preview_limit", 20),
            log_tail_lines=tkconfig.config_int("log_tail_lines", 20),
        )
        return ToolkitApp(console, client, handlers, prompt=prompt).run()

    except (KeyboardInterrupt, EOFError):
        console.echo()
        console.warning("Script interrupted by user")
        return EXIT_INTERRUPTED
    finally:
        utils.log_script_end("awstoolkit.py", start_time)


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
