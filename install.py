#!/usr/bin/env python3
# install.py - Prerequisite checker and installer for the AWS Toolkit

"""
===========================
=       AWS TOOLKIT       =
===========================

Title: AWS Toolkit - Installation
Version: v1.0.0

Description:
Checks and installs everything the toolkit needs before first use: a
supported operating system and Python version, the auxiliary download tools,
the Python packages, the AWS CLI and a working set of AWS credentials. Also
creates the logs/config/temp directories and the default settings file.

Usage:
- python install.py                 (interactive)
- python install.py --yes           (accept every offer to install/configure)
- python install.py --skip-aws-cli  (do not check or install the AWS CLI)

Exit codes:
- 0   installation completed
- 1   a prerequisite is missing and was not installed
- 130 interrupted by the user
"""

import argparse
import datetime
import importlib
import os
import platform
import re
import shutil
import stat
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

# Add the current directory to the path to ensure we can import utils
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

try:
    import utils
except ImportError:
    print("ERROR: Could not import the utils module. Make sure utils.py is in the same directory as this script.")
    sys.exit(1)

from tklib import config as tkconfig
from tklib.console import Console
from tklib.errors import AwsOperationError, PrerequisiteError
from tklib.prereqs import REQUIRED_PACKAGES, find_missing_packages

MIN_PYTHON = (3, 8)
RECOMMENDED_PYTHON = (3, 10)

# Download helpers needed to install the AWS CLI, per OS family
AUX_TOOLS = {
    "Linux": ("curl", "unzip"),
    "macOS": ("curl",),
    "Windows": (),
}

AWS_CLI_LINUX_URL = "https://awscli.amazonaws.com/awscli-exe-linux-x86_64.zip"
AWS_CLI_MACOS_URL = "https://awscli.amazonaws.com/AWSCLIV2.pkg"

EXECUTABLES = (
    "awstoolkit.py",
    "install.py",
    "scripts/setup_demo_resources.py",
    "scripts/cleanup_demo_resources.py",
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class Installer:
    """
    Runs the installation steps in order.

    Every step either succeeds, prints a warning and lets installation go on,
    or raises PrerequisiteError which aborts the run with exit status 1.

    Args:
        console: tklib.console.Console for status output
        root: Installation directory
        assume_yes: Answer yes to every confirmation
        prompt: Line reader, input() by default
        run: subprocess.run compatible callable
        which: shutil.which compatible callable
    """

    def __init__(
        self,
        console,
        root: Path,
        assume_yes: bool = False,
        prompt: Callable[[str], str] = input,
        run: Callable = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.console = console
        self.root = Path(root)
        self.assume_yes = assume_yes
        self.prompt = prompt
        self.run = run
        self.which = which
        self.os_name = None

    def confirm(self, message: str) -> bool:
        if self.assume_yes:
            return True
        return utils.prompt_for_confirmation(message, default=False, prompt=self.prompt)

    # -- checks ---------------------------------------------------------------

    def check_os(self, system: Optional[str] = None) -> str:
        self.console.info("Checking operating system...")
        system = system or platform.system()

        if system == "Linux":
            self.os_name = "Linux"
            self.console.success("Running on Linux")
        elif system == "Darwin":
            self.os_name = "macOS"
            self.console.success("Running on macOS")
        elif system == "Windows" or system.startswith(("CYGWIN", "MINGW", "MSYS")):
            self.os_name = "Windows"
            self.console.success("Running on Windows")
        else:
            raise PrerequisiteError(f"Unsupported operating system: {system}")
        return self.os_name

    def check_python(self, version_info=None) -> None:
        self.console.info("Checking Python version...")
        version = tuple(version_info or sys.version_info)[:3]
        text = ".".join(str(part) for part in version)

        if version[:2] < MIN_PYTHON:
            raise PrerequisiteError(
                f"Python {text} detected. Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]} or newer is required."
            )
        if version[:2] < RECOMMENDED_PYTHON:
            self.console.warning(
                f"Python {text} detected. Version {RECOMMENDED_PYTHON[0]}.{RECOMMENDED_PYTHON[1]}+ recommended."
            )
        else:
            self.console.success(f"Python {text} is compatible")

    def check_tools(self) -> None:
        self.console.info("Checking required tools...")
        missing = [tool for tool in AUX_TOOLS.get(self.os_name, ()) if not self.which(tool)]
        if missing:
            self.console.info("Please install these tools and run the installer again")
            raise PrerequisiteError(f"Missing required tools: {' '.join(missing)}")
        self.console.success("All required tools are available")

    # -- python packages -------------------------------------------------------

    def ensure_packages(self) -> None:
        self.console.info("Checking Python packages...")
        missing = find_missing_packages()
        if not missing:
            self.console.success("All required Python packages are installed")
            return

        descriptions = {dist: desc for dist, _, desc in REQUIRED_PACKAGES}
        self.console.warning("The following packages are missing:")
        for name in missing:
            self.console.echo(f"  - {name} - {descriptions.get(name, '')}")

        if not self.confirm(f"Install these {len(missing)} packages now?"):
            raise PrerequisiteError(
                f"Required Python packages are missing. Install them with: pip install {' '.join(missing)}"
            )

        for name in missing:
            self.console.info(f"Installing {name}...")
            try:
                self.run(
                    [sys.executable, "-m", "pip", "install", name],
                    capture_output=True,
                    text=True,
                    check=True,
                )
            except subprocess.CalledProcessError as e:
                stderr = (e.stderr or "").strip()
                raise PrerequisiteError(f"Failed to install {name}: {stderr or e}") from e
            self.console.success(f"{name} installed successfully")

        importlib.invalidate_caches()
        still_missing = find_missing_packages()
        if still_missing:
            raise PrerequisiteError(
                f"Installed but could not import: {', '.join(still_missing)}. Check your Python environment."
            )

    # -- AWS CLI ---------------------------------------------------------------

    def aws_cli_version(self) -> Optional[str]:
        """Installed AWS CLI version, or None when `aws` is not on PATH."""
        if not self.which("aws"):
            return None
        try:
            result = self.run(["aws", "--version"], capture_output=True, text=True, check=False)
        except OSError as e:
            utils.log_warning(f"Could not run 'aws --version': {e}")
            return None
        output = f"{result.stdout or ''} {result.stderr or ''}"
        match = re.search(r"aws-cli/(\S+)", output)
        return match.group(1) if match else "unknown"

    def ensure_aws_cli(self) -> None:
        self.console.info("Checking AWS CLI installation...")
        version = self.aws_cli_version()
        if version:
            self.console.success(f"AWS CLI version {version} is installed")
            return

        self.console.warning("AWS CLI is not installed")
        if not self.confirm("Would you like to install AWS CLI?"):
            raise PrerequisiteError("AWS CLI is required. Please install it manually and run this script again.")

        self.install_aws_cli()

        if self.os_name != "Windows" and not self.which("aws"):
            raise PrerequisiteError("AWS CLI installation finished but 'aws' is still not on PATH.")

    def install_aws_cli(self) -> None:
        self.console.info("Installing AWS CLI...")

        if self.os_name == "Windows":
            self.console.warning("Please install AWS CLI manually from: https://aws.amazon.com/cli/")
            self.console.info("Or use: winget install Amazon.AWSCLI")
            return

        try:
            if self.os_name == "Linux":
                with tempfile.TemporaryDirectory() as work_dir:
                    archive = os.path.join(work_dir, "awscliv2.zip")
                    self.run(["curl", "-sSL", AWS_CLI_LINUX_URL, "-o", archive], check=True)
                    self.run(["unzip", "-q", archive, "-d", work_dir], check=True)
                    self.run(["sudo", os.path.join(work_dir, "aws", "install")], check=True)
                self.console.success("AWS CLI installed successfully")
            elif self.which("brew"):
                self.run(["brew", "install", "awscli"], check=True)
                self.console.success("AWS CLI installed via Homebrew")
            else:
                self.console.info("Homebrew not found. Installing AWS CLI package...")
                with tempfile.TemporaryDirectory() as work_dir:
                    package = os.path.join(work_dir, "AWSCLIV2.pkg")
                    self.run(["curl", "-sSL", AWS_CLI_MACOS_URL, "-o", package], check=True)
                    self.run(["sudo", "installer", "-pkg", package, "-target", "/"], check=True)
                self.console.success("AWS CLI installed successfully")
        except (subprocess.CalledProcessError, OSError) as e:
            raise PrerequisiteError(f"AWS CLI installation failed: {e}") from e

    # -- credentials -------------------------------------------------------------

    def check_credentials(self) -> bool:
        self.console.info("Checking AWS credentials...")
        from tklib.aws_client import build_client

        try:
            identity = build_client().get_caller_identity()
        except AwsOperationError as e:
            utils.log_debug(f"Credential check failed: {e}")
            self.console.warning("AWS credentials are not configured")
            return False

        self.console.success("AWS credentials are configured")
        self.console.info(f"Account ID: {identity.account}")
        self.console.info(f"User/Role: {identity.arn}")
        return True

    def ensure_credentials(self) -> None:
        if self.check_credentials():
            return

        if not self.confirm("Would you like to configure AWS credentials now?"):
            self.console.warning("AWS credentials need to be configured before using the toolkit.")
            self.console.info("Run 'aws configure' manually when ready.")
            return

        if not self.which("aws"):
            raise PrerequisiteError("The AWS CLI is required to run 'aws configure'.")

        self.console.info("Starting AWS CLI configuration...")
        self.console.warning("You'll need your AWS Access Key ID and Secret Access Key")
        self.console.info("You can find these in the AWS Console under IAM > Users > Security Credentials")
        self.console.echo()

        try:
            self.run(["aws", "configure"], check=False)
        except OSError as e:
            raise PrerequisiteError(f"Could not run 'aws configure': {e}") from e

        if not self.check_credentials():
            raise PrerequisiteError("AWS credentials configuration failed")
        self.console.success("AWS credentials configured successfully")

    # -- filesystem --------------------------------------------------------------

    def create_directories(self) -> None:
        self.console.info("Creating directory structure...")
        for directory in utils.ensure_directory_structure(self.root):
            self.console.success(f"Created directory: {directory.name}")

        written = tkconfig.write_default_config()
        if written:
            self.console.success(f"Created default configuration: {written.relative_to(self.root)}")

    def set_permissions(self) -> List[Path]:
        """Add execute bits to the entry points (POSIX only)."""
        if os.name != "posix":
            return []

        self.console.info("Setting file permissions...")
        changed = []
        for name in EXECUTABLES:
            path = self.root / name
            if not path.is_file():
                continue
            mode = path.stat().st_mode
            path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            changed.append(path)
            self.console.success(f"Made {name} executable")
        return changed

    # -- driver ------------------------------------------------------------------

    def run_all(self, skip_aws_cli: bool = False) -> None:
        self.check_os()
        self.check_python()
        if not skip_aws_cli:
            self.check_tools()
        self.ensure_packages()
        if skip_aws_cli:
            self.console.info("Skipping AWS CLI check (--skip-aws-cli)")
        else:
            self.ensure_aws_cli()
        self.ensure_credentials()
        self.create_directories()
        self.set_permissions()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="install.py",
        description="Check and install the AWS Toolkit prerequisites.",
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Answer yes to every prompt")
    parser.add_argument("--skip-aws-cli", action="store_true", help="Do not check for or install the AWS CLI")
    return parser.parse_args(argv)


def main(argv=None, prompt: Callable[[str], str] = input, run: Callable = subprocess.run) -> int:
    """
    Run the installer.

    Returns:
        int: Process exit status
    """
    args = parse_args(argv)
    root = tkconfig.get_toolkit_root()

    logger = utils.setup_logging(tkconfig.get_log_file())
    start_time = datetime.datetime.now()
    utils.log_script_start("install.py", "AWS Toolkit installation")
    utils.log_system_info()

    console = Console(logger, use_color=bool(tkconfig.config_value("use_color", True)))
    installer = Installer(console, root, assume_yes=args.yes, prompt=prompt, run=run)

    utils.clear_screen()
    console.banner(utils.format_box(["AWS Toolkit - Installation", "Prerequisites Checker"]))
    console.echo()
    console.header("Starting AWS Toolkit installation...")
    console.echo()

    try:
        installer.run_all(skip_aws_cli=args.skip_aws_cli)
    except PrerequisiteError as e:
        console.error(str(e))
        return EXIT_FAILURE
    except (KeyboardInterrupt, EOFError):
        console.echo()
        console.warning("Installation interrupted by user")
        return EXIT_INTERRUPTED
    finally:
        utils.log_script_end("install.py", start_time)

    console.echo()
    console.success("Installation completed successfully!")
    console.echo()
    console.info("You can now run the AWS Toolkit with: ./awstoolkit.py")
    console.info("Or make it globally available by adding it to your PATH")
    console.echo()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
