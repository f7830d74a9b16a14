#!/usr/bin/env python3
"""
===========================
=       AWS TOOLKIT       =
===========================

Title: AWS Toolkit Utilities Module
Version: v1.0.0

Description:
Shared utility functions for the AWS Toolkit entry points (main menu,
installer and demo scripts). This module provides logging setup and the
log helpers, screen helpers, directory handling, confirmation prompts and the
standardized AWS error-handling decorator / context manager.
"""

import datetime
import logging
import os
import platform
import sys
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar

from tklib.config import get_toolkit_root

LOGGER_NAME = "aws_toolkit"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Library loggers that share the toolkit log file
_LIBRARY_LOGGERS = ("tklib",)

# Directories the toolkit expects under its installation directory
TOOLKIT_DIRECTORIES = ("logs", "config", "temp")

# Global logger instance
logger = None


def setup_logging(log_file: Path, level: int = logging.INFO) -> logging.Logger:
    """
    Configure the toolkit logger to append to log_file.

    Each record becomes one line: ``[YYYY-MM-DD HH:MM:SS] [LEVEL] message``.
    The file is opened in append mode and never rotated.

    Args:
        log_file: Path of the log file (parent directories are created)
        level: Minimum level written to the file

    Returns:
        logging.Logger: Configured logger instance
    """
    global logger

    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    for name in (LOGGER_NAME,) + _LIBRARY_LOGGERS:
        target = logging.getLogger(name)
        _close_handlers(target)
        target.setLevel(logging.DEBUG)
        target.propagate = False
        target.addHandler(file_handler)

    logger = logging.getLogger(LOGGER_NAME)
    return logger


def shutdown_logging() -> None:
    """Detach and close every handler installed by setup_logging()."""
    global logger
    for name in (LOGGER_NAME,) + _LIBRARY_LOGGERS:
        _close_handlers(logging.getLogger(name))
    logger = None


def _close_handlers(target: logging.Logger) -> None:
    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()


def get_logger() -> logging.Logger:
    """
    Get the current logger instance.
    If setup_logging() has not yet been called, returns a logger with a
    NullHandler so that library usage does not emit spurious output.

    Returns:
        logging.Logger: Logger instance
    """
    if logger is not None:
        return logger
    _null_logger = logging.getLogger(LOGGER_NAME)
    if not _null_logger.handlers:
        _null_logger.addHandler(logging.NullHandler())
    return _null_logger


# Do NOT call setup_logging() at module import time.
# Entry points call utils.setup_logging() explicitly once the log path is known.


def log_error(error_message: str, error_obj: Optional[Exception] = None) -> None:
    """
    Log an error message to the log file.

    Args:
        error_message: The error message
        error_obj: Optional exception object
    """
    current_logger = get_logger()
    if error_obj:
        current_logger.error(f"{error_message}: {str(error_obj)}")
        current_logger.debug(f"Exception details: {error_obj}", exc_info=True)
    else:
        current_logger.error(error_message)


def log_warning(warning_message: str) -> None:
    get_logger().warning(warning_message)


def log_debug(debug_message: str) -> None:
    get_logger().debug(debug_message)


def log_script_start(script_name: str, description: str = "") -> None:
    """
    Log the start of a script execution.

    Args:
        script_name: Name of the script being executed
        description: Optional description of the script's purpose
    """
    current_logger = get_logger()
    suffix = f" - {description}" if description else ""
    current_logger.info(f"SCRIPT START: {script_name}{suffix}")


def log_script_end(script_name: str, start_time: Optional[datetime.datetime] = None) -> None:
    """
    Log the end of a script execution.

    Args:
        script_name: Name of the script that was executed
        start_time: Optional start time to calculate duration
    """
    current_logger = get_logger()
    if start_time:
        duration = datetime.datetime.now() - start_time
        current_logger.info(f"SCRIPT END: {script_name} (duration {duration})")
    else:
        current_logger.info(f"SCRIPT END: {script_name}")


def log_system_info() -> None:
    """Log system information at debug level."""
    current_logger = get_logger()
    current_logger.debug(f"Platform: {platform.system()} {platform.release()}")
    current_logger.debug(f"Python version: {sys.version.split()[0]}")
    current_logger.debug(f"Working directory: {os.getcwd()}")


def log_menu_selection(menu_path: str, selection_name: str) -> None:
    """
    Log menu selections for user activity tracking.

    Args:
        menu_path: Menu number
        selection_name: Name of the selected option
    """
    get_logger().info(f"MENU SELECTION: {menu_path} - {selection_name}")


# =============================================================================
# SCREEN AND PROMPT HELPERS
# =============================================================================


def clear_screen() -> None:
    """
    Clear the terminal screen using ANSI escape codes (avoids os.system shell call).
    Skipped when stdout is not a terminal.
    """
    if sys.stdout.isatty():
        print("\033[2J\033[H", end="", flush=True)


def format_box(lines: Iterable[str], width: int = 66) -> str:
    """Return a multi-line box, one centred row per entry."""
    rows = ["╔" + "═" * (width - 2) + "╗"]
    for text in lines:
        padding = (width - len(text) - 2) // 2
        rows.append("║" + " " * padding + text + " " * (width - len(text) - padding - 2) + "║")
    rows.append("╚" + "═" * (width - 2) + "╝")
    return "\n".join(rows)


def prompt_for_confirmation(
    message: str = "Do you want to continue?",
    default: bool = False,
    prompt: Callable[[str], str] = input,
) -> bool:
    """
    Prompt the user for confirmation.

    Args:
        message: Message to display
        default: Default response if user just presses Enter
        prompt: Line reader (input() by default)

    Returns:
        bool: True if confirmed, False otherwise
    """
    default_prompt = " (Y/n): " if default else " (y/N): "
    response = prompt(f"{message}{default_prompt}").strip().lower()

    if not response:
        return default

    return response in ["y", "yes"]


# =============================================================================
# DIRECTORY HANDLING
# =============================================================================


def ensure_directory_structure(base_dir: Optional[Path] = None) -> list:
    """
    Ensure the logs, config and temp directories exist.

    Args:
        base_dir: Installation directory (default: toolkit root)

    Returns:
        list: Directories that were created by this call
    """
    base_dir = Path(base_dir) if base_dir else get_toolkit_root()
    created = []
    for name in TOOLKIT_DIRECTORIES:
        directory = base_dir / name
        if not directory.is_dir():
            directory.mkdir(parents=True, exist_ok=True)
            created.append(directory)
    return created


# =============================================================================
# STANDARDIZED ERROR HANDLING
# =============================================================================

# TypeVar for generic return types
T = TypeVar("T")


def _describe_error(operation_name: str, e: Exception) -> str:
    # Import here to keep utils importable before boto3 is installed
    from botocore.exceptions import BotoCoreError, ClientError

    from tklib.aws_client import translate_error
    from tklib.errors import AwsOperationError, CredentialsError

    if isinstance(e, (ClientError, BotoCoreError)):
        e = translate_error(operation_name, e)
    if isinstance(e, CredentialsError):
        return (
            f"{operation_name}: No valid AWS credentials found. "
            "Please configure credentials using 'aws configure' or environment variables."
        )
    if isinstance(e, AwsOperationError):
        return f"{operation_name}: AWS error {e.detail}"
    return f"{operation_name}: Unexpected error: {e}"


def aws_error_handler(
    operation_name: str,
    default_return: Any = None,
    reraise: bool = False,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for standardized AWS error handling.

    Logs the failure (credential problems, AWS error codes, anything else)
    and either returns default_return or re-raises.

    Args:
        operation_name: Human-readable operation description for logging
        default_return: Value to return on error (if not reraising)
        reraise: Whether to re-raise the exception after logging

    Returns:
        Decorator function that wraps the target function

    Example:
        @aws_error_handler("Fetching caller identity", default_return=None)
        def fetch_identity(client):
            return client.get_caller_identity()
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                log_error(_describe_error(operation_name, e))
                if reraise:
                    raise
                return default_return

        return wrapper

    return decorator


@contextmanager
def handle_aws_operation(operation_name: str, suppress_errors: bool = False):
    """
    Context manager for AWS operations with standardized error handling.

    Args:
        operation_name: Human-readable operation description for logging
        suppress_errors: Whether to suppress exceptions (False = reraise)

    Example:
        with handle_aws_operation("Listing demo buckets", suppress_errors=True):
            buckets = client.list_buckets()
    """
    try:
        yield
    except Exception as e:
        log_error(_describe_error(operation_name, e))
        if not suppress_errors:
            raise
