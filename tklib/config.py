"""
tklib.config: Configuration singleton for the AWS Toolkit.

Provides thread-safe lazy loading of config/settings.json, environment
overrides and typed accessors for the handful of settings the toolkit reads.

Zero dependency on utils.py, uses only stdlib.
"""

import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: Dict[str, Any] = {
    "__comment": "AWS Toolkit Configuration - Customize this file for your environment",
    "region": None,
    "profile": None,
    "log_file": "logs/aws-toolkit.log",
    "log_tail_lines": 20,
    "object_preview_limit": 20,
    "demo_bucket_prefix": "aws-toolkit-demo-",
    "use_color": True,
    "aws_sdk_config": {
        "retries": {"max_attempts": 5, "mode": "standard"},
        "connect_timeout": 10,
        "read_timeout": 60,
    },
}

# Environment variable -> top-level config key
ENV_OVERRIDES = {
    "AWS_TOOLKIT_REGION": "region",
    "AWS_TOOLKIT_PROFILE": "profile",
    "AWS_TOOLKIT_LOG_FILE": "log_file",
}

# ---------------------------------------------------------------------------
# Module-level state (config singleton)
# ---------------------------------------------------------------------------

CONFIG_DATA: Dict[str, Any] = {}
_CONFIG_LOADED: bool = False
_CONFIG_LOCK: threading.Lock = threading.Lock()


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def get_toolkit_root() -> Path:
    """Return the installation directory (parent of the tklib package)."""
    return Path(__file__).parent.parent.absolute()


def _config_path() -> Path:
    """Return the absolute path to config/settings.json."""
    return get_toolkit_root() / "config" / "settings.json"


def resolve_path(value: str) -> Path:
    """
    Resolve a configured path relative to the installation directory.

    Args:
        value: Absolute or install-relative path

    Returns:
        Path: Absolute path
    """
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = get_toolkit_root() / path
    return path


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            logger.debug("Config override from %s", env_name)
            cfg[key] = value
    return cfg


def load_config() -> Dict[str, Any]:
    """
    Load configuration from config/settings.json merged over the defaults.

    A missing file yields the defaults. A malformed file is logged and also
    yields the defaults; the toolkit never refuses to start over its own
    settings file.

    Returns:
        dict: CONFIG_DATA
    """
    global CONFIG_DATA

    config_file = _config_path()
    file_data: Dict[str, Any] = {}

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                file_data = json.load(f)
            if not isinstance(file_data, dict):
                logger.error("Ignoring %s: top-level value must be an object", config_file)
                file_data = {}
            else:
                logger.debug("Configuration loaded from %s", config_file)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Error loading configuration from %s: %s", config_file, e)
            file_data = {}
    else:
        logger.warning("%s not found. Using default configuration.", config_file)

    CONFIG_DATA = _apply_env_overrides(_merge(DEFAULT_CONFIG, file_data))
    return CONFIG_DATA


def get_config() -> Dict[str, Any]:
    """
    Lazy-load configuration. First call loads from disk; subsequent calls return cached values.
    Thread-safe: uses _CONFIG_LOCK to prevent concurrent initialization.

    Returns:
        dict: CONFIG_DATA
    """
    global _CONFIG_LOADED, CONFIG_DATA
    with _CONFIG_LOCK:
        if not _CONFIG_LOADED:
            CONFIG_DATA = load_config()
            _CONFIG_LOADED = True
    return CONFIG_DATA


def reset_config() -> None:
    """Forget the cached configuration so the next access reloads it."""
    global _CONFIG_LOADED, CONFIG_DATA
    with _CONFIG_LOCK:
        _CONFIG_LOADED = False
        CONFIG_DATA = {}


def set_override(key: str, value: Any) -> None:
    """
    Override a top-level setting for the rest of the process (CLI flags).

    Args:
        key: Configuration key
        value: New value; None leaves the current value untouched
    """
    if value is None:
        return
    cfg = get_config()
    with _CONFIG_LOCK:
        cfg[key] = value


# ---------------------------------------------------------------------------
# Config value accessors
# ---------------------------------------------------------------------------


def config_value(key: str, default: Any = None, section: Optional[str] = None) -> Any:
    """
    Get a value from the configuration.

    Args:
        key: Configuration key
        default: Default value if key is not found
        section: Optional section in the configuration

    Returns:
        The configuration value or default
    """
    cfg = get_config()
    if not cfg:
        return default

    if section:
        section_data = cfg.get(section)
        if isinstance(section_data, dict) and key in section_data:
            return section_data[key]
        return default

    value = cfg.get(key, default)
    return default if value is None else value


def config_int(key: str, default: int) -> int:
    """Read a positive integer setting, falling back to default on bad values."""
    value = config_value(key, default)
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning("Config value '%s' is not an integer: %r", key, value)
        return default
    if number <= 0:
        logger.warning("Config value '%s' must be positive: %r", key, value)
        return default
    return number


def get_log_file() -> Path:
    """Absolute path of the toolkit log file."""
    return resolve_path(config_value("log_file", DEFAULT_CONFIG["log_file"]))


def get_demo_bucket_prefix() -> str:
    return config_value("demo_bucket_prefix", DEFAULT_CONFIG["demo_bucket_prefix"])


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def write_default_config(overwrite: bool = False) -> Optional[Path]:
    """
    Write the default settings file.

    Args:
        overwrite: Replace an existing file

    Returns:
        Path of the written file, or None if it already existed
    """
    config_file = _config_path()
    if config_file.exists() and not overwrite:
        return None

    config_file.parent.mkdir(parents=True, exist_ok=True)

    # Atomic write: serialize to .tmp then os.replace for crash safety
    tmp_path = config_file.with_suffix(".json.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(DEFAULT_CONFIG, f, indent=2)
    os.replace(tmp_path, config_file)

    logger.info("Wrote default configuration to %s", config_file)
    return config_file
