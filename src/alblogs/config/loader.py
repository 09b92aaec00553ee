"""
YAML configuration loader.

Supports loading settings overrides from a plain YAML file.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "ALBLOGS_CONFIG"
DEFAULT_CONFIG_PATH = Path("alblogs.yaml")


def read_config_file(file_path: Path) -> dict[str, Any]:
    """
    Read a YAML settings file.

    Args:
        file_path: Path to the YAML file

    Returns:
        Parsed configuration as dictionary (empty for an empty file)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If the file is not valid YAML or not a mapping
    """
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    try:
        with open(file_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {file_path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(
            f"Config file {file_path} must contain a mapping, "
            f"got {type(config).__name__}"
        )
    return config


def resolve_config_path(config_path: Optional[str] = None) -> Path:
    """
    Pick the settings file to use.

    Priority:
    1. Explicit path argument
    2. ALBLOGS_CONFIG environment variable
    3. ./alblogs.yaml
    """
    if config_path:
        return Path(config_path)
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load configuration from a YAML file if one is available.

    A missing file yields an empty mapping; an unreadable one is logged
    and also yields an empty mapping so environment variables apply.

    Args:
        config_path: Optional explicit path to the YAML file

    Returns:
        Configuration dictionary
    """
    path = resolve_config_path(config_path)
    if not path.exists():
        logger.debug(f"No config file at {path}, using environment")
        return {}

    try:
        config = read_config_file(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        logger.warning("Falling back to environment variables")
        return {}

    logger.debug(f"Loaded config from {path}")
    return config
