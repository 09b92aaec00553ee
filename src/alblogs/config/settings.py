"""
Application settings and configuration management.

Supports loading from:
1. A YAML settings file (alblogs.yaml or $ALBLOGS_CONFIG)
2. Environment variables (fallback)
"""

import os
import sys
import tempfile
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from ..exceptions import UsageError
from .constants import APP_NAME, CACHE_FILE_NAME


def user_cache_root() -> Path:
    """
    Return the per-user cache directory of the platform.

    Linux and other Unix systems use $XDG_CACHE_HOME or ~/.cache,
    macOS uses ~/Library/Caches and Windows uses %LOCALAPPDATA%.
    Falls back to the system temp directory when none can be determined.
    """
    if sys.platform == "win32":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data)
        return Path(tempfile.gettempdir())

    if sys.platform == "darwin":
        home = os.environ.get("HOME")
        if home:
            return Path(home) / "Library" / "Caches"
        return Path(tempfile.gettempdir())

    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        return Path(xdg_cache)
    home = os.environ.get("HOME")
    if home:
        return Path(home) / ".cache"
    return Path(tempfile.gettempdir())


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    section = config.get(name) or {}
    if not isinstance(section, dict):
        raise UsageError(
            f"settings section '{name}' must be a mapping, "
            f"got {type(section).__name__}"
        )
    return section


def _optional_str(section: dict[str, Any], key: str, name: str) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise UsageError(
            f"setting '{name}.{key}' must be a string, got {type(value).__name__}"
        )
    return value


def _whole_number(section: dict[str, Any], key: str, name: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        try:
            return int(value)
        except ValueError:
            pass
    raise UsageError(f"setting '{name}.{key}' must be a whole number, got {value!r}")


def default_cache_dir() -> str:
    return str(user_cache_root() / APP_NAME)


def default_temp_dir() -> str:
    return str(Path(tempfile.gettempdir()) / APP_NAME)


@dataclass
class Settings:
    """Application settings for a single alblogs run."""

    # Local directories
    cache_dir: str = field(default_factory=default_cache_dir)
    temp_dir: str = field(default_factory=default_temp_dir)

    # Field list override (defaults to the bundled fields.txt)
    fields_file: Optional[str] = None

    # AWS session
    aws_profile: Optional[str] = None
    aws_region: Optional[str] = None

    # Ingestion
    max_files: int = 1

    @property
    def cache_file(self) -> Path:
        """Path of the load balancer metadata cache file."""
        return Path(self.cache_dir) / CACHE_FILE_NAME

    def database_path(self, load_balancer: str) -> Path:
        """Default database path for a load balancer."""
        return Path(self.temp_dir) / f"{load_balancer}.db"

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = []

        if self.max_files < 1:
            errors.append(
                f"max_files must be a positive number, got {self.max_files}"
            )
        if not self.cache_dir:
            errors.append("cache_dir must not be empty")
        if not self.temp_dir:
            errors.append("temp_dir must not be empty")
        if self.fields_file and not Path(self.fields_file).is_file():
            errors.append(f"fields_file does not exist: {self.fields_file}")

        return errors

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "paths": {
                "cache_dir": self.cache_dir,
                "temp_dir": self.temp_dir,
                "fields_file": self.fields_file,
            },
            "aws": {
                "profile": self.aws_profile,
                "region": self.aws_region,
            },
            "ingestion": {
                "max_files": self.max_files,
            },
        }

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Settings":
        """
        Create Settings from configuration dictionary (e.g., from YAML).

        Raises:
            UsageError: If a section is not a mapping or a value has the
                wrong type
        """
        paths = _section(config, "paths")
        aws = _section(config, "aws")
        ingestion = _section(config, "ingestion")

        return cls(
            cache_dir=_optional_str(paths, "cache_dir", "paths") or default_cache_dir(),
            temp_dir=_optional_str(paths, "temp_dir", "paths") or default_temp_dir(),
            fields_file=_optional_str(paths, "fields_file", "paths"),
            aws_profile=_optional_str(aws, "profile", "aws"),
            aws_region=_optional_str(aws, "region", "aws"),
            max_files=_whole_number(ingestion, "max_files", "ingestion", 1),
        )

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""

        def safe_int(key: str, default: int) -> int:
            """Safely parse int from env var, using default on error."""
            try:
                return int(os.environ.get(key, str(default)))
            except ValueError:
                return default

        return cls(
            cache_dir=os.environ.get("ALBLOGS_CACHE_DIR") or default_cache_dir(),
            temp_dir=os.environ.get("ALBLOGS_TEMP_DIR") or default_temp_dir(),
            fields_file=os.environ.get("ALBLOGS_FIELDS_FILE") or None,
            aws_profile=os.environ.get("AWS_PROFILE") or None,
            aws_region=(
                os.environ.get("AWS_REGION")
                or os.environ.get("AWS_DEFAULT_REGION")
                or None
            ),
            max_files=safe_int("ALBLOGS_MAX_FILES", 1),
        )


@lru_cache
def get_settings(config_path: Optional[str] = None) -> Settings:
    """
    Get cached settings instance.

    Loads from the YAML config file if available, otherwise from env vars.

    Args:
        config_path: Optional path to a YAML config file

    Returns:
        Settings instance
    """
    from .loader import load_config

    config = load_config(config_path)
    if config:
        return Settings.from_dict(config)

    return Settings.from_env()


def clear_settings_cache() -> None:
    """Clear the cached settings (useful for testing)."""
    get_settings.cache_clear()
