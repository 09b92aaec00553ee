"""Configuration module."""

from .constants import (
    CANDIDATE_WINDOW,
    FIELD_DOCS_URL,
    INTEGER_FIELDS,
    LOG_FILE_SUFFIX,
    REAL_FIELDS,
    REQUEST_IDENTITY_FIELDS,
)
from .loader import load_config
from .settings import Settings, clear_settings_cache, get_settings

__all__ = [
    # Log selection
    "CANDIDATE_WINDOW",
    "LOG_FILE_SUFFIX",
    # Schema typing
    "INTEGER_FIELDS",
    "REAL_FIELDS",
    "REQUEST_IDENTITY_FIELDS",
    "FIELD_DOCS_URL",
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Config loading
    "load_config",
]
