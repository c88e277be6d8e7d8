"""Environment-derived settings and the package logger.

Library modules log through LOGGER; only the CLI installs handlers.
"""

import logging
import os
from pathlib import Path

from voxintent.core.constants import DEFAULT_CONFIG_DIR, DEFAULT_CONFIG_DIR_ENV

LOGGER = logging.getLogger("voxintent")


def log_level() -> str:
    """Level name from ``LOG_LEVEL``, defaulting to INFO."""
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def config_dir() -> Path:
    """Config directory, honouring ``VOXINTENT_CONFIG_DIR``."""
    return Path(
        os.environ.get(DEFAULT_CONFIG_DIR_ENV, "") or DEFAULT_CONFIG_DIR,
    ).expanduser()
