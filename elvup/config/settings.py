"""Updater settings — defaults, JSON overrides, and verbosity mapping."""

import json
import logging
import os
import sys
from dataclasses import dataclass

from elvup.core.errors import ConfigError

logger = logging.getLogger(__name__)

# Below DEBUG; enabled with -vv
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

DEFAULT_METADATA_URL = "https://api.tukui.org/v1/addon/elvui"

_VERBOSITY_LEVELS = {
    0: logging.INFO,
    1: logging.DEBUG,
    2: TRACE,
}


def default_addons_path() -> str:
    """Platform-specific retail AddOns directory."""
    if sys.platform == 'darwin':
        return "/Applications/World of Warcraft/_retail_/Interface/AddOns"
    if sys.platform == 'win32':
        return r"C:\Program Files (x86)\World of Warcraft\_retail_\Interface\AddOns"
    # Lutris / Wine default prefix
    return os.path.join(
        os.path.expanduser('~'), 'Games', 'world-of-warcraft', 'drive_c',
        'Program Files (x86)', 'World of Warcraft', '_retail_', 'Interface', 'AddOns',
    )


def verbosity_to_level(verbosity: int) -> int:
    """Map a -v count to a logging level; 0=INFO, 1=DEBUG, 2=TRACE."""
    try:
        return _VERBOSITY_LEVELS[verbosity]
    except (KeyError, TypeError):
        raise ConfigError(f"Unexpected value {verbosity!r} for verbosity!") from None


@dataclass
class UpdaterSettings:
    """Configuration for a single check-and-install run."""
    # Paths
    addons_path: str = ""
    scratch_dir: str | None = None      # None = system temp dir
    log_file: str | None = None

    # Network
    metadata_url: str = DEFAULT_METADATA_URL
    timeout: float = 30                 # seconds, metadata request
    download_timeout: float = 120       # seconds, archive download

    # Diagnostics
    verbosity: int = 0
    keep_scratch: bool = False

    def __post_init__(self):
        if not self.addons_path:
            self.addons_path = default_addons_path()

    @property
    def log_level(self) -> int:
        return verbosity_to_level(self.verbosity)

    @staticmethod
    def load(path: str | None = None) -> 'UpdaterSettings':
        """Load settings from JSON. Returns defaults if file doesn't exist."""
        if path is None or not os.path.isfile(path):
            logger.debug("No settings file, using defaults")
            return UpdaterSettings()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value is not an object")
            settings = UpdaterSettings(**{k: v for k, v in data.items()
                                          if k in UpdaterSettings.__dataclass_fields__})
            logger.debug("Loaded settings from %s", path)
            return settings
        except (OSError, ValueError) as e:
            logger.warning("Failed to load settings from %s: %s", path, e)
            return UpdaterSettings()
