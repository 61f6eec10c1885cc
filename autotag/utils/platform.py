"""Platform-specific helper functions."""

import os
from pathlib import Path

from platformdirs import user_config_dir


def get_user_config_dir() -> Path:
    """
    Get the platform-specific user configuration directory.

    Returns:
        Path: User config directory
            - macOS: ~/Library/Application Support/autotag
            - Linux: ~/.config/autotag
            - Windows: %APPDATA%/autotag
    """
    return Path(user_config_dir("autotag", appauthor=False))


def get_cpu_count() -> int:
    """
    Get the number of usable CPU cores (at least 1).

    Returns:
        int: CPU core count
    """
    return os.cpu_count() or 1
