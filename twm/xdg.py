"""XDG Base Directory utilities for config file management."""

import os
from pathlib import Path
from typing import List, Optional

APP_NAME = "twm"


def get_xdg_config_dirs() -> List[Path]:
    """Get config directories in XDG precedence order.

    1. $XDG_CONFIG_HOME/twm (or ~/.config/twm if unset)
    2. $XDG_CONFIG_DIRS entries, each suffixed with twm (default /etc/xdg/twm)

    Returns:
        List of candidate config directories
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    dirs = [Path(xdg_config_home) / APP_NAME]

    xdg_config_dirs = os.environ.get("XDG_CONFIG_DIRS") or "/etc/xdg"
    for entry in xdg_config_dirs.split(os.pathsep):
        if entry:
            dirs.append(Path(entry) / APP_NAME)

    return dirs


def find_xdg_config_file(filename: str) -> Optional[Path]:
    """Find an existing config file in the XDG config directories.

    Args:
        filename: Name of the config file (e.g., "twm.yaml")

    Returns:
        Path to the first existing file, or None if no directory contains it
    """
    for config_dir in get_xdg_config_dirs():
        path = config_dir / filename
        if path.is_file():
            return path
    return None


def get_xdg_write_dir() -> Path:
    """Get the directory new config files should be written to.

    Returns:
        $XDG_CONFIG_HOME/twm, or ~/.config/twm if XDG_CONFIG_HOME is unset
    """
    return get_xdg_config_dirs()[0]
