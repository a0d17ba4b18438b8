# src/fidoenroll/paths.py
"""XDG Base Directory Specification compliant path resolution."""

import os
from functools import lru_cache
from pathlib import Path

from .errors import EnvironmentError

APP_NAME = "fidoenroll"


def _get_home_path() -> Path:
    """
    Get the user's home directory.

    Raises:
        EnvironmentError: If the HOME environment variable is not set.
    """
    home = os.environ.get("HOME")
    if not home:
        raise EnvironmentError("Required environment variable HOME is not set.")

    path = Path(home).resolve()
    if not path.is_dir():
        raise EnvironmentError(f"Home directory '{path}' does not exist or is not a directory.")

    return path


HOME: Path = _get_home_path()


@lru_cache(maxsize=1)
def get_xdg_config_home() -> Path:
    """
    Returns the path to the XDG Config Home directory.

    Defaults to ~/.config if XDG_CONFIG_HOME is not set.
    """
    return Path(os.environ.get("XDG_CONFIG_HOME", HOME / ".config"))


def get_app_config_dir() -> Path:
    """Get the application's config directory."""
    return get_xdg_config_home() / APP_NAME


def get_default_config_path() -> Path:
    """Get the default path for the config.yaml file."""
    return get_app_config_dir() / "config.yaml"


def get_default_keys_file() -> Path:
    """Get the default pam-u2f key mapping file."""
    return get_xdg_config_home() / "Yubico" / "u2f_keys"


def is_root() -> bool:
    """Check whether the process runs with an effective uid of 0."""
    return os.geteuid() == 0
