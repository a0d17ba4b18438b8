# src/fidoenroll/config.py
"""Configuration loading and validation using Pydantic."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from . import paths
from .errors import ConfigError


class PackagesConfig(BaseModel):
    """Package manager invocation and the packages Procedure A needs."""
    install_command: List[str] = Field(default_factory=lambda: ["dnf", "install", "-y"])
    u2f: List[str] = Field(default_factory=lambda: ["pam-u2f", "pamu2fcfg", "fido2-tools"])


class U2fConfig(BaseModel):
    """Settings for registering a key with pam-u2f."""
    keys_file: Optional[str] = None
    pin_verification: bool = True
    authselect_feature: str = "with-pam-u2f"
    local_profile: str = "local"
    fallback_profile: str = "sssd"


class LuksConfig(BaseModel):
    """Settings for enrolling a key for LUKS unlock at boot."""
    dracut_conf: str = "/etc/dracut.conf.d/fido2.conf"
    dracut_modules: List[str] = Field(default_factory=lambda: ["fido2"])
    crypttab: str = "/etc/crypttab"
    crypttab_backup: str = "/etc/crypttab.bak"
    anchor_option: str = "discard"
    unlock_option: str = "fido2-device=auto"
    lsblk_columns: str = "NAME,TYPE,SIZE,MOUNTPOINT"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "WARNING"
    json_format: bool = Field(False, alias="json")


class AppConfig(BaseModel):
    """Root configuration model."""
    version: int = 1
    use_sudo: bool = True
    packages: PackagesConfig = Field(default_factory=PackagesConfig)
    u2f: U2fConfig = Field(default_factory=U2fConfig)
    luks: LuksConfig = Field(default_factory=LuksConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def resolve_path(self, path_str: str) -> Path:
        """Resolve a path string, expanding ${HOME} and making it absolute."""
        expanded_path = os.path.expanduser(path_str.replace("${HOME}", str(paths.HOME)))
        return Path(expanded_path).resolve()

    def keys_file_path(self) -> Path:
        """The pam-u2f key mapping file, honouring XDG_CONFIG_HOME by default."""
        if self.u2f.keys_file:
            return self.resolve_path(self.u2f.keys_file)
        return paths.get_default_keys_file()


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """
    Load, parse, and validate the configuration file.

    Args:
        path: The path to the configuration file. If None, the default path
            is used when it exists, otherwise built-in defaults apply.

    Returns:
        A validated AppConfig instance.

    Raises:
        ConfigError: If an explicit file is not found, cannot be read, or fails validation.
    """
    if path is None:
        config_path = paths.get_default_config_path()
        if not config_path.is_file():
            return AppConfig()
    else:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Configuration file not found at '{config_path}'.")

    try:
        content = config_path.read_bytes()
        data = yaml.safe_load(content) or {}
        return AppConfig.model_validate(data)
    except (IOError, PermissionError) as e:
        raise ConfigError(f"Failed to read configuration file '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse configuration file '{config_path}': {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Configuration validation failed:\n{e}") from e
