"""Configuration management with hierarchical loading.

Supports hierarchical configuration loading:
1. Local .autotag.conf in current directory
2. User config in platform-specific config directory
3. Error if neither exists (unless loaded with required=False)
"""

import configparser
from pathlib import Path
from typing import Any, Dict, List, Optional

from autotag.utils.errors import ConfigError
from autotag.utils.platform import get_user_config_dir

LOCAL_CONFIG_NAME = ".autotag.conf"
USER_CONFIG_NAME = "config"


class Config:
    """
    Configuration manager with hierarchical loading.

    Loads configuration from:
    1. Local .autotag.conf in current directory (highest priority)
    2. User config directory (platform-specific)

    Raises ConfigError if no configuration file is found and one is required.
    """

    def __init__(
        self,
        local_path: Optional[Path] = None,
        user_path: Optional[Path] = None,
        required: bool = True,
    ):
        """
        Initialize configuration manager.

        Args:
            local_path: Path to local config file (default: ./.autotag.conf)
            user_path: Path to user config file (default: platform-specific)
            required: Raise ConfigError when no config file exists
        """
        self._parser = configparser.ConfigParser()
        self._local_path = local_path or Path.cwd() / LOCAL_CONFIG_NAME
        self._user_path = user_path or get_user_config_dir() / USER_CONFIG_NAME
        self._active_config_path: Optional[Path] = None
        self._required = required

        self._load()

    def _load(self) -> None:
        """
        Load configuration from hierarchical sources.

        Raises:
            ConfigError: If no configuration file is found and one is required
        """
        for candidate in (self._local_path, self._user_path):
            if candidate.exists():
                try:
                    self._parser.read(candidate)
                except configparser.Error as e:
                    raise ConfigError(f"Invalid configuration file {candidate}: {e}")
                self._active_config_path = candidate
                return

        if not self._required:
            return

        raise ConfigError(
            f"No configuration file found. Please create one of:\n"
            f"  - Local: {self._local_path}\n"
            f"  - User:  {self._user_path}\n\n"
            f"Run: autotag config set metadata.tvdb_api_key <your_key>"
        )

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Get a configuration value.

        Args:
            section: Configuration section
            key: Configuration key
            fallback: Fallback value if not found

        Returns:
            str | None: Configuration value or fallback
        """
        return self._parser.get(section, key, fallback=fallback)

    def get_int(self, section: str, key: str, fallback: int = 0) -> int:
        """
        Get an integer configuration value.

        Raises:
            ConfigError: If the stored value is not an integer
        """
        try:
            return self._parser.getint(section, key, fallback=fallback)
        except ValueError:
            raise ConfigError(f"{section}.{key} must be an integer")

    def get_float(self, section: str, key: str, fallback: float = 0.0) -> float:
        """
        Get a float configuration value.

        Raises:
            ConfigError: If the stored value is not a number
        """
        try:
            return self._parser.getfloat(section, key, fallback=fallback)
        except ValueError:
            raise ConfigError(f"{section}.{key} must be a number")

    def require(self, section: str, key: str, hint: str = "") -> str:
        """
        Get a configuration value that must be present.

        Args:
            section: Configuration section
            key: Configuration key
            hint: Extra help appended to the error message

        Returns:
            str: Configuration value

        Raises:
            ConfigError: If the value is missing or empty
        """
        value = self.get(section, key)
        if not value:
            message = f"{section}.{key} is not configured. Run: autotag config set {section}.{key} <value>"
            if hint:
                message += f"\n{hint}"
            raise ConfigError(message)
        return value

    def set(self, section: str, key: str, value: Any) -> None:
        """
        Set a configuration value (does not save).

        Args:
            section: Configuration section
            key: Configuration key
            value: Value to set
        """
        if not self._parser.has_section(section):
            self._parser.add_section(section)

        self._parser.set(section, key, str(value))

    def save(self, target: Optional[str] = None) -> Path:
        """
        Save configuration to file.

        Args:
            target: Target location ('local' or 'user'). If None, saves to the
                active config, or the local file when none was loaded.

        Returns:
            Path: File that was written

        Raises:
            ConfigError: If target is invalid or writing fails
        """
        if target == "local":
            save_path = self._local_path
        elif target == "user":
            save_path = self._user_path
        elif target is None:
            save_path = self._active_config_path or self._local_path
        else:
            raise ConfigError(f"Invalid target '{target}'. Use 'local' or 'user'")

        save_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(save_path, "w") as f:
                self._parser.write(f)
        except OSError as e:
            raise ConfigError(f"Failed to save configuration to {save_path}: {e}")

        self._active_config_path = save_path
        return save_path

    def get_sections(self) -> List[str]:
        """
        Get all configuration sections.

        Returns:
            List[str]: List of section names
        """
        return self._parser.sections()

    def get_all(self, section: str) -> Dict[str, str]:
        """
        Get all key-value pairs in a section.

        Args:
            section: Configuration section

        Returns:
            Dict[str, str]: Dictionary of all keys and values in section
        """
        if not self._parser.has_section(section):
            return {}

        return dict(self._parser.items(section))

    @property
    def config_path(self) -> Optional[Path]:
        """
        Get the active configuration file path.

        Returns:
            Path | None: Path to active config file
        """
        return self._active_config_path

    def __repr__(self) -> str:
        """String representation showing active config path."""
        return f"Config(active={self._active_config_path})"
