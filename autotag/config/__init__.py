"""Configuration loading and typed matching settings."""

from autotag.config.manager import LOCAL_CONFIG_NAME, Config
from autotag.config.settings import MatchingSettings

__all__ = ["Config", "LOCAL_CONFIG_NAME", "MatchingSettings"]
