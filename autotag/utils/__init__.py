"""Shared helpers: errors, platform paths, logging."""

from autotag.utils.errors import (
    AutotagError,
    ComparisonError,
    ConfigError,
    FileSystemError,
    ValidationError,
)

__all__ = [
    "AutotagError",
    "ComparisonError",
    "ConfigError",
    "FileSystemError",
    "ValidationError",
]
