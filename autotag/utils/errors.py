"""Custom exception classes for autotag."""


class AutotagError(Exception):
    """Base exception for all autotag errors."""

    pass


class ConfigError(AutotagError):
    """Configuration-related errors."""

    pass


class ValidationError(AutotagError):
    """Input validation errors."""

    pass


class FileSystemError(AutotagError):
    """File system operation errors."""

    pass


class ComparisonError(AutotagError):
    """Frame comparison setup errors (e.g. ffmpeg missing)."""

    pass
