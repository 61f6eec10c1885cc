"""Typed view of the [matching] configuration section."""

from dataclasses import dataclass, field
from typing import Tuple

from autotag.config.manager import Config
from autotag.utils.errors import ConfigError
from autotag.utils.platform import get_cpu_count

SECTION = "matching"

DEFAULT_LANGUAGE = "en"
DEFAULT_VIDEO_EXTENSIONS = ("mkv", "mp4")
DEFAULT_MERGE_GAP = 2.0  # seconds
DEFAULT_PERCENT_MATCH = 85
DEFAULT_THRESHOLD_MATCH = 50
DEFAULT_SCALE = "400:224"
DEFAULT_CONFIDENCE_KEY = "lavfi.blackframe.pblack"


@dataclass(frozen=True)
class MatchingSettings:
    """Tunables for both matchers."""

    language: str = DEFAULT_LANGUAGE
    video_extensions: Tuple[str, ...] = field(default=DEFAULT_VIDEO_EXTENSIONS)
    merge_gap: float = DEFAULT_MERGE_GAP
    percent_match: int = DEFAULT_PERCENT_MATCH
    threshold_match: int = DEFAULT_THRESHOLD_MATCH
    scale: str = DEFAULT_SCALE
    max_workers: int = 0  # 0 = one per CPU core
    confidence_key: str = DEFAULT_CONFIDENCE_KEY

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.merge_gap <= 0:
            raise ConfigError(f"{SECTION}.merge_gap must be positive, got {self.merge_gap}")
        if not 0 <= self.percent_match <= 100:
            raise ConfigError(f"{SECTION}.percent_match must be within 0-100")
        if not 0 <= self.threshold_match <= 255:
            raise ConfigError(f"{SECTION}.threshold_match must be within 0-255")
        if self.max_workers < 0:
            raise ConfigError(f"{SECTION}.max_workers cannot be negative")
        width, sep, height = self.scale.partition(":")
        if not sep or not width.isdigit() or not height.isdigit():
            raise ConfigError(f"{SECTION}.scale must look like WIDTH:HEIGHT, got {self.scale!r}")
        if not self.video_extensions:
            raise ConfigError(f"{SECTION}.video_extensions cannot be empty")

    @property
    def worker_count(self) -> int:
        """Effective number of concurrent workers."""
        return self.max_workers or get_cpu_count()

    @classmethod
    def from_config(cls, config: Config) -> "MatchingSettings":
        """Build settings from a Config, falling back to defaults.

        Args:
            config: Loaded configuration

        Returns:
            MatchingSettings: Validated settings

        Raises:
            ConfigError: If a value has the wrong type or range
        """
        extensions = config.get(SECTION, "video_extensions")
        if extensions:
            parsed_extensions = tuple(
                ext.strip().lstrip(".").lower() for ext in extensions.split(",") if ext.strip()
            )
        else:
            parsed_extensions = DEFAULT_VIDEO_EXTENSIONS

        return cls(
            language=config.get(SECTION, "language", fallback=DEFAULT_LANGUAGE),
            video_extensions=parsed_extensions,
            merge_gap=config.get_float(SECTION, "merge_gap", fallback=DEFAULT_MERGE_GAP),
            percent_match=config.get_int(SECTION, "percent_match", fallback=DEFAULT_PERCENT_MATCH),
            threshold_match=config.get_int(
                SECTION, "threshold_match", fallback=DEFAULT_THRESHOLD_MATCH
            ),
            scale=config.get(SECTION, "scale", fallback=DEFAULT_SCALE),
            max_workers=config.get_int(SECTION, "max_workers", fallback=0),
            confidence_key=config.get(SECTION, "confidence_key", fallback=DEFAULT_CONFIDENCE_KEY),
        )
