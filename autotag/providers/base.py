"""Provider data types and exceptions."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from autotag.utils.errors import AutotagError


class ProviderError(AutotagError):
    """Base exception for metadata and subtitle provider errors."""

    pass


class RateLimitError(ProviderError):
    """Raised when API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retrying (if known)
        """
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Raised when API authentication fails."""

    pass


class NotFoundError(ProviderError):
    """Raised when requested resource is not found."""

    pass


@dataclass
class SearchResult:
    """A show returned by a series search."""

    provider: str
    id: str
    title: str
    year: Optional[int] = None
    plot: Optional[str] = None
    relevance_score: float = 0.0
    raw_data: Optional[Dict[str, Any]] = None


@dataclass
class SeriesMetadata:
    """The subset of series metadata the matchers need."""

    provider: str
    id: str
    title: str
    year: Optional[int] = None
    imdb_id: Optional[str] = None
    raw_data: Optional[Dict[str, Any]] = None


@dataclass
class EpisodeMetadata:
    """Episode listing entry from a provider."""

    provider: str
    show_id: str
    season_number: int
    episode_number: int
    title: Optional[str] = None
    still_url: Optional[str] = None  # thumbnail image
    raw_data: Optional[Dict[str, Any]] = None


@dataclass
class SubtitleFile:
    """A downloadable subtitle found by a subtitle search."""

    provider: str
    file_id: str
    language: str
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    release: Optional[str] = None
    download_count: int = 0
    raw_data: Optional[Dict[str, Any]] = None
