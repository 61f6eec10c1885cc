"""Reference material providers: TheTVDB episodes and thumbnails, OpenSubtitles.

Each client raises ProviderError (or a subclass) on failure, before any
matching runs.
"""

from autotag.providers.base import (
    AuthenticationError,
    EpisodeMetadata,
    NotFoundError,
    ProviderError,
    RateLimitError,
    SearchResult,
    SeriesMetadata,
    SubtitleFile,
)
from autotag.providers.cache import MetadataCache, get_cache
from autotag.providers.opensubtitles import OpenSubtitlesProvider
from autotag.providers.search import InteractiveSearch, title_similarity
from autotag.providers.tvdb import TheTVDBProvider

__all__ = [
    "AuthenticationError",
    "EpisodeMetadata",
    "InteractiveSearch",
    "MetadataCache",
    "NotFoundError",
    "OpenSubtitlesProvider",
    "ProviderError",
    "RateLimitError",
    "SearchResult",
    "SeriesMetadata",
    "SubtitleFile",
    "TheTVDBProvider",
    "get_cache",
    "title_similarity",
]
