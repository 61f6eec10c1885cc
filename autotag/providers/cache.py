"""HTTP response caching using requests-cache."""

from datetime import timedelta
from pathlib import Path
from typing import Optional

import requests_cache
from platformdirs import user_cache_dir


class MetadataCache:
    """Cache for provider responses.

    Uses requests-cache for HTTP response caching with TTL-based expiration.
    Only GET requests are cached, so logins and subtitle download requests
    always reach the service.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        ttl: timedelta = timedelta(days=7),
        enabled: bool = True,
    ):
        """Initialize metadata cache.

        Args:
            cache_dir: Directory for cache storage (defaults to user cache dir)
            ttl: Time-to-live for cached entries
            enabled: Whether caching is enabled
        """
        self.enabled = enabled
        self.ttl = ttl

        if cache_dir is None:
            cache_dir = Path(user_cache_dir("autotag", appauthor=False))

        self.cache_dir = cache_dir

        if enabled:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._session = requests_cache.CachedSession(
                cache_name=str(self.cache_dir / "http_cache"),
                backend="sqlite",
                expire_after=ttl,
                allowable_codes=[200, 404],
                allowable_methods=["GET"],
                stale_if_error=True,
            )
        else:
            self._session = requests_cache.CachedSession(backend="memory")

    def get_session(self) -> requests_cache.CachedSession:
        """Get the cached session for HTTP requests.

        Returns:
            CachedSession: Requests session with caching
        """
        return self._session


# Global cache instance
_global_cache: Optional[MetadataCache] = None


def get_cache(ttl: timedelta = timedelta(days=7), enabled: bool = True) -> MetadataCache:
    """Get or create the global cache instance.

    A disabled cache is never shared, so tests and one-off clients get a
    fresh in-memory session.

    Args:
        ttl: Time-to-live for cached entries
        enabled: Whether caching is enabled

    Returns:
        MetadataCache: Cache instance
    """
    global _global_cache
    if not enabled:
        return MetadataCache(ttl=ttl, enabled=False)
    if _global_cache is None:
        _global_cache = MetadataCache(ttl=ttl, enabled=True)
    return _global_cache
