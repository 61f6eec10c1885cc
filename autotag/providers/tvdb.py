"""TheTVDB API v4 client.

Lists a show's episodes and downloads their thumbnails, which serve as the
reference material for episode matching. Requires an API key from
https://thetvdb.com/api-information
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from autotag.parsers.episode import EpisodeCandidate, EpisodeRange, filter_candidates
from autotag.providers.base import (
    AuthenticationError,
    EpisodeMetadata,
    NotFoundError,
    ProviderError,
    RateLimitError,
    SearchResult,
    SeriesMetadata,
)
from autotag.providers.cache import get_cache

logger = logging.getLogger(__name__)


class TheTVDBProvider:
    """TheTVDB API v4 client for series and episode listings."""

    BASE_URL = "https://api4.thetvdb.com/v4/"

    # Rate limiting: Conservative limit for free tier
    MAX_REQUESTS_PER_SECOND = 10
    RATE_LIMIT_WINDOW = 1.0  # seconds

    # Safety stop for paginated episode listings
    MAX_PAGES = 20

    REQUEST_TIMEOUT = 30  # seconds

    def __init__(self, api_key: Optional[str] = None, cache_enabled: bool = True):
        """Initialize TheTVDB provider.

        Args:
            api_key: TheTVDB API key
            cache_enabled: Whether to enable response caching

        Raises:
            AuthenticationError: If API key is not provided
        """
        if not api_key:
            raise AuthenticationError("TheTVDB API key is required")

        self.api_key = api_key
        self.cache = get_cache(enabled=cache_enabled)
        self.session = self.cache.get_session()

        # Authentication
        self._token: Optional[str] = None
        self._token_expiry: float = 0

        # Rate limiting
        self._request_times: List[float] = []

    def _get_token(self) -> str:
        """Get or refresh JWT token.

        Returns:
            str: Valid JWT token

        Raises:
            AuthenticationError: If authentication fails
        """
        # Check if token is still valid (with 5 minute buffer)
        if self._token and time.time() < self._token_expiry - 300:
            return self._token

        logger.info("Logging in to thetvdb.com")
        url = urljoin(self.BASE_URL, "login")
        try:
            response = requests.post(url, json={"apikey": self.api_key}, timeout=self.REQUEST_TIMEOUT)
            response.raise_for_status()

            data = response.json()
            self._token = data["data"]["token"]

            # Tokens are valid for a month
            self._token_expiry = time.time() + (30 * 24 * 60 * 60)

            return self._token

        except requests.RequestException as e:
            raise AuthenticationError(f"TheTVDB authentication failed: {e}")
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError(f"Invalid TheTVDB authentication response: {e}")

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers including authorization."""
        return {
            "Authorization": f"Bearer {self._get_token()}",
            "Content-Type": "application/json",
        }

    def _rate_limit(self) -> None:
        """Apply rate limiting to requests."""
        now = time.time()

        self._request_times = [
            t for t in self._request_times if now - t < self.RATE_LIMIT_WINDOW
        ]

        if len(self._request_times) >= self.MAX_REQUESTS_PER_SECOND:
            oldest = self._request_times[0]
            wait_time = self.RATE_LIMIT_WINDOW - (now - oldest)
            if wait_time > 0:
                time.sleep(wait_time)

        self._request_times.append(time.time())

    def _request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        retry_count: int = 3,
    ) -> Dict[str, Any]:
        """Make a request to TheTVDB API with retry logic.

        Args:
            endpoint: API endpoint (relative to BASE_URL)
            params: Query parameters
            retry_count: Number of retries on failure

        Returns:
            dict: JSON response

        Raises:
            ProviderError: If request fails
            RateLimitError: If rate limit exceeded
            NotFoundError: If resource not found
        """
        url = urljoin(self.BASE_URL, endpoint)

        self._rate_limit()

        for attempt in range(retry_count):
            try:
                response = self.session.get(
                    url, headers=self._get_headers(), params=params, timeout=self.REQUEST_TIMEOUT
                )

                if response.status_code == 200:
                    return response.json()
                elif response.status_code == 404:
                    raise NotFoundError(f"Resource not found: {endpoint}")
                elif response.status_code == 401:
                    # Token might be expired, try refreshing once
                    if attempt == 0:
                        self._token = None
                        continue
                    raise AuthenticationError("TheTVDB authentication failed")
                elif response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 60))
                    if attempt < retry_count - 1:
                        time.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        "TheTVDB rate limit exceeded", retry_after=retry_after
                    )
                else:
                    response.raise_for_status()

            except requests.RequestException as e:
                if attempt == retry_count - 1:
                    raise ProviderError(f"TheTVDB API request failed: {e}")
                time.sleep(2 ** attempt)

        raise ProviderError("TheTVDB API request failed after retries")

    def search_tv(self, title: str, year: Optional[int] = None) -> List[SearchResult]:
        """Search for TV shows by title.

        Args:
            title: TV show title to search for
            year: Optional first air year for filtering

        Returns:
            List[SearchResult]: List of search results

        Raises:
            ProviderError: If search fails
        """
        params = {"query": title, "type": "series"}
        if year:
            params["year"] = str(year)

        try:
            data = self._request("search", params=params)
        except NotFoundError:
            return []

        results = []
        for item in data.get("data", []):
            # Search can return mixed results even when filtered
            if item.get("type") != "series":
                continue

            item_year = None
            first_air = item.get("first_air_time") or item.get("year")
            if first_air:
                try:
                    item_year = int(str(first_air).split("-")[0])
                except ValueError:
                    pass

            if year and item_year and item_year != year:
                continue

            results.append(
                SearchResult(
                    provider="tvdb",
                    id=str(item["tvdb_id"]),
                    title=item.get("name", ""),
                    year=item_year,
                    plot=item.get("overview"),
                    raw_data=item,
                )
            )

        return results

    def get_series(self, show_id: str) -> SeriesMetadata:
        """Get series metadata, including the IMDb id used for subtitle search.

        Args:
            show_id: TheTVDB series ID

        Returns:
            SeriesMetadata: Series metadata

        Raises:
            ProviderError: If retrieval fails
            NotFoundError: If show not found
        """
        data = self._request(f"series/{show_id}/extended", params={"short": "true"})
        series = data.get("data") or {}

        year = None
        if series.get("firstAired"):
            try:
                year = int(series["firstAired"].split("-")[0])
            except (ValueError, IndexError):
                pass

        imdb_id = None
        for remote_id in series.get("remoteIds") or []:
            if remote_id.get("sourceName") == "IMDB":
                imdb_id = remote_id.get("id")
                break

        return SeriesMetadata(
            provider="tvdb",
            id=str(series.get("id", show_id)),
            title=series.get("name", ""),
            year=year,
            imdb_id=imdb_id,
            raw_data=series,
        )

    def get_season_episodes(self, show_id: str, season_number: int) -> List[EpisodeMetadata]:
        """List the episodes of one aired season.

        Args:
            show_id: TheTVDB series ID
            season_number: Season number

        Returns:
            List[EpisodeMetadata]: Episodes in provider order

        Raises:
            ProviderError: If retrieval fails
        """
        episodes: List[EpisodeMetadata] = []

        for page in range(self.MAX_PAGES):
            params = {"season": str(season_number), "page": str(page)}
            try:
                data = self._request(f"series/{show_id}/episodes/default", params=params)
            except NotFoundError:
                break

            for item in (data.get("data") or {}).get("episodes", []):
                if item.get("seasonNumber") != season_number or item.get("number") is None:
                    continue
                episodes.append(
                    EpisodeMetadata(
                        provider="tvdb",
                        show_id=str(show_id),
                        season_number=season_number,
                        episode_number=int(item["number"]),
                        title=item.get("name"),
                        still_url=item.get("image"),
                        raw_data=item,
                    )
                )

            if not (data.get("links") or {}).get("next"):
                break

        logger.debug(f"Season {season_number} of {show_id}: {len(episodes)} episodes")
        return episodes

    def get_episode_candidates(
        self, show_id: str, episode_range: EpisodeRange
    ) -> List[EpisodeCandidate]:
        """List the episodes inside a range as match candidates.

        Args:
            show_id: TheTVDB series ID
            episode_range: Episodes expected in the working directory

        Returns:
            List[EpisodeCandidate]: Candidates ordered by season and episode

        Raises:
            ProviderError: If retrieval fails
        """
        candidates = []
        for season in episode_range.seasons:
            for episode in self.get_season_episodes(show_id, season):
                candidates.append(
                    EpisodeCandidate.create(
                        season=episode.season_number,
                        episode_number=episode.episode_number,
                        title=episode.title,
                        thumbnail_url=episode.still_url,
                    )
                )
        return filter_candidates(candidates, episode_range)

    def download_image(self, url: str, destination: Path) -> Path:
        """Download an image to disk.

        Relative artwork paths are resolved against the banners host.

        Args:
            url: Image URL
            destination: Target path

        Returns:
            Path: The written file

        Raises:
            ProviderError: If the download fails
        """
        if not url.startswith("http"):
            url = urljoin("https://artworks.thetvdb.com/banners/", url.lstrip("/"))

        try:
            with requests.get(url, stream=True, timeout=self.REQUEST_TIMEOUT) as response:
                if response.status_code == 404:
                    raise NotFoundError(f"Image not found: {url}")
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=65536):
                        f.write(chunk)
        except requests.RequestException as e:
            raise ProviderError(f"Image download failed for {url}: {e}")
        except OSError as e:
            raise ProviderError(f"Could not write {destination}: {e}")

        return destination
