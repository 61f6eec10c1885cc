"""OpenSubtitles REST API client.

Fetches reference subtitles for episodes. Requires an API consumer key from
https://www.opensubtitles.com/consumers
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests

from autotag import __version__
from autotag.providers.base import (
    AuthenticationError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    SubtitleFile,
)
from autotag.providers.cache import get_cache

logger = logging.getLogger(__name__)


class OpenSubtitlesProvider:
    """Search and download subtitles from opensubtitles.com."""

    BASE_URL = "https://api.opensubtitles.com/api/v1/"
    USER_AGENT = f"autotag v{__version__}"
    REQUEST_TIMEOUT = 30  # seconds

    def __init__(self, api_key: Optional[str] = None, cache_enabled: bool = True):
        """Initialize OpenSubtitles provider.

        Args:
            api_key: OpenSubtitles API consumer key
            cache_enabled: Whether to cache search responses

        Raises:
            AuthenticationError: If API key is not provided
        """
        if not api_key:
            raise AuthenticationError("OpenSubtitles API key is required")

        self.api_key = api_key
        self.cache = get_cache(enabled=cache_enabled)
        self.session = self.cache.get_session()

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for API requests."""
        return {
            "Api-Key": self.api_key,
            "User-Agent": self.USER_AGENT,
            "Accept": "application/json",
        }

    def _check_response(self, response: requests.Response, what: str) -> None:
        """Map HTTP error statuses to provider errors."""
        if response.status_code in (401, 403):
            raise AuthenticationError(f"OpenSubtitles rejected the API key ({what})")
        if response.status_code == 404:
            raise NotFoundError(f"OpenSubtitles resource not found: {what}")
        if response.status_code in (406, 429):
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"OpenSubtitles limit reached ({what})",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        response.raise_for_status()

    def search_subtitles(
        self,
        imdb_id: str,
        season_number: int,
        episode_number: int,
        language: str = "en",
    ) -> List[SubtitleFile]:
        """Search SubRip subtitles for one episode.

        Args:
            imdb_id: IMDb id of the series (``tt0903747`` or ``903747``)
            season_number: Season number
            episode_number: Episode number
            language: Subtitle language code

        Returns:
            List[SubtitleFile]: Results, most downloaded first

        Raises:
            ProviderError: If the search fails
        """
        try:
            parent_imdb_id = str(int(imdb_id.lstrip("t")))
        except ValueError:
            raise ProviderError(f"Invalid IMDb id: {imdb_id!r}")

        params: Dict[str, Any] = {
            "parent_imdb_id": parent_imdb_id,
            "season_number": season_number,
            "episode_number": episode_number,
            "languages": language,
        }

        try:
            response = self.session.get(
                urljoin(self.BASE_URL, "subtitles"),
                headers=self._get_headers(),
                params=params,
                timeout=self.REQUEST_TIMEOUT,
            )
            self._check_response(response, "subtitle search")
            data = response.json()
        except requests.RequestException as e:
            raise ProviderError(f"OpenSubtitles search failed: {e}")
        except ValueError as e:
            raise ProviderError(f"Invalid OpenSubtitles search response: {e}")

        results = []
        for item in data.get("data", []):
            attributes = item.get("attributes") or {}
            files = attributes.get("files") or []
            if not files:
                continue
            details = attributes.get("feature_details") or {}
            results.append(
                SubtitleFile(
                    provider="opensubtitles",
                    file_id=str(files[0]["file_id"]),
                    language=attributes.get("language") or language,
                    season_number=details.get("season_number"),
                    episode_number=details.get("episode_number"),
                    release=attributes.get("release"),
                    download_count=attributes.get("download_count") or 0,
                    raw_data=item,
                )
            )

        results.sort(key=lambda r: r.download_count, reverse=True)
        return results

    def download(self, subtitle: SubtitleFile) -> str:
        """Download the text of a subtitle file.

        Args:
            subtitle: Search result to download

        Returns:
            str: Subtitle text (SubRip)

        Raises:
            ProviderError: If the download fails
        """
        try:
            response = requests.post(
                urljoin(self.BASE_URL, "download"),
                headers=self._get_headers(),
                json={"file_id": int(subtitle.file_id)},
                timeout=self.REQUEST_TIMEOUT,
            )
            self._check_response(response, f"download {subtitle.file_id}")
            link = response.json()["link"]

            file_response = requests.get(link, timeout=self.REQUEST_TIMEOUT)
            file_response.raise_for_status()
        except requests.RequestException as e:
            raise ProviderError(f"OpenSubtitles download failed: {e}")
        except (KeyError, ValueError) as e:
            raise ProviderError(f"Invalid OpenSubtitles download response: {e}")

        file_response.encoding = file_response.encoding or "utf-8"
        return file_response.text

    def get_episode_subtitles(
        self,
        imdb_id: str,
        season_number: int,
        episode_number: int,
        language: str = "en",
    ) -> str:
        """Download the most popular subtitle for an episode.

        Args:
            imdb_id: IMDb id of the series
            season_number: Season number
            episode_number: Episode number
            language: Subtitle language code

        Returns:
            str: Subtitle text

        Raises:
            NotFoundError: If no subtitle exists for the episode
            ProviderError: If search or download fails
        """
        results = self.search_subtitles(imdb_id, season_number, episode_number, language)
        if not results:
            raise NotFoundError(
                f"No {language} subtitles found for S{season_number}E{episode_number}"
            )

        best = results[0]
        logger.debug(
            f"S{season_number}E{episode_number}: using {best.release or best.file_id} "
            f"({best.download_count} downloads)"
        )
        return self.download(best)
