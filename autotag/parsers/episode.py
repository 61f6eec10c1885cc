"""Episode keys, episode ranges and episode candidates.

Episodes are identified by keys of the form ``S<season>E<episode>`` without
zero padding (``S1E2``). Working directories name the range of episodes they
hold, e.g. ``S01E01S01E10``.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from autotag.utils.errors import ValidationError

# S1E2, s01e02 (whole stem)
_EPISODE_KEY_PATTERN = re.compile(r"^[sS](?P<season>\d+)[eE](?P<episode>\d+)$")

# S01E01S01E10 anywhere in a directory name
_EPISODE_RANGE_PATTERN = re.compile(
    r"[sS](?P<start_season>\d+)[eE](?P<start_episode>\d+)"
    r"[sS](?P<end_season>\d+)[eE](?P<end_episode>\d+)"
)


def format_episode_key(season: int, episode: int) -> str:
    """Build the canonical episode key.

    Args:
        season: Season number
        episode: Episode number

    Returns:
        str: Key like ``S1E2``
    """
    return f"S{season}E{episode}"


def parse_episode_key(name: str) -> Optional[Tuple[int, int]]:
    """Parse an episode key from a file name or stem.

    Args:
        name: ``S1E2``, ``S01E02.srt``, ...

    Returns:
        Tuple[int, int] | None: (season, episode) or None if not an episode key
    """
    stem = Path(name).stem if "." in name else name
    match = _EPISODE_KEY_PATTERN.match(stem)
    if not match:
        return None
    return int(match.group("season")), int(match.group("episode"))


def canonical_episode_key(name: str) -> Optional[str]:
    """Normalize ``S01E02.srt`` to ``S1E2``; None when not an episode key."""
    parsed = parse_episode_key(name)
    if parsed is None:
        return None
    return format_episode_key(*parsed)


@dataclass(frozen=True)
class EpisodeCandidate:
    """An episode the local files may belong to."""

    season: int
    episode_number: int
    display_id: str
    title: Optional[str] = None
    thumbnail_url: Optional[str] = None

    @classmethod
    def create(
        cls,
        season: int,
        episode_number: int,
        title: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
    ) -> "EpisodeCandidate":
        """Create a candidate with its canonical display id."""
        return cls(
            season=season,
            episode_number=episode_number,
            display_id=format_episode_key(season, episode_number),
            title=title,
            thumbnail_url=thumbnail_url,
        )


@dataclass(frozen=True)
class EpisodeRange:
    """Inclusive range of episodes, possibly spanning seasons."""

    start_season: int
    start_episode: int
    end_season: int
    end_episode: int

    def __post_init__(self):
        """Validate range ordering."""
        if (self.start_season, self.start_episode) > (self.end_season, self.end_episode):
            raise ValidationError(
                f"Episode range ends before it starts: {self}"
            )

    @property
    def seasons(self) -> List[int]:
        """Season numbers covered by the range."""
        return list(range(self.start_season, self.end_season + 1))

    def contains(self, season: int, episode: int) -> bool:
        """Check whether an episode falls inside the range.

        Args:
            season: Season number
            episode: Episode number

        Returns:
            bool: True if within the range
        """
        if season < self.start_season or season > self.end_season:
            return False
        if season == self.start_season and episode < self.start_episode:
            return False
        if season == self.end_season and episode > self.end_episode:
            return False
        return True

    def __str__(self) -> str:
        return (
            f"S{self.start_season:02d}E{self.start_episode:02d}"
            f"S{self.end_season:02d}E{self.end_episode:02d}"
        )


def parse_episode_range(text: str) -> Optional[EpisodeRange]:
    """Parse an episode range such as ``S01E01S01E10``.

    Args:
        text: Directory name or user-supplied range

    Returns:
        EpisodeRange | None: Parsed range or None if no range is present

    Raises:
        ValidationError: If the range ends before it starts
    """
    match = _EPISODE_RANGE_PATTERN.search(text)
    if not match:
        return None

    return EpisodeRange(
        start_season=int(match.group("start_season")),
        start_episode=int(match.group("start_episode")),
        end_season=int(match.group("end_season")),
        end_episode=int(match.group("end_episode")),
    )


def infer_show_and_range(directory: Path) -> Tuple[str, Optional[EpisodeRange]]:
    """Infer show name and episode range from a ``<Show>/<range>`` directory.

    Args:
        directory: Working directory, e.g. ``/media/Show Name/S01E01S01E10``

    Returns:
        Tuple[str, EpisodeRange | None]: (show name hint, range)
    """
    episode_range = parse_episode_range(directory.name)
    show_name = directory.parent.name if episode_range else directory.name
    return show_name, episode_range


def filter_candidates(
    candidates: Iterable[EpisodeCandidate], episode_range: Optional[EpisodeRange]
) -> List[EpisodeCandidate]:
    """Keep candidates inside the range, ordered by season then episode.

    Args:
        candidates: Episodes listed by a provider or found on disk
        episode_range: Range to keep (None keeps everything)

    Returns:
        List[EpisodeCandidate]: Filtered, sorted candidates
    """
    kept = [
        c for c in candidates
        if episode_range is None or episode_range.contains(c.season, c.episode_number)
    ]
    kept.sort(key=lambda c: (c.season, c.episode_number))
    return kept
