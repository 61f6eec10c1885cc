"""Subtitle normalization and edit-distance matching."""

from autotag.subtitles.distance import (
    DistanceResult,
    SubtitleMatcher,
    levenshtein,
    rank_candidates,
)
from autotag.subtitles.normalize import SubtitleDocument, normalize_subtitles

__all__ = [
    "DistanceResult",
    "SubtitleDocument",
    "SubtitleMatcher",
    "levenshtein",
    "normalize_subtitles",
    "rank_candidates",
]
