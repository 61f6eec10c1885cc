"""Filename and directory name parsers."""

from autotag.parsers.episode import (
    EpisodeCandidate,
    EpisodeRange,
    canonical_episode_key,
    filter_candidates,
    format_episode_key,
    infer_show_and_range,
    parse_episode_key,
    parse_episode_range,
)

__all__ = [
    "EpisodeCandidate",
    "EpisodeRange",
    "canonical_episode_key",
    "filter_candidates",
    "format_episode_key",
    "infer_show_and_range",
    "parse_episode_key",
    "parse_episode_range",
]
