"""Claim aggregation and conflict resolution across both matchers."""

from autotag.matching.aggregator import (
    EpisodeSuggestion,
    aggregate_subtitle_rankings,
    aggregate_video_results,
    subtitle_claims,
)
from autotag.matching.claims import ConflictSet, MatchClaim
from autotag.matching.resolver import (
    RenameDecision,
    SubtitleDecision,
    VideoDecision,
    build_subtitle_renames,
    build_video_renames,
    resolve_subtitle_suggestions,
    resolve_video_claims,
    write_conflict_dump,
)

__all__ = [
    "ConflictSet",
    "EpisodeSuggestion",
    "MatchClaim",
    "RenameDecision",
    "SubtitleDecision",
    "VideoDecision",
    "aggregate_subtitle_rankings",
    "aggregate_video_results",
    "build_subtitle_renames",
    "build_video_renames",
    "resolve_subtitle_suggestions",
    "resolve_video_claims",
    "subtitle_claims",
    "write_conflict_dump",
]
