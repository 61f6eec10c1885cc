"""Turn matcher output into per-episode claims."""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from autotag.matching.claims import ConflictSet, MatchClaim
from autotag.subtitles.distance import DistanceResult
from autotag.video.compare import ComparisonResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpisodeSuggestion:
    """Best subtitle claim for an episode plus the closest negative."""

    episode: str
    claim: MatchClaim
    runner_up: Optional[int] = None

    @property
    def margin(self) -> Optional[int]:
        """Distance gap between the best and second-best candidate."""
        if self.runner_up is None or self.claim.distance is None:
            return None
        return self.runner_up - self.claim.distance


def subtitle_claims(rankings: Dict[str, List[DistanceResult]]) -> ConflictSet:
    """Group every ranked subtitle result as a claim.

    Args:
        rankings: Ranked distance results keyed by reference episode

    Returns:
        ConflictSet: All subtitle claims, best first per episode
    """
    claims = [
        MatchClaim(
            episode=result.reference_key,
            file=result.candidate_key,
            source="subtitle",
            distance=result.distance,
        )
        for results in rankings.values()
        for result in results
    ]
    return ConflictSet(claims, episode_order=list(rankings))


def aggregate_subtitle_rankings(
    rankings: Dict[str, List[DistanceResult]],
) -> List[EpisodeSuggestion]:
    """Pick the minimum-distance file for every reference episode.

    Args:
        rankings: Ranked distance results keyed by reference episode

    Returns:
        List[EpisodeSuggestion]: One suggestion per episode with candidates,
            in reference order
    """
    conflict_set = subtitle_claims(rankings)
    suggestions: List[EpisodeSuggestion] = []

    for episode, claims in conflict_set.items():
        if not claims:
            logger.info(f"No candidate subtitles for {episode}")
            continue

        runner_up = claims[1].distance if len(claims) > 1 else None
        suggestions.append(EpisodeSuggestion(episode=episode, claim=claims[0], runner_up=runner_up))

    return suggestions


def aggregate_video_results(
    results: Iterable[ComparisonResult],
    episode_order: Optional[Sequence[str]] = None,
) -> ConflictSet:
    """Group comparison results into per-episode video claims.

    Every (video, thumbnail) result becomes a claim, including those without
    intervals, so the diagnostic dump shows the complete picture.

    Args:
        results: Comparison results for all pairs
        episode_order: Episode order for the conflict set

    Returns:
        ConflictSet: Video claims, matched first per episode
    """
    claims = [
        MatchClaim(
            episode=result.episode,
            file=result.video.name,
            source="video",
            intervals=result.intervals,
        )
        for result in results
    ]
    return ConflictSet(claims, episode_order=episode_order)
