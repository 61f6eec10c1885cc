"""Levenshtein ranking of extracted subtitles against reference subtitles."""

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from autotag.subtitles.normalize import SubtitleDocument
from autotag.utils.platform import get_cpu_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistanceResult:
    """Edit distance between one reference and one candidate."""

    reference_key: str
    candidate_key: str
    distance: int


def levenshtein(source: str, target: str) -> int:
    """Unit-cost, case-sensitive edit distance over the whole string.

    Args:
        source: First string
        target: Second string

    Returns:
        int: Number of insertions, deletions and substitutions
    """
    return Levenshtein.distance(source, target)


def _distance_job(job: Tuple[int, int, str, str]) -> Tuple[int, int, int]:
    """Worker entry point; must stay importable at module level for pickling."""
    ref_index, cand_index, source, target = job
    return ref_index, cand_index, levenshtein(source, target)


def _rank(
    reference: SubtitleDocument,
    candidates: Sequence[SubtitleDocument],
    distances: Sequence[int],
) -> List[DistanceResult]:
    results = [
        DistanceResult(
            reference_key=reference.key,
            candidate_key=candidate.key,
            distance=distance,
        )
        for candidate, distance in zip(candidates, distances)
    ]
    # sort() is stable: equal distances keep candidate input order
    results.sort(key=lambda r: r.distance)
    return results


def rank_candidates(
    reference: SubtitleDocument, candidates: Sequence[SubtitleDocument]
) -> List[DistanceResult]:
    """Rank every candidate against one reference, best (lowest) first.

    Args:
        reference: Reference subtitles for one episode
        candidates: Extracted subtitles of the local files

    Returns:
        List[DistanceResult]: All candidates in ascending distance order
    """
    distances = [
        levenshtein(reference.normalized_text, c.normalized_text) for c in candidates
    ]
    return _rank(reference, candidates, distances)


class SubtitleMatcher:
    """Rank candidates for many references using a process pool.

    Each (reference, candidate) pair is an independent job. Results are
    collected by index, so completion order does not matter.
    """

    def __init__(self, max_workers: Optional[int] = None):
        """Initialize the matcher.

        Args:
            max_workers: Worker processes (None = one per CPU core,
                1 = compute inline without a pool)
        """
        self.max_workers = max_workers if max_workers is not None else get_cpu_count()

    def match(
        self,
        references: Sequence[SubtitleDocument],
        candidates: Sequence[SubtitleDocument],
    ) -> Dict[str, List[DistanceResult]]:
        """Rank all candidates for every reference.

        Args:
            references: Reference subtitles, one per episode
            candidates: Extracted subtitles of local files

        Returns:
            Dict[str, List[DistanceResult]]: Ranked results keyed by reference
                key, in reference input order
        """
        if not references:
            return {}

        jobs = [
            (ref_index, cand_index, reference.normalized_text, candidate.normalized_text)
            for ref_index, reference in enumerate(references)
            for cand_index, candidate in enumerate(candidates)
        ]
        logger.info(
            f"Computing {len(jobs)} distances "
            f"({len(references)} references x {len(candidates)} candidates)"
        )

        if self.max_workers <= 1 or len(jobs) <= 1:
            outcomes = [_distance_job(job) for job in jobs]
        else:
            with ProcessPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes = list(pool.map(_distance_job, jobs))

        grid: List[List[int]] = [[0] * len(candidates) for _ in references]
        for ref_index, cand_index, distance in outcomes:
            grid[ref_index][cand_index] = distance

        rankings: Dict[str, List[DistanceResult]] = {}
        for ref_index, reference in enumerate(references):
            rankings[reference.key] = _rank(reference, candidates, grid[ref_index])
            if rankings[reference.key]:
                logger.debug(
                    f"{reference.key}: best {rankings[reference.key][0].candidate_key} "
                    f"({rankings[reference.key][0].distance})"
                )

        return rankings
