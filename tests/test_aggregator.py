"""Tests for claim aggregation."""

from pathlib import Path

from autotag.matching.aggregator import (
    aggregate_subtitle_rankings,
    aggregate_video_results,
    subtitle_claims,
)
from autotag.matching.resolver import resolve_video_claims
from autotag.subtitles.distance import DistanceResult
from autotag.video.clustering import MatchInterval
from autotag.video.compare import ComparisonResult


def ranked(reference, *pairs):
    return [DistanceResult(reference, candidate, distance) for candidate, distance in pairs]


class TestSubtitleAggregation:
    """Test subtitle suggestions."""

    def test_best_and_runner_up(self):
        """Test the minimum distance wins and the next one is reported."""
        rankings = {
            "S1E1": ranked("S1E1", ("t1", 5), ("t0", 40), ("t2", 41)),
            "S1E2": ranked("S1E2", ("t0", 3), ("t1", 39)),
        }

        suggestions = aggregate_subtitle_rankings(rankings)

        assert [(s.episode, s.claim.file, s.claim.distance, s.runner_up) for s in suggestions] == [
            ("S1E1", "t1", 5, 40),
            ("S1E2", "t0", 3, 39),
        ]
        assert suggestions[0].margin == 35

    def test_single_candidate_has_no_runner_up(self):
        """Test the runner-up is absent with one candidate."""
        suggestions = aggregate_subtitle_rankings({"S1E1": ranked("S1E1", ("t0", 7))})
        assert suggestions[0].runner_up is None
        assert suggestions[0].margin is None

    def test_episode_without_candidates_skipped(self):
        """Test episodes with no candidates yield no suggestion."""
        suggestions = aggregate_subtitle_rankings({"S1E1": [], "S1E2": ranked("S1E2", ("t0", 1))})
        assert [s.episode for s in suggestions] == ["S1E2"]

    def test_subtitle_claims(self):
        """Test every ranked result becomes a claim."""
        conflict_set = subtitle_claims({"S1E1": ranked("S1E1", ("a", 2), ("b", 9))})
        assert [c.file for c in conflict_set["S1E1"]] == ["a", "b"]
        assert all(c.source == "subtitle" for c in conflict_set["S1E1"])


class TestVideoAggregation:
    """Test grouping of comparison results."""

    def test_groups_by_episode(self):
        """Test one claim per (episode, video), matched first."""
        results = [
            ComparisonResult(Path("/d/a.mkv"), "S1E1", Path("/d/S1E1.jpg")),
            ComparisonResult(Path("/d/a.mkv"), "S1E2", Path("/d/S1E2.jpg"), (MatchInterval(92, 3, 5),)),
            ComparisonResult(Path("/d/b.mkv"), "S1E1", Path("/d/S1E1.jpg"), (MatchInterval(96, 1, 4),)),
            ComparisonResult(Path("/d/b.mkv"), "S1E2", Path("/d/S1E2.jpg")),
        ]

        conflict_set = aggregate_video_results(results, episode_order=["S1E1", "S1E2"])

        assert list(conflict_set) == ["S1E1", "S1E2"]
        assert [c.file for c in conflict_set["S1E1"]] == ["b.mkv", "a.mkv"]
        assert conflict_set.best("S1E2").file == "a.mkv"
        assert len(conflict_set["S1E2"]) == 2

    def test_failed_results_are_non_matches(self):
        """Test failed comparisons are kept as empty claims."""
        results = [ComparisonResult(Path("a.mkv"), "S1E1", Path("S1E1.jpg"), failed=True)]
        conflict_set = aggregate_video_results(results)
        assert conflict_set.best("S1E1") is None
        assert conflict_set["S1E1"][0].intervals == ()

    def test_video_matching_two_thumbnails_keeps_both_claims(self):
        """Test a video matching two episodes is claimed by both and conflicts."""
        results = [
            ComparisonResult(Path("/d/a.mkv"), "S1E1", Path("/d/S1E1.jpg"), (MatchInterval(97, 30, 33),)),
            ComparisonResult(Path("/d/a.mkv"), "S1E2", Path("/d/S1E2.jpg"), (MatchInterval(88, 600, 602),)),
            ComparisonResult(Path("/d/b.mkv"), "S1E1", Path("/d/S1E1.jpg")),
            ComparisonResult(Path("/d/b.mkv"), "S1E2", Path("/d/S1E2.jpg")),
        ]

        conflict_set = aggregate_video_results(results, episode_order=["S1E1", "S1E2"])

        assert conflict_set.best("S1E1").file == "a.mkv"
        assert conflict_set.best("S1E2").file == "a.mkv"
        decision = resolve_video_claims(conflict_set)
        assert decision.conflicts == (("a.mkv", "S1E1", "S1E2"),)
