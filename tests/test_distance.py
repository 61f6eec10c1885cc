"""Tests for edit-distance ranking."""

from unittest.mock import patch

import pytest

from autotag.subtitles.distance import (
    DistanceResult,
    SubtitleMatcher,
    levenshtein,
    rank_candidates,
)
from autotag.subtitles.normalize import SubtitleDocument


def doc(key, text):
    return SubtitleDocument(key=key, raw_text=text, normalized_text=text)


class TestLevenshtein:
    """Test the distance function."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("", "", 0),
            ("abc", "", 3),
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
            ("Hello", "hello", 1),
        ],
    )
    def test_known_values(self, a, b, expected):
        """Test textbook distances (case-sensitive, unit cost)."""
        assert levenshtein(a, b) == expected

    @pytest.mark.parametrize(
        "a,b",
        [("kitten", "sitting"), ("", "abc"), ("The quick fox", "A quick brown fox")],
    )
    def test_symmetric(self, a, b):
        """Test d(a, b) == d(b, a)."""
        assert levenshtein(a, b) == levenshtein(b, a)

    @pytest.mark.parametrize("a", ["", "x", "some longer sentence here"])
    def test_identity(self, a):
        """Test d(a, a) == 0."""
        assert levenshtein(a, a) == 0


class TestRankCandidates:
    """Test ranking for one reference."""

    def test_ascending_order(self):
        """Test the closest candidate comes first."""
        reference = doc("S1E1", "the cat sat on the mat")
        candidates = [
            doc("far", "completely different words"),
            doc("near", "the cat sat on a mat"),
            doc("exact", "the cat sat on the mat"),
        ]

        ranked = rank_candidates(reference, candidates)

        assert [r.candidate_key for r in ranked] == ["exact", "near", "far"]
        assert ranked[0] == DistanceResult("S1E1", "exact", 0)

    def test_ties_keep_input_order(self):
        """Test equal distances are ranked in candidate order."""
        reference = doc("S1E1", "aaaa")
        candidates = [doc("first", "aaab"), doc("second", "baaa"), doc("third", "aaaa")]

        ranked = rank_candidates(reference, candidates)

        assert [r.candidate_key for r in ranked] == ["third", "first", "second"]

    def test_deterministic(self):
        """Test repeated runs give the same ranking."""
        reference = doc("S1E1", "abc")
        candidates = [doc(str(i), "abc"[: i % 4]) for i in range(8)]
        assert rank_candidates(reference, candidates) == rank_candidates(reference, candidates)

    def test_no_candidates(self):
        """Test an empty candidate list."""
        assert rank_candidates(doc("S1E1", "x"), []) == []

    def test_empty_texts_are_valid(self):
        """Test empty normalized text is compared like any other."""
        ranked = rank_candidates(doc("S1E1", ""), [doc("a", "abc"), doc("b", "")])
        assert [(r.candidate_key, r.distance) for r in ranked] == [("b", 0), ("a", 3)]


class TestSubtitleMatcher:
    """Test matching many references."""

    @pytest.fixture
    def references(self):
        return [
            doc("S1E1", "one small step for man"),
            doc("S1E2", "houston we have a problem"),
        ]

    @pytest.fixture
    def candidates(self):
        return [
            doc("title_t00", "houston we have a problem!"),
            doc("title_t01", "one small step for a man"),
        ]

    def test_inline_matching(self, references, candidates):
        """Test results keyed by reference in input order."""
        rankings = SubtitleMatcher(max_workers=1).match(references, candidates)

        assert list(rankings) == ["S1E1", "S1E2"]
        assert rankings["S1E1"][0].candidate_key == "title_t01"
        assert rankings["S1E1"][0].distance == 2
        assert rankings["S1E2"][0].candidate_key == "title_t00"
        assert rankings["S1E2"][0].distance == 1

    def test_pool_matches_inline(self, references, candidates):
        """Test the process pool gives the same rankings as inline computation."""
        inline = SubtitleMatcher(max_workers=1).match(references, candidates)
        pooled = SubtitleMatcher(max_workers=2).match(references, candidates)
        assert pooled == inline

    def test_inline_does_not_start_pool(self, references, candidates):
        """Test a single worker never creates a process pool."""
        with patch("autotag.subtitles.distance.ProcessPoolExecutor") as mock_pool:
            SubtitleMatcher(max_workers=1).match(references, candidates)
        mock_pool.assert_not_called()

    def test_no_references(self, candidates):
        """Test nothing to match."""
        assert SubtitleMatcher(max_workers=1).match([], candidates) == {}

    def test_no_candidates(self, references):
        """Test references without candidates get empty rankings."""
        rankings = SubtitleMatcher(max_workers=1).match(references, [])
        assert rankings == {"S1E1": [], "S1E2": []}

    def test_default_workers(self):
        """Test the default worker count follows the CPU count."""
        with patch("autotag.subtitles.distance.get_cpu_count", return_value=6):
            assert SubtitleMatcher().max_workers == 6
