"""Matcher to resolver pipelines without the interactive layer."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from autotag.config import MatchingSettings
from autotag.matching.aggregator import aggregate_subtitle_rankings, aggregate_video_results
from autotag.matching.resolver import (
    build_subtitle_renames,
    build_video_renames,
    resolve_subtitle_suggestions,
    resolve_video_claims,
)
from autotag.subtitles.distance import SubtitleMatcher
from autotag.subtitles.normalize import SubtitleDocument
from autotag.video.clustering import MatchInterval
from autotag.video.compare import FrameComparator


def srt(*lines):
    blocks = [
        f"{i}\n00:00:{i:02d},000 --> 00:00:{i:02d},900\n{line}\n"
        for i, line in enumerate(lines, 1)
    ]
    return "\n".join(blocks)


class TestSubtitlePipeline:
    """Reference subtitles against extracted tracks."""

    def test_near_copy_wins(self):
        """Test a near-verbatim track is the best claim for its episode."""
        references = [
            SubtitleDocument.from_text("S1E1", srt("Pack the boat.", "The tide turns at noon.")),
            SubtitleDocument.from_text("S1E2", srt("<i>Who sent the letter?</i>", "Nobody on this island.")),
            SubtitleDocument.from_text("S1E3", srt("Light the lamps.", "Ships are coming in.")),
        ]
        candidates = [
            SubtitleDocument.from_text("title_t00", srt("Pack the boats.", "The tide turns at noon.")),
            SubtitleDocument.from_text("title_t01", srt("Who sent the letter?", "Nobody on this island!")),
            SubtitleDocument.from_text("title_t02", srt("Light those lamps.", "Ships come in.")),
        ]

        rankings = SubtitleMatcher(max_workers=1).match(references, candidates)
        suggestions = aggregate_subtitle_rankings(rankings)
        by_episode = {s.episode: s for s in suggestions}

        assert by_episode["S1E2"].claim.file == "title_t01"
        assert by_episode["S1E2"].claim.distance == 1
        assert by_episode["S1E2"].runner_up > 10
        assert by_episode["S1E3"].claim.file == "title_t02"

        decision = resolve_subtitle_suggestions(suggestions)
        renames = build_subtitle_renames(
            decision,
            {"title_t00": "title_t00.mkv", "title_t01": "title_t01.mkv", "title_t02": "title_t02.mkv"},
            ["S1E1", "S1E2", "S1E3"],
        )
        assert renames.renames["title_t01.mkv"] == "S1E2.mkv"
        assert renames.renames["title_t02.mkv"] == "S1E3.mkv"


class TestVideoPipeline:
    """Thumbnails against a video through a mocked ffmpeg."""

    @staticmethod
    def _process(report):
        process = MagicMock()
        process.stdout = iter(report.splitlines(keepends=True))
        process.wait.return_value = 0
        process.__enter__.return_value = process
        return process

    def test_sustained_spike_is_one_interval(self):
        """Test a three second spike clusters into one interval for its episode only."""
        spike = "".join(
            f"frame:{i} pts:{int(t * 1000)} pts_time:{t}\nlavfi.blackframe.pblack=91\n"
            for i, t in enumerate([120.0, 120.5, 121.0, 121.5, 122.0, 122.5, 123.0])
        )

        def popen(command, **kwargs):
            thumbnail = Path(command[command.index("-loop") + 3])
            return self._process(spike if thumbnail.stem == "S1E1" else "")

        comparator = FrameComparator(settings=MatchingSettings(max_workers=2))
        thumbnails = {"S1E1": Path("S1E1.jpg"), "S1E2": Path("S1E2.jpg")}

        with patch("autotag.video.compare.subprocess.Popen", side_effect=popen):
            results = comparator.compare_all([Path("rip.mkv")], thumbnails)

        conflict_set = aggregate_video_results(results, episode_order=list(thumbnails))
        assert conflict_set["S1E1"][0].intervals == (MatchInterval(91.0, 120.0, 123.0),)
        assert conflict_set["S1E2"][0].intervals == ()

        decision = resolve_video_claims(conflict_set)
        assert not decision.conflicted
        renames = build_video_renames(decision, list(thumbnails))
        assert renames.renames == {"rip.mkv": "S1E1.mkv"}
        assert renames.unresolved == {"S1E2": "unresolved - no match"}
