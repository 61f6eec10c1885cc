"""Tests for the subtitle tagging workflow."""

import json
from io import StringIO
from unittest.mock import Mock, patch

import pytest
from rich.console import Console

from autotag.config import Config
from autotag.parsers.episode import EpisodeCandidate
from autotag.providers.base import NotFoundError, SearchResult, SeriesMetadata
from autotag.subtitles.normalize import SubtitleDocument
from autotag.workflows.subtitle import SubtitleTaggingWorkflow

DIALOGUE = {
    "S1E1": "Welcome to the island. Nobody leaves before the storm passes.",
    "S1E2": "The radio tower is broken and the captain wants answers now.",
    "S1E3": "We found the map in the cellar, under the old piano.",
}


def srt(text):
    return f"1\n00:00:01,000 --> 00:00:04,000\n{text}\n"


@pytest.fixture
def config(tmp_path):
    """Config without credentials, computing distances inline."""
    path = tmp_path / "test.conf"
    path.write_text("[matching]\nmax_workers = 1\n")
    return Config(local_path=path, user_path=tmp_path / "none")


@pytest.fixture
def console():
    return Console(file=StringIO(), width=200)


@pytest.fixture
def work_dir(tmp_path, monkeypatch):
    """Show/S01E01S01E03 with three ripped videos and their subtitles."""
    directory = tmp_path / "Island Show" / "S01E01S01E03"
    directory.mkdir(parents=True)
    # title_t00 is episode 2, title_t01 episode 3, title_t02 episode 1
    for stem, episode in [("title_t00", "S1E2"), ("title_t01", "S1E3"), ("title_t02", "S1E1")]:
        (directory / f"{stem}.mkv").write_bytes(b"video")
        (directory / f"{stem}.srt").write_text(srt(DIALOGUE[episode] + " Extra line."))
    monkeypatch.chdir(tmp_path)
    return directory


@pytest.fixture
def reference_dir(tmp_path):
    directory = tmp_path / "refs"
    directory.mkdir()
    for episode, text in DIALOGUE.items():
        (directory / f"{episode}.srt").write_text(srt(text))
    (directory / "S2E1.srt").write_text(srt("Out of range"))
    return directory


def output(console):
    return console.file.getvalue()


class TestSubtitleWorkflowLocalReferences:
    """Test runs with a local reference directory."""

    def test_renames_videos_and_deletes_subtitles(self, config, console, work_dir, reference_dir, tmp_path):
        """Test the full happy path with --force."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert workflow.run(work_dir, reference_dir=reference_dir, force=True)

        names = sorted(p.name for p in work_dir.iterdir())
        assert names == ["S1E1.mkv", "S1E2.mkv", "S1E3.mkv"]

        logs = list(tmp_path.glob(".autotag_action_log_*.json"))
        assert len(logs) == 1
        log = json.loads(logs[0].read_text())
        assert log["type"] == "subtitle_tagging"
        assert log["plan"]["renames"] == {
            "title_t02.mkv": "S1E1.mkv",
            "title_t00.mkv": "S1E2.mkv",
            "title_t01.mkv": "S1E3.mkv",
        }
        assert all(r["status"] == "success" for r in log["results"])

    def test_displays_likeness_and_closest_negative(self, config, console, work_dir, reference_dir):
        """Test the match table lists each suggestion."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console, dry_run=True)

        assert workflow.run(work_dir, reference_dir=reference_dir)

        text = output(console)
        assert "Subtitle Matches" in text
        assert "title_t00.mkv" in text
        assert "S1E2.mkv" in text
        assert "DRY RUN" in text

    def test_dry_run_changes_nothing(self, config, console, work_dir, reference_dir, tmp_path):
        """Test --dry-run leaves the directory untouched."""
        before = sorted(p.name for p in work_dir.iterdir())
        workflow = SubtitleTaggingWorkflow(config=config, console=console, dry_run=True)

        assert workflow.run(work_dir, reference_dir=reference_dir)

        assert sorted(p.name for p in work_dir.iterdir()) == before
        assert not list(tmp_path.glob(".autotag_action_log_*.json"))

    @patch("autotag.workflows.base.prompt", return_value="n")
    def test_declined(self, mock_prompt, config, console, work_dir, reference_dir):
        """Test declining the confirmation renames nothing."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert not workflow.run(work_dir, reference_dir=reference_dir)

        assert (work_dir / "title_t00.mkv").exists()
        assert "Rename cancelled" in output(console)

    def test_unreadable_subtitle_reported(self, config, console, work_dir, reference_dir):
        """Test a subtitle that cannot be read fails the run with an error."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        with patch(
            "autotag.workflows.subtitle.SubtitleDocument.from_file",
            side_effect=PermissionError("denied"),
        ):
            assert not workflow.run(work_dir, reference_dir=reference_dir, force=True)

        text = output(console)
        assert "Error:" in text
        assert "Failed to read subtitles" in text
        assert (work_dir / "title_t00.mkv").exists()

    def test_unreadable_reference_reported(self, config, console, work_dir, reference_dir):
        """Test a reference subtitle that cannot be read fails the run with an error."""
        read = SubtitleDocument.from_file

        def from_file(path, key=None):
            if key == "S1E2":
                raise OSError("I/O error")
            return read(path, key=key)

        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        with patch("autotag.workflows.subtitle.SubtitleDocument.from_file", side_effect=from_file):
            assert not workflow.run(work_dir, reference_dir=reference_dir, force=True)

        assert "Failed to read subtitles" in output(console)
        assert (work_dir / "title_t00.mkv").exists()

    @patch("autotag.workflows.base.prompt", return_value="y")
    def test_confirmed(self, mock_prompt, config, console, work_dir, reference_dir):
        """Test confirming performs the renames."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert workflow.run(work_dir, reference_dir=reference_dir)

        assert (work_dir / "S1E1.mkv").exists()
        mock_prompt.assert_called_once()

    def test_range_limits_references(self, config, console, work_dir, reference_dir):
        """Test an explicit range drops references outside it."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert workflow.run(work_dir, range_text="S01E02S01E03", reference_dir=reference_dir, force=True)

        assert (work_dir / "S1E2.mkv").exists()
        assert (work_dir / "S1E3.mkv").exists()
        assert (work_dir / "title_t02.mkv").exists()
        assert (work_dir / "title_t02.srt").exists()

    def test_print_subs(self, config, console, work_dir, reference_dir):
        """Test normalized references are printed on request."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console, dry_run=True)

        workflow.run(work_dir, reference_dir=reference_dir, print_subs=True)

        assert DIALOGUE["S1E3"] in output(console)

    def test_contested_file_not_renamed(self, config, console, tmp_path, monkeypatch):
        """Test one file that is best for two episodes is left alone."""
        monkeypatch.chdir(tmp_path)
        directory = tmp_path / "Show" / "S01E01S01E02"
        directory.mkdir(parents=True)
        (directory / "rip.mkv").write_bytes(b"v")
        (directory / "rip.srt").write_text(srt("The same words in both episodes."))
        refs = tmp_path / "refs"
        refs.mkdir()
        (refs / "S1E1.srt").write_text(srt("The same words in both episodes!"))
        (refs / "S1E2.srt").write_text(srt("The same words in both episodes?"))

        workflow = SubtitleTaggingWorkflow(config=config, console=console)
        assert workflow.run(directory, reference_dir=refs, force=True)

        assert (directory / "rip.mkv").exists()
        text = output(console)
        assert "rip is the best match for S1E1, S1E2" in text
        assert "Nothing to rename" in text

    def test_no_extracted_subtitles(self, config, console, tmp_path, reference_dir):
        """Test a directory without extracted subtitles."""
        empty = tmp_path / "empty"
        empty.mkdir()
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert not workflow.run(empty, reference_dir=reference_dir)
        assert "No extracted subtitles" in output(console)

    def test_invalid_range(self, config, console, work_dir, reference_dir):
        """Test a malformed --range is reported."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert not workflow.run(work_dir, range_text="season one", reference_dir=reference_dir)
        assert "Invalid episode range" in output(console)

    def test_existing_target_fails_execution(self, config, console, work_dir, reference_dir, tmp_path):
        """Test an existing target aborts with a failure log."""
        (work_dir / "S1E1.mkv").write_bytes(b"already here")
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert not workflow.run(work_dir, reference_dir=reference_dir, force=True)

        assert (work_dir / "S1E1.mkv").read_bytes() == b"already here"
        assert list(tmp_path.glob(".autotag_action_log_FAILED_*.json"))


class TestSubtitleWorkflowDownloads:
    """Test runs that fetch references from the providers."""

    @pytest.fixture
    def online_config(self, tmp_path):
        path = tmp_path / "online.conf"
        path.write_text(
            "[metadata]\ntvdb_api_key = tvdb\nopensubtitles_api_key = os\n"
            "[matching]\nmax_workers = 1\n"
        )
        return Config(local_path=path, user_path=tmp_path / "none")

    @pytest.fixture
    def tvdb(self):
        tvdb = Mock()
        tvdb.search_tv.return_value = [
            SearchResult(provider="tvdb", id="42", title="Island Show", year=2020)
        ]
        tvdb.get_series.return_value = SeriesMetadata(
            provider="tvdb", id="42", title="Island Show", imdb_id="tt0000042"
        )
        tvdb.get_episode_candidates.return_value = [
            EpisodeCandidate.create(1, 1),
            EpisodeCandidate.create(1, 2),
            EpisodeCandidate.create(1, 3),
        ]
        return tvdb

    @patch("autotag.workflows.subtitle.OpenSubtitlesProvider")
    @patch("autotag.providers.search.prompt", return_value="1")
    def test_downloads_references(self, mock_prompt, mock_os_class, online_config, console, work_dir, tvdb):
        """Test references are downloaded per episode and matched."""
        mock_os_class.return_value.get_episode_subtitles.side_effect = (
            lambda imdb_id, season, episode, language: srt(DIALOGUE[f"S{season}E{episode}"])
        )
        workflow = SubtitleTaggingWorkflow(config=online_config, console=console)
        workflow._tvdb = tvdb

        assert workflow.run(work_dir, force=True)

        tvdb.search_tv.assert_called_once_with("Island Show", None)
        range_arg = tvdb.get_episode_candidates.call_args.args[1]
        assert str(range_arg) == "S01E01S01E03"
        mock_os_class.assert_called_once_with(api_key="os")
        assert sorted(p.name for p in work_dir.iterdir()) == ["S1E1.mkv", "S1E2.mkv", "S1E3.mkv"]

    @patch("autotag.workflows.subtitle.OpenSubtitlesProvider")
    @patch("autotag.providers.search.prompt", return_value="1")
    def test_missing_subtitle_skips_episode(self, mock_prompt, mock_os_class, online_config, console, work_dir, tvdb):
        """Test an episode without subtitles is skipped, the rest still match."""

        def fetch(imdb_id, season, episode, language):
            if episode == 3:
                raise NotFoundError("No en subtitles found for S1E3")
            return srt(DIALOGUE[f"S{season}E{episode}"])

        mock_os_class.return_value.get_episode_subtitles.side_effect = fetch
        workflow = SubtitleTaggingWorkflow(config=online_config, console=console)
        workflow._tvdb = tvdb

        assert workflow.run(work_dir, force=True)

        assert (work_dir / "S1E1.mkv").exists()
        assert (work_dir / "S1E2.mkv").exists()
        assert (work_dir / "title_t01.mkv").exists()
        assert "Skipping S1E3" in output(console)

    @patch("autotag.providers.search.prompt", return_value="q")
    def test_search_cancelled(self, mock_prompt, online_config, console, work_dir, tvdb):
        """Test quitting the show search."""
        workflow = SubtitleTaggingWorkflow(config=online_config, console=console)
        workflow._tvdb = tvdb

        assert not workflow.run(work_dir)
        assert "Search cancelled" in output(console)

    @patch("autotag.providers.search.prompt", return_value="1")
    def test_show_without_imdb_id(self, mock_prompt, online_config, console, work_dir, tvdb):
        """Test a provider error is reported, nothing renamed."""
        tvdb.get_series.return_value = SeriesMetadata(provider="tvdb", id="42", title="Island Show")
        workflow = SubtitleTaggingWorkflow(config=online_config, console=console)
        workflow._tvdb = tvdb

        assert not workflow.run(work_dir)
        assert "has no IMDb id" in output(console)
        assert (work_dir / "title_t00.mkv").exists()

    def test_missing_api_key(self, config, console, work_dir):
        """Test downloads require the OpenSubtitles key."""
        workflow = SubtitleTaggingWorkflow(config=config, console=console)

        assert not workflow.run(work_dir)
        assert "metadata.opensubtitles_api_key is not configured" in output(console)
