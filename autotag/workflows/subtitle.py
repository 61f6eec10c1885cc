"""Tag episodes by comparing extracted subtitle tracks with reference subtitles."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from rich.table import Table

from autotag.matching.aggregator import EpisodeSuggestion, aggregate_subtitle_rankings
from autotag.matching.resolver import (
    SubtitleDecision,
    build_subtitle_renames,
    resolve_subtitle_suggestions,
)
from autotag.media.scanner import ScanResult
from autotag.parsers.episode import EpisodeRange, parse_episode_key
from autotag.providers.base import NotFoundError, ProviderError
from autotag.providers.opensubtitles import OpenSubtitlesProvider
from autotag.subtitles.distance import SubtitleMatcher
from autotag.subtitles.normalize import SubtitleDocument
from autotag.utils.errors import AutotagError, FileSystemError
from autotag.workflows.base import TaggingWorkflow

logger = logging.getLogger(__name__)


class SubtitleTaggingWorkflow(TaggingWorkflow):
    """Match ``<name>.srt`` files extracted from videos against reference subtitles.

    References come from a local directory of ``S<s>E<e>.srt`` files or are
    downloaded from OpenSubtitles for the episodes listed on TheTVDB. Every
    suggestion is shown to the operator before anything is renamed.
    """

    strategy = "subtitle"

    def run(
        self,
        directory: Path,
        show_name: Optional[str] = None,
        range_text: Optional[str] = None,
        reference_dir: Optional[Path] = None,
        print_subs: bool = False,
        force: bool = False,
    ) -> bool:
        """Run the subtitle tagging workflow.

        Args:
            directory: Directory holding the videos and their extracted subtitles
            show_name: Show to search for (defaults to the parent directory name)
            range_text: Episode range such as ``S01E01S01E10``
            reference_dir: Local reference subtitles instead of downloading
            print_subs: Print the normalized reference subtitles
            force: Skip the confirmation prompt

        Returns:
            bool: True if the run completed, False otherwise
        """
        logger.info(f"Starting subtitle tagging for: {directory}")

        try:
            scan = self.scanner.scan_directory(directory)
            candidates = self._load_candidates(scan)
            if not candidates:
                self.console.print(f"[yellow]No extracted subtitles found in {directory}[/yellow]")
                return False

            show_title, episode_range = self._resolve_target(directory, show_name, range_text)

            if reference_dir is not None:
                references = self._load_local_references(reference_dir, episode_range)
            else:
                references = self._download_references(show_title, episode_range)
                if references is None:
                    self.console.print("[yellow]Search cancelled.[/yellow]")
                    return False

            if not references:
                self.console.print("[yellow]No reference subtitles available.[/yellow]")
                return False

            if print_subs:
                self._print_references(references)

            self.console.print("[dim]Running levenshtein distance...[/dim]")
            matcher = SubtitleMatcher(max_workers=self.settings.worker_count)
            rankings = matcher.match(references, candidates)

            suggestions = aggregate_subtitle_rankings(rankings)
            decision = resolve_subtitle_suggestions(suggestions)
            self._display_suggestions(decision, scan)

            episode_order = [reference.key for reference in references]
            video_names = self._video_names(scan, candidates)
            rename_decision = build_subtitle_renames(decision, video_names, episode_order)
            self._display_unresolved(rename_decision)

            if not rename_decision.renames:
                self.console.print("[yellow]Nothing to rename.[/yellow]")
                return True

            renamed_stems = {Path(name).stem for name in rename_decision.renames}
            deletions = [
                path for path in scan.unlabeled_subtitles if path.stem in renamed_stems
            ]
            plan = self._build_plan(
                directory,
                rename_decision,
                deletions=deletions,
                show_title=show_title,
                episode_range=episode_range,
            )

            if not self._confirm_plan(plan, force):
                logger.info("Rename cancelled by user")
                self.console.print("[yellow]Rename cancelled.[/yellow]")
                return False

            success = self._execute_plan(plan)
            if success and not self.dry_run:
                self.console.print("\n[bold green]Renamed.[/bold green]")
            return success

        except ProviderError as e:
            logger.error(f"Provider error: {e}", exc_info=self.verbose)
            self.console.print(f"[red]Provider error:[/red] {e}")
            return False
        except AutotagError as e:
            logger.error(f"Error: {e}", exc_info=self.verbose)
            self.console.print(f"[red]Error:[/red] {e}")
            return False

    def _load_candidates(self, scan: ScanResult) -> List[SubtitleDocument]:
        """Read and normalize the extracted (unlabeled) subtitles."""
        self.console.print("[dim]Reading subtitles extracted from videos...[/dim]")
        return [self._read_subtitle(path) for path in scan.unlabeled_subtitles]

    @staticmethod
    def _read_subtitle(path: Path, key: Optional[str] = None) -> SubtitleDocument:
        try:
            return SubtitleDocument.from_file(path, key=key)
        except OSError as e:
            raise FileSystemError(f"Failed to read subtitles {path}: {e}")

    @staticmethod
    def _video_names(scan: ScanResult, candidates: List[SubtitleDocument]) -> Dict[str, str]:
        """Map each extracted subtitle stem to the video it came from."""
        names = {}
        for candidate in candidates:
            video = scan.video_for_subtitle(candidate.key)
            if video is None:
                logger.warning(f"No video found for {candidate.key}.srt")
                continue
            names[candidate.key] = video.name
        return names

    def _load_local_references(
        self, reference_dir: Path, episode_range: Optional[EpisodeRange]
    ) -> List[SubtitleDocument]:
        """Read ``S<s>E<e>.srt`` references from a directory, in episode order."""
        scan = self.scanner.scan_directory(reference_dir)
        references = []
        for key, path in scan.reference_subtitles.items():
            season, episode = parse_episode_key(key)
            if episode_range is not None and not episode_range.contains(season, episode):
                continue
            references.append(((season, episode), self._read_subtitle(path, key=key)))

        references.sort(key=lambda item: item[0])
        logger.info(f"Loaded {len(references)} reference subtitles from {reference_dir}")
        return [document for _, document in references]

    def _download_references(
        self, show_title: str, episode_range: Optional[EpisodeRange]
    ) -> Optional[List[SubtitleDocument]]:
        """Fetch the most downloaded subtitle of every episode in range.

        Returns:
            List[SubtitleDocument] | None: References, or None if the show
                search was cancelled
        """
        api_key = self.config.require(
            "metadata",
            "opensubtitles_api_key",
            hint="Get an API key at https://www.opensubtitles.com/consumers",
        )
        opensubtitles = OpenSubtitlesProvider(api_key=api_key)

        show = self._select_show(show_title)
        if show is None:
            return None

        series = self.tvdb.get_series(show.id)
        if not series.imdb_id:
            raise ProviderError(f"{series.title} has no IMDb id on TheTVDB")

        episodes = self._list_episodes(show, episode_range)

        self.console.print("[dim]Fetching subtitles from opensubtitles.com...[/dim]")
        references = []
        for episode in episodes:
            try:
                text = opensubtitles.get_episode_subtitles(
                    series.imdb_id,
                    episode.season,
                    episode.episode_number,
                    language=self.settings.language,
                )
            except NotFoundError as e:
                logger.warning(str(e))
                self.console.print(f"[yellow]Skipping {episode.display_id}:[/yellow] {e}")
                continue
            references.append(SubtitleDocument.from_text(episode.display_id, text))

        return references

    def _print_references(self, references: List[SubtitleDocument]) -> None:
        """Show the normalized text of each reference."""
        for reference in references:
            self.console.print(f"\n[bold]{reference.key}:[/bold]")
            self.console.print(reference.normalized_text, markup=False, highlight=False)
        self.console.print()

    def _display_suggestions(self, decision: SubtitleDecision, scan: ScanResult) -> None:
        """Print the best file for every episode with its closest negative."""
        table = Table(title="Subtitle Matches")
        table.add_column("File", style="dim")
        table.add_column("Episode", style="cyan")
        table.add_column("Likeness", justify="right")
        table.add_column("Closest Negative", justify="right")

        for suggestion in decision.suggestions:
            table.add_row(
                self._source_label(suggestion, scan),
                self._target_label(suggestion, scan),
                str(suggestion.claim.distance),
                str(suggestion.runner_up) if suggestion.runner_up is not None else "-",
                style="yellow" if suggestion.claim.file in decision.contested else None,
            )

        self.console.print(table)

        for file, episodes in decision.contested.items():
            self.console.print(
                f"[yellow]Warning: {file} is the best match for {', '.join(episodes)}; "
                f"it will not be renamed[/yellow]"
            )

    @staticmethod
    def _source_label(suggestion: EpisodeSuggestion, scan: ScanResult) -> str:
        video = scan.video_for_subtitle(suggestion.claim.file)
        return video.name if video else f"{suggestion.claim.file}.srt"

    @staticmethod
    def _target_label(suggestion: EpisodeSuggestion, scan: ScanResult) -> str:
        video = scan.video_for_subtitle(suggestion.claim.file)
        return f"{suggestion.episode}{video.suffix}" if video else suggestion.episode

