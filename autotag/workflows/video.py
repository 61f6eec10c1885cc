"""Tag episodes by finding each episode's thumbnail inside the video files."""

import dataclasses
import logging
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional
from urllib.parse import urlparse

from rich.table import Table

from autotag.matching.aggregator import aggregate_video_results
from autotag.matching.claims import ConflictSet
from autotag.matching.resolver import (
    build_video_renames,
    describe_conflict,
    resolve_video_claims,
    write_conflict_dump,
)
from autotag.media.scanner import MediaScanner
from autotag.parsers.episode import EpisodeRange, parse_episode_key
from autotag.providers.base import ProviderError
from autotag.utils.errors import AutotagError
from autotag.video.compare import ComparisonResult, FrameComparator
from autotag.workflows.base import TaggingWorkflow

logger = logging.getLogger(__name__)

BELL = "\a"


class VideoTaggingWorkflow(TaggingWorkflow):
    """Compare every video with every episode thumbnail and rename on a clean result.

    If two episodes claim the same video, nothing is renamed and the claims
    are written to ``<episode>.json`` files for manual review.
    """

    strategy = "video"

    def run(
        self,
        directory: Path,
        show_name: Optional[str] = None,
        range_text: Optional[str] = None,
        thumbnails_dir: Optional[Path] = None,
        merge_gap: Optional[float] = None,
        force: bool = False,
    ) -> bool:
        """Run the video tagging workflow.

        Args:
            directory: Directory holding the videos
            show_name: Show to search for (defaults to the parent directory name)
            range_text: Episode range such as ``S01E01S01E10``
            thumbnails_dir: Local ``S<s>E<e>.jpg`` thumbnails instead of downloading
            merge_gap: Override for the interval merge gap in seconds
            force: Skip the confirmation prompt

        Returns:
            bool: True if the run completed without conflicts, False otherwise
        """
        logger.info(f"Starting video tagging for: {directory}")

        try:
            if merge_gap is not None:
                self.settings = dataclasses.replace(self.settings, merge_gap=merge_gap)

            comparator = FrameComparator(settings=self.settings)
            comparator.ensure_available()

            scan = self.scanner.scan_directory(directory)
            videos = scan.unlabeled_videos
            if not videos:
                self.console.print(f"[yellow]No untagged videos found in {directory}[/yellow]")
                return False

            show_title, episode_range = self._resolve_target(directory, show_name, range_text)

            if thumbnails_dir is not None:
                thumbnails = self._load_local_thumbnails(thumbnails_dir, episode_range)
            else:
                thumbnails = self._download_thumbnails(directory, show_title, episode_range)
                if thumbnails is None:
                    self.console.print("[yellow]Search cancelled.[/yellow]")
                    return False

            if not thumbnails:
                self.console.print("[yellow]No episode thumbnails available.[/yellow]")
                return False

            results = self._compare(comparator, videos, thumbnails)
            episode_order = list(thumbnails)
            conflict_set = aggregate_video_results(results, episode_order=episode_order)
            self._display_claims(conflict_set)

            decision = resolve_video_claims(conflict_set)
            if decision.conflicted:
                paths = write_conflict_dump(conflict_set, directory)
                self.console.print(f"\n[red]Conflict:[/red] {describe_conflict(decision)}")
                self.console.print(
                    f"[yellow]User intervention required. Stored {len(paths)} results "
                    f"as SxxExx.json files in {directory}[/yellow]"
                )
                return False

            rename_decision = build_video_renames(decision, episode_order)
            self._display_unresolved(rename_decision)

            if not rename_decision.renames:
                self.console.print("[yellow]No matches found. Nothing to rename.[/yellow]")
                return True

            plan = self._build_plan(
                directory,
                rename_decision,
                show_title=show_title,
                episode_range=episode_range,
            )

            if not self._confirm_plan(plan, force):
                logger.info("Rename cancelled by user")
                self.console.print("[yellow]Rename cancelled.[/yellow]")
                return False

            success = self._execute_plan(plan)
            if success and not self.dry_run:
                self.console.print("\n[bold green]No conflicts found. Media renamed.[/bold green]")
            return success

        except ProviderError as e:
            logger.error(f"Provider error: {e}", exc_info=self.verbose)
            self.console.print(f"[red]Provider error:[/red] {e}")
            return False
        except AutotagError as e:
            logger.error(f"Error: {e}", exc_info=self.verbose)
            self.console.print(f"[red]Error:[/red] {e}")
            return False
        finally:
            # Ring the bell so a long run is noticed, even over ssh
            self.console.file.write(BELL)
            self.console.file.flush()

    def _load_local_thumbnails(
        self, thumbnails_dir: Path, episode_range: Optional[EpisodeRange]
    ) -> Dict[str, Path]:
        """Collect ``S<s>E<e>`` images from a directory, in episode order."""
        scan = MediaScanner().scan_directory(thumbnails_dir)
        keyed = []
        for key, path in scan.thumbnails.items():
            season, episode = parse_episode_key(key)
            if episode_range is not None and not episode_range.contains(season, episode):
                continue
            keyed.append(((season, episode), key, path))

        keyed.sort(key=lambda item: item[0])
        logger.info(f"Loaded {len(keyed)} thumbnails from {thumbnails_dir}")
        return {key: path for _, key, path in keyed}

    def _download_thumbnails(
        self, directory: Path, show_title: str, episode_range: Optional[EpisodeRange]
    ) -> Optional[Dict[str, Path]]:
        """Download the TheTVDB thumbnail of every episode in range into ``directory``.

        Returns:
            Dict[str, Path] | None: Thumbnails keyed by episode, or None if the
                show search was cancelled
        """
        show = self._select_show(show_title)
        if show is None:
            return None

        episodes = self._list_episodes(show, episode_range)

        thumbnails: Dict[str, Path] = {}
        with self.console.status("[bold green]Fetching thumbnails...") as status:
            for episode in episodes:
                if not episode.thumbnail_url:
                    logger.warning(f"{episode.display_id} has no thumbnail on TheTVDB")
                    continue

                status.update(f"[bold green]Fetching {episode.display_id}...")
                suffix = PurePosixPath(urlparse(episode.thumbnail_url).path).suffix or ".jpg"
                destination = directory / f"{episode.display_id}{suffix}"
                thumbnails[episode.display_id] = self.tvdb.download_image(
                    episode.thumbnail_url, destination
                )

        self.console.print(f"[dim]{len(thumbnails)} thumbnails retrieved.[/dim]")
        return thumbnails

    def _compare(
        self,
        comparator: FrameComparator,
        videos: List[Path],
        thumbnails: Dict[str, Path],
    ) -> List[ComparisonResult]:
        """Run all comparisons with a progress spinner."""
        total = len(videos) * len(thumbnails)
        done = 0
        self.console.print("[dim]Comparing episodes. This could take a while...[/dim]")

        with self.console.status(f"[bold green]Comparing 0/{total}...") as status:

            def progress(result: ComparisonResult) -> None:
                nonlocal done
                done += 1
                status.update(f"[bold green]Comparing {done}/{total}...")
                if result.failed:
                    logger.warning(f"Comparison failed: {result.video.name} vs {result.episode}")

            return comparator.compare_all(videos, thumbnails, on_result=progress)

    def _display_claims(self, conflict_set: ConflictSet) -> None:
        """Show which videos matched each thumbnail."""
        table = Table(title="Thumbnail Matches")
        table.add_column("Episode", style="cyan")
        table.add_column("File", style="bold")
        table.add_column("Confidence", justify="right")
        table.add_column("Matches", justify="right")
        table.add_column("First Seen", justify="right", style="dim")

        for episode, claims in conflict_set.items():
            matched = [claim for claim in claims if claim.qualifies]
            if not matched:
                table.add_row(episode, "[dim]No match[/dim]", "-", "0", "-")
                continue
            for claim in matched:
                table.add_row(
                    episode,
                    claim.file,
                    f"{claim.confidence:g}",
                    str(len(claim.intervals)),
                    f"{claim.intervals[0].start:.1f}s",
                )

        self.console.print(table)
