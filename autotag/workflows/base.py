"""Shared steps of the tagging workflows: show lookup, plan review and execution."""

import json
import logging
import shutil
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from prompt_toolkit import prompt
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from autotag.config import Config, MatchingSettings
from autotag.matching.resolver import RenameDecision
from autotag.media.scanner import MediaScanner
from autotag.parsers.episode import (
    EpisodeCandidate,
    EpisodeRange,
    infer_show_and_range,
    parse_episode_range,
)
from autotag.providers.base import SearchResult
from autotag.providers.search import InteractiveSearch
from autotag.providers.tvdb import TheTVDBProvider
from autotag.utils.errors import FileSystemError, ValidationError

logger = logging.getLogger(__name__)

ACTION_LOG_PREFIX = ".autotag_action_log_"


@dataclass
class FileAction:
    """Represents a file operation to be performed."""

    action: str  # "move" or "delete"
    source: Path
    destination: Optional[Path] = None
    file_type: Optional[str] = None  # "video", "subtitle"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "action": self.action,
            "source": str(self.source),
            "destination": str(self.destination) if self.destination else None,
            "file_type": self.file_type,
        }


@dataclass
class RenamePlan:
    """Everything a tagging run is about to change."""

    directory: Path
    strategy: str  # "subtitle" or "video"
    decision: RenameDecision
    actions: List[FileAction] = field(default_factory=list)
    show_title: Optional[str] = None
    episode_range: Optional[EpisodeRange] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "directory": str(self.directory),
            "strategy": self.strategy,
            "show_title": self.show_title,
            "episode_range": str(self.episode_range) if self.episode_range else None,
            "renames": dict(self.decision.renames),
            "unresolved": dict(self.decision.unresolved),
            "actions": [action.to_dict() for action in self.actions],
        }


class TaggingWorkflow:
    """Base class for the subtitle and video tagging workflows."""

    strategy = "base"

    def __init__(
        self,
        config: Config,
        console: Optional[Console] = None,
        verbose: bool = False,
        dry_run: bool = False,
    ):
        """Initialize workflow.

        Args:
            config: Configuration instance
            console: Rich console for output
            verbose: Enable verbose output
            dry_run: Preview actions without executing

        Raises:
            ConfigError: If the matching settings are invalid
        """
        self.config = config
        self.console = console or Console()
        self.verbose = verbose
        self.dry_run = dry_run

        self.settings = MatchingSettings.from_config(config)
        self.scanner = MediaScanner(video_extensions=self.settings.video_extensions)
        self.search = InteractiveSearch(console=self.console)
        self._tvdb: Optional[TheTVDBProvider] = None

    @property
    def tvdb(self) -> TheTVDBProvider:
        """TheTVDB client, created on first use.

        Raises:
            ConfigError: If the API key is not configured
        """
        if self._tvdb is None:
            api_key = self.config.require(
                "metadata", "tvdb_api_key", hint="Get an API key at https://thetvdb.com/api-information"
            )
            self._tvdb = TheTVDBProvider(api_key=api_key)
        return self._tvdb

    def _resolve_target(
        self,
        directory: Path,
        show_name: Optional[str],
        range_text: Optional[str],
    ) -> Tuple[str, Optional[EpisodeRange]]:
        """Work out show name and episode range for a directory.

        Explicit options win over names inferred from ``<Show>/<range>``.

        Raises:
            ValidationError: If ``range_text`` is not a valid range
        """
        inferred_show, inferred_range = infer_show_and_range(directory.resolve())

        episode_range = inferred_range
        if range_text:
            episode_range = parse_episode_range(range_text)
            if episode_range is None:
                raise ValidationError(
                    f"Invalid episode range {range_text!r}, expected e.g. S01E01S01E10"
                )

        show = show_name or inferred_show
        logger.debug(f"Target: show={show!r}, range={episode_range}")
        if self.verbose:
            self.console.print(f"[dim]Show: {show}, episodes: {episode_range or 'all'}[/dim]")
        return show, episode_range

    def _select_show(self, show_name: str) -> Optional[SearchResult]:
        """Interactive show search on TheTVDB."""
        self.console.print("\n[bold cyan]Step 1: Match Show[/bold cyan]")
        return self.search.search_and_select(
            search_func=self.tvdb.search_tv,
            initial_title=show_name,
        )

    def _list_episodes(
        self, show: SearchResult, episode_range: Optional[EpisodeRange]
    ) -> List[EpisodeCandidate]:
        """List the candidate episodes expected in the directory.

        Raises:
            ValidationError: If no range is known
            ProviderError: If the listing fails
        """
        if episode_range is None:
            raise ValidationError(
                "Episode range unknown. Name the directory like S01E01S01E10 or pass --range"
            )

        self.console.print("[dim]Calculating episode range...[/dim]")
        candidates = self.tvdb.get_episode_candidates(show.id, episode_range)
        logger.info(f"{len(candidates)} episodes of {show.title} in {episode_range}")
        return candidates

    def _build_plan(
        self,
        directory: Path,
        decision: RenameDecision,
        deletions: Optional[List[Path]] = None,
        show_title: Optional[str] = None,
        episode_range: Optional[EpisodeRange] = None,
    ) -> RenamePlan:
        """Turn a rename decision into file actions."""
        actions = [
            FileAction(
                action="move",
                source=directory / source,
                destination=directory / target,
                file_type="video",
            )
            for source, target in decision.renames.items()
        ]
        for path in deletions or []:
            actions.append(FileAction(action="delete", source=path, file_type="subtitle"))

        return RenamePlan(
            directory=directory,
            strategy=self.strategy,
            decision=decision,
            actions=actions,
            show_title=show_title,
            episode_range=episode_range,
        )

    def _display_unresolved(self, decision: RenameDecision) -> None:
        """List episodes that will not be renamed."""
        if not decision.unresolved:
            return

        table = Table(title="Unresolved Episodes")
        table.add_column("Episode", style="cyan")
        table.add_column("Status", style="yellow")
        for episode, reason in decision.unresolved.items():
            table.add_row(episode, reason)
        self.console.print(table)

    def _confirm_plan(self, plan: RenamePlan, force: bool) -> bool:
        """Display plan and request confirmation.

        Args:
            plan: Rename plan
            force: Skip confirmation if True

        Returns:
            bool: True if confirmed, False otherwise
        """
        self.console.print("\n[bold cyan]Review Action Plan[/bold cyan]")

        tree = Tree(f"[bold]{plan.show_title or plan.directory.name}[/bold]")
        tree.add(f"Directory: {plan.directory}")
        if plan.episode_range:
            tree.add(f"Episodes: {plan.episode_range}")

        action_counts: Dict[str, int] = defaultdict(int)
        for action in plan.actions:
            action_counts[action.action] += 1

        actions_node = tree.add("Actions:")
        for action in plan.actions:
            if action.action == "move":
                actions_node.add(f"{action.source.name} => {action.destination.name}")
        for action_type, count in sorted(action_counts.items()):
            actions_node.add(f"[dim]{action_type}: {count}[/dim]")

        self.console.print(tree)

        existing = [
            a.destination for a in plan.actions
            if a.action == "move" and a.destination.exists()
        ]
        for path in existing:
            self.console.print(f"[yellow]Warning: {path.name} already exists[/yellow]")

        if self.dry_run:
            self.console.print("\n[yellow]DRY RUN - No changes will be made[/yellow]")
            return True

        if force:
            return True

        try:
            confirm = prompt("\nRename? [Y/n]: ", default="y").strip().lower()
            return confirm in ("y", "yes")
        except (KeyboardInterrupt, EOFError):
            return False

    def _execute_plan(self, plan: RenamePlan) -> bool:
        """Execute the rename plan and write an action log.

        Args:
            plan: Rename plan

        Returns:
            bool: True if successful, False otherwise
        """
        if self.dry_run:
            self.console.print("[yellow]Dry run - skipping execution[/yellow]")
            return True

        log_entry: Dict[str, Any] = {
            "type": f"{plan.strategy}_tagging",
            "timestamp": datetime.now().isoformat(),
            "plan": plan.to_dict(),
            "results": [],
        }

        try:
            with self.console.status("[bold green]Renaming...") as status:
                for i, action in enumerate(plan.actions, 1):
                    status.update(f"[bold green]Executing action {i}/{len(plan.actions)}...")
                    try:
                        self._apply(action)
                        log_entry["results"].append({
                            "action": action.to_dict(),
                            "status": "success",
                        })
                    except (OSError, FileSystemError) as e:
                        log_entry["results"].append({
                            "action": action.to_dict(),
                            "status": "failed",
                            "error": str(e),
                        })
                        raise

            self._write_action_log(log_entry)
            return True

        except (OSError, FileSystemError) as e:
            logger.error(f"Rename failed: {e}")
            self.console.print(f"\n[red]Execution failed:[/red] {e}")
            try:
                self._write_action_log(log_entry, failed=True)
            except OSError as log_error:
                logger.warning(f"Could not write failure log: {log_error}")
            return False

    @staticmethod
    def _apply(action: FileAction) -> None:
        """Perform one file action."""
        if action.action == "move":
            if action.destination.exists():
                raise FileSystemError(f"Refusing to overwrite {action.destination}")
            shutil.move(str(action.source), str(action.destination))
        elif action.action == "delete":
            action.source.unlink()
        else:
            raise FileSystemError(f"Unknown action: {action.action}")

    @staticmethod
    def _write_action_log(log_entry: Dict[str, Any], failed: bool = False) -> Path:
        """Write the action log to the current directory."""
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        marker = "FAILED_" if failed else ""
        log_path = Path.cwd() / f"{ACTION_LOG_PREFIX}{marker}{stamp}.json"
        with open(log_path, "w", encoding="utf-8") as f:
            json.dump(log_entry, f, indent=2)
        logger.debug(f"Action log written to {log_path}")
        return log_path
