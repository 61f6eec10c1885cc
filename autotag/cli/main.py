"""Main CLI entry point for autotag.

Implements git-like command structure:
- autotag subs
- autotag video
- autotag config (set|list)
"""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from autotag.config import Config
from autotag.utils.errors import AutotagError, ConfigError
from autotag.utils.logging import setup_logging

console = Console()

SENSITIVE_KEYS = {"api_key", "password", "token", "secret"}


def get_config(required: bool = True) -> Optional[Config]:
    """
    Get configuration instance with error handling.

    Args:
        required: Fail when no configuration file exists

    Returns:
        Config | None: Config instance or None if error
    """
    try:
        return Config(required=required)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        return None


def _redact(key: str, value: str) -> str:
    if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
        return "********"
    return value


@click.group()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would be renamed without making changes",
)
@click.pass_context
def cli(ctx, verbose: bool, dry_run: bool):
    """autotag - Name raw episode files after the episode they contain."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["dry_run"] = dry_run
    setup_logging(verbose=verbose)


# ============================================================================
# Tagging Commands
# ============================================================================


@cli.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=False,
    default=None,
)
@click.option("--show", "show_name", help="Show name (defaults to the parent directory name)")
@click.option("--range", "range_text", help="Episode range, e.g. S01E01S01E10")
@click.option(
    "--reference-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Use local S<s>E<e>.srt reference subtitles instead of downloading",
)
@click.option("--print-subs", is_flag=True, help="Print the normalized reference subtitles")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Skip confirmation prompt",
)
@click.pass_context
def subs(
    ctx,
    directory: Optional[Path],
    show_name: Optional[str],
    range_text: Optional[str],
    reference_dir: Optional[Path],
    print_subs: bool,
    force: bool,
):
    """
    Tag episodes by their extracted subtitles.

    DIRECTORY: Directory with videos and their extracted .srt files
    (defaults to current directory)
    """
    from autotag.workflows import SubtitleTaggingWorkflow

    config = get_config(required=reference_dir is None)
    if config is None:
        sys.exit(1)

    try:
        workflow = SubtitleTaggingWorkflow(
            config=config,
            console=console,
            verbose=ctx.obj.get("verbose", False),
            dry_run=ctx.obj.get("dry_run", False),
        )

        success = workflow.run(
            directory=directory or Path.cwd(),
            show_name=show_name,
            range_text=range_text,
            reference_dir=reference_dir,
            print_subs=print_subs,
            force=force,
        )

        sys.exit(0 if success else 1)

    except AutotagError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    required=False,
    default=None,
)
@click.option("--show", "show_name", help="Show name (defaults to the parent directory name)")
@click.option("--range", "range_text", help="Episode range, e.g. S01E01S01E10")
@click.option(
    "--thumbnails-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Use local S<s>E<e>.jpg thumbnails instead of downloading",
)
@click.option(
    "--merge-gap",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between matching frames that still count as one match",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Skip confirmation prompt",
)
@click.pass_context
def video(
    ctx,
    directory: Optional[Path],
    show_name: Optional[str],
    range_text: Optional[str],
    thumbnails_dir: Optional[Path],
    merge_gap: Optional[float],
    force: bool,
):
    """
    Tag episodes by finding their thumbnails in the videos (requires ffmpeg).

    DIRECTORY: Directory with the videos (defaults to current directory)
    """
    from autotag.workflows import VideoTaggingWorkflow

    config = get_config(required=thumbnails_dir is None)
    if config is None:
        sys.exit(1)

    try:
        workflow = VideoTaggingWorkflow(
            config=config,
            console=console,
            verbose=ctx.obj.get("verbose", False),
            dry_run=ctx.obj.get("dry_run", False),
        )

        success = workflow.run(
            directory=directory or Path.cwd(),
            show_name=show_name,
            range_text=range_text,
            thumbnails_dir=thumbnails_dir,
            merge_gap=merge_gap,
            force=force,
        )

        sys.exit(0 if success else 1)

    except AutotagError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


# ============================================================================
# Config Commands
# ============================================================================


@cli.group()
def config():
    """Manage configuration."""
    pass


@config.command()
@click.argument("key")
@click.argument("value")
@click.option(
    "--target",
    type=click.Choice(["local", "user"]),
    help="Target config location (local or user)",
)
@click.pass_context
def set(ctx, key: str, value: str, target: Optional[str]):
    """
    Set a configuration value.

    KEY: Configuration key in format 'section.key'
    VALUE: Value to set
    """
    if "." not in key:
        console.print(
            "[red]Error:[/red] Key must be in format 'section.key' "
            "(e.g., 'metadata.tvdb_api_key')"
        )
        sys.exit(1)

    cfg = get_config(required=False)
    if cfg is None:
        sys.exit(1)

    section, key_name = key.rsplit(".", 1)
    shown = _redact(key_name, value)

    try:
        if ctx.obj.get("dry_run"):
            console.print(f"[yellow]Dry run:[/yellow] Would set {section}.{key_name} = {shown}")
        else:
            cfg.set(section, key_name, value)
            path = cfg.save(target=target)
            console.print(f"[green]✓[/green] Set {section}.{key_name} = {shown}")
            console.print(f"[dim]Saved to {path}[/dim]")

    except AutotagError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@config.command("list")
@click.option(
    "--section",
    "-s",
    help="Show only specific section",
)
def list_config(section: Optional[str]):
    """Display configuration values."""
    cfg = get_config()
    if cfg is None:
        sys.exit(1)

    sections = [section] if section else cfg.get_sections()

    if not sections:
        console.print("[yellow]Configuration is empty.[/yellow]")
        return

    for sec in sections:
        items = cfg.get_all(sec)
        if not items:
            console.print(f"[yellow]Section '{sec}' is empty or does not exist.[/yellow]")
            continue

        table = Table(title=f"[{sec}]")
        table.add_column("Key", style="cyan")
        table.add_column("Value")

        for key, value in items.items():
            table.add_row(key, _redact(key, value))

        console.print(table)
        console.print()


def main():
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
