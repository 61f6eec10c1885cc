"""Decide which claims are applied automatically and which need a human.

Video claims are cross-checked: if two episodes pick the same file, the run
is flagged as conflicted, nothing is renamed and a per-episode dump is written
for manual review. Subtitle suggestions always go to the operator for
confirmation; files suggested for more than one episode are reported as
contested and never renamed automatically.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from autotag.matching.aggregator import EpisodeSuggestion
from autotag.matching.claims import ConflictSet
from autotag.utils.errors import FileSystemError

logger = logging.getLogger(__name__)

UNRESOLVED_CONFLICT = "unresolved - see dump"
UNRESOLVED_CONTESTED = "unresolved - file claimed by several episodes"
UNRESOLVED_NO_MATCH = "unresolved - no match"


@dataclass(frozen=True)
class VideoDecision:
    """Outcome of resolving video claims."""

    accepted: Dict[str, str] = field(default_factory=dict)  # file -> episode
    conflicts: Tuple[Tuple[str, str, str], ...] = ()  # (file, first episode, second episode)
    unmatched: Tuple[str, ...] = ()

    @property
    def conflicted(self) -> bool:
        """True if any file was claimed twice."""
        return bool(self.conflicts)


@dataclass(frozen=True)
class SubtitleDecision:
    """Outcome of resolving subtitle suggestions."""

    suggestions: Tuple[EpisodeSuggestion, ...] = ()
    contested: Dict[str, Tuple[str, ...]] = field(default_factory=dict)  # file -> episodes

    @property
    def accepted(self) -> Dict[str, str]:
        """Uncontested suggestions as file -> episode."""
        return {
            s.claim.file: s.episode
            for s in self.suggestions
            if s.claim.file not in self.contested
        }


@dataclass(frozen=True)
class RenameDecision:
    """Final mapping handed to the rename step."""

    renames: Dict[str, str] = field(default_factory=dict)  # source name -> target name
    unresolved: Dict[str, str] = field(default_factory=dict)  # episode -> reason


def resolve_video_claims(conflict_set: ConflictSet) -> VideoDecision:
    """Apply the early-stop conflict policy to video claims.

    Episodes are scanned in the conflict set's order and every matched claim
    is recorded, not only the first. The first file matched under a second
    episode marks the run as conflicted and stops the scan; a conflicted run
    accepts nothing. Otherwise each episode takes its first matched claim.

    Args:
        conflict_set: Video claims grouped by episode

    Returns:
        VideoDecision: Accepted mapping, or the detected conflict
    """
    claimed_by: Dict[str, str] = {}
    accepted: Dict[str, str] = {}
    unmatched: List[str] = []

    for episode, claims in conflict_set.items():
        best = conflict_set.best(episode)
        if best is None:
            unmatched.append(episode)
            continue

        for claim in claims:
            if not claim.qualifies:
                continue
            if claim.file in claimed_by:
                first = claimed_by[claim.file]
                logger.warning(f"{claim.file} matches both {first} and {episode}")
                return VideoDecision(
                    conflicts=((claim.file, first, episode),),
                    unmatched=tuple(unmatched),
                )
            claimed_by[claim.file] = episode

        accepted[best.file] = episode

    return VideoDecision(accepted=accepted, unmatched=tuple(unmatched))


def resolve_subtitle_suggestions(suggestions: Sequence[EpisodeSuggestion]) -> SubtitleDecision:
    """Keep every suggestion and report files suggested more than once.

    Args:
        suggestions: Best subtitle claim per episode

    Returns:
        SubtitleDecision: Suggestions plus contested files
    """
    episodes_by_file: Dict[str, List[str]] = {}
    for suggestion in suggestions:
        episodes_by_file.setdefault(suggestion.claim.file, []).append(suggestion.episode)

    contested = {
        file: tuple(episodes)
        for file, episodes in episodes_by_file.items()
        if len(episodes) > 1
    }
    for file, episodes in contested.items():
        logger.warning(f"{file} is the best subtitle match for {', '.join(episodes)}")

    return SubtitleDecision(suggestions=tuple(suggestions), contested=contested)


def build_video_renames(
    decision: VideoDecision, episode_order: Sequence[str]
) -> RenameDecision:
    """Translate a video decision into source -> target names.

    Args:
        decision: Resolved video claims
        episode_order: All episodes considered in the run

    Returns:
        RenameDecision: Renames, or every episode unresolved on conflict
    """
    if decision.conflicted:
        return RenameDecision(unresolved={episode: UNRESOLVED_CONFLICT for episode in episode_order})

    renames = {
        file: f"{episode}{Path(file).suffix}"
        for file, episode in decision.accepted.items()
    }
    matched = set(decision.accepted.values())
    unresolved = {
        episode: UNRESOLVED_NO_MATCH for episode in episode_order if episode not in matched
    }
    return RenameDecision(renames=renames, unresolved=unresolved)


def build_subtitle_renames(
    decision: SubtitleDecision,
    video_names: Dict[str, str],
    episode_order: Sequence[str],
) -> RenameDecision:
    """Translate subtitle suggestions into video source -> target names.

    Args:
        decision: Resolved subtitle suggestions
        video_names: Video file name keyed by subtitle stem
        episode_order: All episodes considered in the run

    Returns:
        RenameDecision: Renames for uncontested suggestions with a video
    """
    renames: Dict[str, str] = {}
    unresolved: Dict[str, str] = {}
    suggested = {s.episode: s for s in decision.suggestions}

    for episode in episode_order:
        suggestion = suggested.get(episode)
        if suggestion is None:
            unresolved[episode] = UNRESOLVED_NO_MATCH
            continue
        if suggestion.claim.file in decision.contested:
            unresolved[episode] = UNRESOLVED_CONTESTED
            continue

        video_name = video_names.get(suggestion.claim.file)
        if video_name is None:
            unresolved[episode] = f"unresolved - no video for {suggestion.claim.file}.srt"
            continue

        renames[video_name] = f"{episode}{Path(video_name).suffix}"

    return RenameDecision(renames=renames, unresolved=unresolved)


def write_conflict_dump(conflict_set: ConflictSet, directory: Path) -> List[Path]:
    """Persist the ordered claim list of every episode as ``<episode>.json``.

    Args:
        conflict_set: Claims grouped by episode
        directory: Where to write the dump files

    Returns:
        List[Path]: Written files

    Raises:
        FileSystemError: If a dump file cannot be written
    """
    written: List[Path] = []
    directory.mkdir(parents=True, exist_ok=True)

    for episode, claims in conflict_set.items():
        path = directory / f"{episode}.json"
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump([claim.to_dict() for claim in claims], f, indent="\t")
        except OSError as e:
            raise FileSystemError(f"Failed to write conflict dump {path}: {e}")
        written.append(path)

    logger.info(f"Wrote {len(written)} conflict dump files to {directory}")
    return written


def describe_conflict(decision: VideoDecision) -> Optional[str]:
    """Human readable summary of the first conflict, if any."""
    if not decision.conflicts:
        return None
    file, first, second = decision.conflicts[0]
    return f"{file} matches both {first} and {second}"
