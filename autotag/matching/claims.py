"""Match claims and the conflict set that groups them by episode."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Literal, Optional, Sequence, Tuple

from autotag.video.clustering import MatchInterval

ClaimSource = Literal["subtitle", "video"]


@dataclass(frozen=True)
class MatchClaim:
    """Assertion that ``file`` is ``episode``.

    Subtitle claims carry an edit ``distance`` (lower is better); video
    claims carry the matched ``intervals``.
    """

    episode: str
    file: str
    source: ClaimSource
    distance: Optional[int] = None
    intervals: Tuple[MatchInterval, ...] = field(default=())

    @property
    def confidence(self) -> float:
        """Highest interval confidence (0 when nothing matched)."""
        return max((i.confidence for i in self.intervals), default=0.0)

    @property
    def qualifies(self) -> bool:
        """Whether the claim is backed by any evidence."""
        if self.source == "video":
            return bool(self.intervals)
        return self.distance is not None

    @property
    def strength(self) -> float:
        """Distance for subtitle claims, confidence for video claims."""
        if self.source == "subtitle":
            return float(self.distance if self.distance is not None else float("inf"))
        return self.confidence

    @property
    def rank_key(self) -> Tuple:
        """Sort key that puts the best claim first for either source.

        Video claims rank by presence of a match only. Several matching
        videos keep their input order; confidence never picks a winner.
        """
        if self.source == "subtitle":
            return (self.distance if self.distance is not None else float("inf"),)
        return (0 if self.intervals else 1,)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the diagnostic dump."""
        data: Dict[str, Any] = {
            "file": self.file,
            "source": self.source,
        }
        if self.source == "subtitle":
            data["distance"] = self.distance
        else:
            data["confidence"] = self.confidence
            data["matches"] = [
                {"confidence": i.confidence, "start": i.start, "end": i.end}
                for i in self.intervals
            ]
        return data


class ConflictSet(Mapping):
    """Read-only mapping of episode key to claims sorted best-first.

    Sorting happens once, at construction, and is stable: claims of equal
    rank keep their input order.
    """

    def __init__(
        self,
        claims: Iterable[MatchClaim] = (),
        episode_order: Optional[Sequence[str]] = None,
    ):
        """Group and sort claims.

        Args:
            claims: Claims from either matcher
            episode_order: Key order of the mapping; episodes listed here but
                without claims map to an empty tuple. Episodes not listed
                follow in first-seen order.
        """
        grouped: Dict[str, List[MatchClaim]] = {}
        for episode in episode_order or ():
            grouped.setdefault(episode, [])
        for claim in claims:
            grouped.setdefault(claim.episode, []).append(claim)

        self._claims: Dict[str, Tuple[MatchClaim, ...]] = {
            episode: tuple(sorted(episode_claims, key=lambda c: c.rank_key))
            for episode, episode_claims in grouped.items()
        }

    def __getitem__(self, episode: str) -> Tuple[MatchClaim, ...]:
        return self._claims[episode]

    def __iter__(self) -> Iterator[str]:
        return iter(self._claims)

    def __len__(self) -> int:
        return len(self._claims)

    def best(self, episode: str) -> Optional[MatchClaim]:
        """Best qualifying claim for an episode, if any.

        Args:
            episode: Episode key

        Returns:
            MatchClaim | None: First qualifying claim
        """
        for claim in self._claims.get(episode, ()):
            if claim.qualifies:
                return claim
        return None

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Convert to dictionary for logging."""
        return {
            episode: [claim.to_dict() for claim in claims]
            for episode, claims in self._claims.items()
        }

    def __repr__(self) -> str:
        return f"ConflictSet({len(self._claims)} episodes)"
