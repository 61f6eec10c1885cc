"""Temporal clustering of frame events into match intervals."""

from dataclasses import dataclass
from typing import Iterable, List

from autotag.config.settings import DEFAULT_MERGE_GAP
from autotag.video.frames import FrameEvent


@dataclass(frozen=True)
class MatchInterval:
    """A stretch of video that matched a thumbnail."""

    confidence: float
    start: float
    end: float

    @property
    def duration(self) -> float:
        """Length of the interval in seconds."""
        return self.end - self.start


def cluster_events(
    events: Iterable[FrameEvent], merge_gap: float = DEFAULT_MERGE_GAP
) -> List[MatchInterval]:
    """Fold ordered frame events into non-overlapping intervals.

    An event closer than ``merge_gap`` seconds to the end of the current
    interval extends it (keeping the highest confidence); any other event
    starts a new interval. A fade that matches a thumbnail over many frames
    therefore counts as one match.

    Args:
        events: Frame events ordered by pts_time
        merge_gap: Maximum gap in seconds between merged events

    Returns:
        List[MatchInterval]: Intervals in start order
    """
    intervals: List[MatchInterval] = []
    current = None  # [confidence, start, end]

    for event in events:
        if current is not None and event.pts_time - current[2] < merge_gap:
            current[0] = max(current[0], event.confidence)
            current[2] = event.pts_time
            continue

        if current is not None:
            intervals.append(MatchInterval(*current))
        current = [event.confidence, event.pts_time, event.pts_time]

    if current is not None:
        intervals.append(MatchInterval(*current))

    return intervals
