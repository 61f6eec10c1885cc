"""Frame report parsing, interval clustering and ffmpeg comparisons."""

from autotag.video.clustering import MatchInterval, cluster_events
from autotag.video.compare import ComparisonResult, FrameComparator
from autotag.video.frames import FrameBlock, FrameEvent, parse_frame_blocks, parse_frame_events

__all__ = [
    "ComparisonResult",
    "FrameBlock",
    "FrameComparator",
    "FrameEvent",
    "MatchInterval",
    "cluster_events",
    "parse_frame_blocks",
    "parse_frame_events",
]
