"""Parser for ffmpeg ``metadata=mode=print`` frame reports.

A report is a sequence of blocks::

    frame:41   pts:41041  pts_time:41.041
    lavfi.blackframe.pblack=92

Each ``frame:`` line opens a block, ``key=value`` lines belong to the most
recently opened block, anything else is noise.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from autotag.config.settings import DEFAULT_CONFIDENCE_KEY

logger = logging.getLogger(__name__)

_FRAME_START = re.compile(
    r"^frame:(?P<frame>\d+)\s*pts:(?P<pts>-?\d+)\s*pts_time:(?P<pts_time>-?[0-9.]+)"
)
_METADATA = re.compile(r"^(?P<key>[^=\s]+)=(?P<value>.*)$")


@dataclass
class FrameBlock:
    """Raw frame block as it appears in the report."""

    frame_index: int
    pts: int
    pts_time: float
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class FrameEvent:
    """A frame that passed the comparison gate, with its confidence."""

    frame_index: int
    pts: int
    pts_time: float
    confidence: float


def parse_frame_blocks(report: str) -> List[FrameBlock]:
    """Split a frame report into blocks.

    Args:
        report: Text emitted by ffmpeg on stdout

    Returns:
        List[FrameBlock]: Blocks in report order
    """
    blocks: List[FrameBlock] = []
    current: Optional[FrameBlock] = None

    for line in report.splitlines():
        line = line.strip()
        if not line:
            continue

        start = _FRAME_START.match(line)
        if start:
            try:
                current = FrameBlock(
                    frame_index=int(start.group("frame")),
                    pts=int(start.group("pts")),
                    pts_time=float(start.group("pts_time")),
                )
            except ValueError:
                # metadata until the next frame line belongs to the dropped frame
                logger.debug(f"Skipping malformed frame line: {line!r}")
                current = None
                continue
            blocks.append(current)
            continue

        meta = _METADATA.match(line)
        if meta and current is not None:
            current.metadata[meta.group("key")] = meta.group("value").strip()

    return blocks


def parse_frame_events(report: str, confidence_key: str = DEFAULT_CONFIDENCE_KEY) -> List[FrameEvent]:
    """Parse a frame report into confidence-carrying events.

    Blocks without the confidence key, or with a value that is not a number,
    are dropped rather than defaulted to zero.

    Args:
        report: Text emitted by ffmpeg on stdout
        confidence_key: Metadata key carrying the match confidence

    Returns:
        List[FrameEvent]: Events in report order
    """
    events: List[FrameEvent] = []
    dropped = 0

    for block in parse_frame_blocks(report):
        raw = block.metadata.get(confidence_key)
        if raw is None:
            dropped += 1
            continue
        try:
            confidence = float(raw)
        except ValueError:
            dropped += 1
            continue

        events.append(
            FrameEvent(
                frame_index=block.frame_index,
                pts=block.pts,
                pts_time=block.pts_time,
                confidence=confidence,
            )
        )

    if dropped:
        logger.debug(f"Dropped {dropped} frame blocks without a usable {confidence_key}")

    return events
