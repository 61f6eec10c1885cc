"""Visual comparison of videos against episode thumbnails using ffmpeg.

Each (video, thumbnail) pair runs one ffmpeg process: both streams are scaled
to the same size, blended with ``difference`` and passed through
``blackframe``. Frames that are almost black after the blend are near
copies of the thumbnail, and ffmpeg prints their metadata to stdout.
"""

import logging
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from autotag.config.settings import MatchingSettings
from autotag.utils.errors import ComparisonError
from autotag.video.clustering import MatchInterval, cluster_events
from autotag.video.frames import parse_frame_events

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of comparing one video with one episode thumbnail."""

    video: Path
    episode: str
    thumbnail: Path
    intervals: Tuple[MatchInterval, ...] = field(default=())
    failed: bool = False

    @property
    def matched(self) -> bool:
        """True if any interval matched the thumbnail."""
        return bool(self.intervals)


class FrameComparator:
    """Run ffmpeg frame comparisons, bounded by a thread pool.

    The heavy lifting happens inside ffmpeg, so threads are enough to keep
    one process per worker busy.
    """

    def __init__(self, settings: Optional[MatchingSettings] = None, ffmpeg: str = FFMPEG):
        """Initialize comparator.

        Args:
            settings: Matching settings (defaults if not provided)
            ffmpeg: ffmpeg executable name or path
        """
        self.settings = settings or MatchingSettings()
        self.ffmpeg = ffmpeg

    def ensure_available(self) -> None:
        """Check that ffmpeg can be found.

        Raises:
            ComparisonError: If ffmpeg is not on PATH
        """
        if shutil.which(self.ffmpeg) is None:
            raise ComparisonError(
                f"'{self.ffmpeg}' was not found on PATH. "
                "Install ffmpeg to use video matching."
            )

    def build_filter(self) -> str:
        """Build the ffmpeg filter graph for one comparison."""
        scale = self.settings.scale
        return (
            f"[0]scale={scale}[s1];[1]scale={scale}[s2];"
            f"[s1][s2]blend=difference,"
            f"blackframe={self.settings.percent_match}:{self.settings.threshold_match},"
            f"metadata=mode=print:key={self.settings.confidence_key}:file='pipe\\:1'"
        )

    def build_command(self, video: Path, thumbnail: Path) -> List[str]:
        """Build the ffmpeg argument list for one comparison.

        Args:
            video: Video file
            thumbnail: Thumbnail image

        Returns:
            List[str]: Command line
        """
        return [
            self.ffmpeg,
            # Only the metadata report goes to stdout
            "-loglevel", "quiet",
            "-i", str(video),
            # Loop the still image into a video stream
            "-loop", "1",
            "-i", str(thumbnail),
            # Looped stills repeat timestamps
            "-vsync", "2",
            # Stop when the video ends, the loop never does
            "-shortest",
            "-filter_complex", self.build_filter(),
            "-f", "null",
            "-",
        ]

    def _read_report(self, command: List[str]) -> Optional[str]:
        """Run ffmpeg and return its stdout, or None on failure."""
        try:
            with subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                errors="replace",
            ) as process:
                chunks = []
                for line in process.stdout:
                    chunks.append(line)
                returncode = process.wait()
        except (OSError, ValueError) as e:
            logger.warning(f"ffmpeg could not be run: {e}")
            return None

        if returncode != 0:
            logger.warning(f"ffmpeg exited with status {returncode}")
            return None

        return "".join(chunks)

    def compare(self, video: Path, episode: str, thumbnail: Path) -> ComparisonResult:
        """Compare one video with one thumbnail.

        A failed comparison is reported as zero intervals, never raised.

        Args:
            video: Video file
            episode: Episode key the thumbnail belongs to
            thumbnail: Thumbnail image

        Returns:
            ComparisonResult: Match intervals for the pair
        """
        logger.debug(f"Comparing {video.name} with {thumbnail.name}")
        report = self._read_report(self.build_command(video, thumbnail))

        if report is None:
            logger.warning(f"Comparison of {video.name} with {thumbnail.name} failed")
            return ComparisonResult(video=video, episode=episode, thumbnail=thumbnail, failed=True)

        events = parse_frame_events(report, self.settings.confidence_key)
        intervals = cluster_events(events, self.settings.merge_gap)
        logger.debug(
            f"{video.name} vs {thumbnail.name}: {len(events)} events, {len(intervals)} intervals"
        )

        return ComparisonResult(
            video=video,
            episode=episode,
            thumbnail=thumbnail,
            intervals=tuple(intervals),
        )

    def compare_all(
        self,
        videos: Sequence[Path],
        thumbnails: Dict[str, Path],
        on_result: Optional[Callable[[ComparisonResult], None]] = None,
    ) -> List[ComparisonResult]:
        """Compare every video with every thumbnail.

        Args:
            videos: Local video files
            thumbnails: Thumbnail path keyed by episode
            on_result: Optional callback invoked as each comparison finishes

        Returns:
            List[ComparisonResult]: One result per pair, in (video, episode)
                input order
        """
        pairs = [
            (video, episode, thumbnail)
            for video in videos
            for episode, thumbnail in thumbnails.items()
        ]
        if not pairs:
            return []

        workers = min(self.settings.worker_count, len(pairs))
        logger.info(f"Running {len(pairs)} comparisons with {workers} workers")

        def run(pair: Tuple[Path, str, Path]) -> ComparisonResult:
            result = self.compare(*pair)
            if on_result is not None:
                on_result(result)
            return result

        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(run, pairs))
