"""Local file discovery for a working directory."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from autotag.config.settings import DEFAULT_VIDEO_EXTENSIONS
from autotag.parsers.episode import canonical_episode_key
from autotag.utils.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class MediaFile:
    """Represents a detected media file."""

    path: Path
    file_type: str  # "video", "subtitle" or "thumbnail"
    extension: str
    size: int  # bytes
    episode: Optional[str] = None  # set when the name is an episode key


@dataclass
class ScanResult:
    """Result of a directory scan."""

    root_path: Path
    video_files: List[MediaFile] = field(default_factory=list)
    subtitle_files: List[MediaFile] = field(default_factory=list)
    thumbnail_files: List[MediaFile] = field(default_factory=list)

    @property
    def reference_subtitles(self) -> Dict[str, Path]:
        """Subtitles already named after an episode, keyed by episode."""
        return {f.episode: f.path for f in self.subtitle_files if f.episode}

    @property
    def unlabeled_subtitles(self) -> List[Path]:
        """Subtitles whose episode is unknown."""
        return [f.path for f in self.subtitle_files if not f.episode]

    @property
    def unlabeled_videos(self) -> List[Path]:
        """Videos whose episode is unknown."""
        return [f.path for f in self.video_files if not f.episode]

    @property
    def thumbnails(self) -> Dict[str, Path]:
        """Thumbnail images keyed by episode."""
        return {f.episode: f.path for f in self.thumbnail_files if f.episode}

    def video_for_subtitle(self, stem: str) -> Optional[Path]:
        """Find the video an extracted subtitle track came from (same stem)."""
        for video in self.video_files:
            if video.path.stem == stem:
                return video.path
        return None


class MediaScanner:
    """Scanner for the files of one working directory (not recursive)."""

    SUBTITLE_EXTENSIONS = {".srt"}

    THUMBNAIL_EXTENSIONS = {".jpg", ".jpeg", ".png"}

    # Files to ignore
    IGNORE_PATTERNS = {
        ".DS_Store",
        "Thumbs.db",
        "desktop.ini",
    }

    def __init__(self, video_extensions: Iterable[str] = DEFAULT_VIDEO_EXTENSIONS):
        """Initialize media scanner.

        Args:
            video_extensions: Allowed video extensions, with or without dot
        """
        self.video_extensions = {
            "." + ext.lower().lstrip(".") for ext in video_extensions
        }

    def scan_directory(self, path: Path) -> ScanResult:
        """Scan a directory for media files.

        Args:
            path: Directory path to scan

        Returns:
            ScanResult: Detected files, sorted by name

        Raises:
            ValidationError: If path is not a directory
        """
        if not path.is_dir():
            raise ValidationError(f"Path is not a directory: {path}")

        result = ScanResult(root_path=path)

        try:
            entries = sorted(path.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise ValidationError(f"Cannot read directory {path}: {e}")

        for entry in entries:
            if self._should_ignore(entry) or not entry.is_file():
                continue

            media_file = self._check_media_file(entry)
            if media_file is None:
                continue

            if media_file.file_type == "video":
                result.video_files.append(media_file)
            elif media_file.file_type == "subtitle":
                result.subtitle_files.append(media_file)
            else:
                result.thumbnail_files.append(media_file)

        logger.debug(
            f"Scanned {path}: {len(result.video_files)} videos, "
            f"{len(result.subtitle_files)} subtitles, {len(result.thumbnail_files)} thumbnails"
        )
        return result

    def _should_ignore(self, path: Path) -> bool:
        """Check if a file should be ignored.

        Args:
            path: Path to check

        Returns:
            bool: True if should be ignored
        """
        return path.name.startswith(".") or path.name in self.IGNORE_PATTERNS

    def _check_media_file(self, path: Path) -> Optional[MediaFile]:
        """Classify a file by extension.

        Args:
            path: File path to check

        Returns:
            MediaFile | None: MediaFile if relevant, None otherwise
        """
        extension = path.suffix.lower()

        if extension in self.video_extensions:
            file_type = "video"
        elif extension in self.SUBTITLE_EXTENSIONS:
            file_type = "subtitle"
        elif extension in self.THUMBNAIL_EXTENSIONS:
            file_type = "thumbnail"
        else:
            return None

        try:
            size = path.stat().st_size
        except OSError:
            # Skip inaccessible files
            return None

        return MediaFile(
            path=path,
            file_type=file_type,
            extension=extension,
            size=size,
            episode=canonical_episode_key(path.name),
        )
