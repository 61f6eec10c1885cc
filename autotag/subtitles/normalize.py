"""Subtitle normalization.

Word order matters for matching, timing does not, so SubRip documents are
flattened into one block of text before comparison.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

_MARKUP = re.compile(r"<\s*[^>]*>")
_TIMING_LINE = re.compile(r"^.*-->.*$", re.MULTILINE)
_DISALLOWED = re.compile(r"[^A-Za-z0-9_' ?.,!\"\-\n]")
_LEADING_MARKER = re.compile(r"^[\s\-]+")
_INDEX_LINE = re.compile(r"^[0-9]+$")
_SPACE_RUN = re.compile(r" {2,}")


def normalize_subtitles(text: str) -> str:
    """Reduce a subtitle document to a single line of comparable text.

    Strips markup tags, timing lines, sequence indices, punctuation noise and
    leading dash markers, then joins what is left with single spaces.

    Args:
        text: Subtitles in SubRip format or plain text

    Returns:
        str: Flattened text (may be empty)
    """
    text = _MARKUP.sub(" ", text)
    text = text.replace("\r", "")
    text = _TIMING_LINE.sub("", text)
    text = _DISALLOWED.sub("", text)

    lines = []
    for line in text.split("\n"):
        line = _LEADING_MARKER.sub("", line)
        if not line or _INDEX_LINE.match(line):
            continue
        lines.append(line)

    return _SPACE_RUN.sub(" ", " ".join(lines))


@dataclass(frozen=True)
class SubtitleDocument:
    """A subtitle text keyed by episode id or file stem."""

    key: str
    raw_text: str = field(repr=False)
    normalized_text: str = field(repr=False)

    @classmethod
    def from_text(cls, key: str, raw_text: str) -> "SubtitleDocument":
        """Create a document, normalizing its text once."""
        return cls(key=key, raw_text=raw_text, normalized_text=normalize_subtitles(raw_text))

    @classmethod
    def from_file(cls, path: Path, key: Optional[str] = None) -> "SubtitleDocument":
        """Read a subtitle file.

        Undecodable bytes are replaced rather than failing the whole run.

        Args:
            path: Subtitle file
            key: Document key (defaults to the file stem)

        Returns:
            SubtitleDocument: Normalized document

        Raises:
            OSError: If the file cannot be read
        """
        raw = path.read_bytes().decode("utf-8-sig", errors="replace")
        return cls.from_text(key or path.stem, raw)
