"""Local media file detection."""

from autotag.media.scanner import MediaFile, MediaScanner, ScanResult

__all__ = ["MediaFile", "MediaScanner", "ScanResult"]
