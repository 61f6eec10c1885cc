"""End-to-end tagging workflows."""

from autotag.workflows.base import FileAction, RenamePlan, TaggingWorkflow
from autotag.workflows.subtitle import SubtitleTaggingWorkflow
from autotag.workflows.video import VideoTaggingWorkflow

__all__ = [
    "FileAction",
    "RenamePlan",
    "SubtitleTaggingWorkflow",
    "TaggingWorkflow",
    "VideoTaggingWorkflow",
]
