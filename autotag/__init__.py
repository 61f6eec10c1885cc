"""autotag - match unlabeled episode files to a show's episodes and rename them."""

__version__ = "0.1.0"
