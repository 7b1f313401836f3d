"""Video merging module."""

from .capture import (
    Surface,
    MoviepyClipSource,
    WebmRecorderSink,
    load_clip,
)
from .merge import (
    FrameClock,
    MergeEngine,
    MergeResult,
    output_filename,
    save_to_directory,
)

__all__ = [
    # Capture
    "Surface",
    "MoviepyClipSource",
    "WebmRecorderSink",
    "load_clip",
    # Merge
    "FrameClock",
    "MergeEngine",
    "MergeResult",
    "output_filename",
    "save_to_directory",
]
