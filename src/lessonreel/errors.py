"""Exception types raised by the pipeline, the scene video generator and the merge engine."""


class LessonReelError(Exception):
    """Base class for all lessonreel errors."""


class EmptyInputError(LessonReelError):
    """Neither text content nor an image was supplied; the pipeline never starts."""


class AnalysisError(LessonReelError):
    """The script analysis call failed or returned unusable output. Fatal for a run."""


class ImageGenerationError(LessonReelError):
    """No image payload came back for a scene. Scene-local."""


class VideoGenerationError(LessonReelError):
    """No clip could be produced for a scene. Scene-local."""


class NoClipsError(LessonReelError):
    """A merge was requested but no scene carries a clip."""


class MergeError(LessonReelError):
    """The merge failed at some stage; no output was produced."""


class PipelineBusyError(LessonReelError):
    """A pipeline run is already in progress."""


class MergeBusyError(LessonReelError):
    """A merge is already in progress."""


class GenerationInProgressError(LessonReelError):
    """A generation attempt is already in flight for the scene."""

    def __init__(self, scene_id: str) -> None:
        super().__init__(f"Scene {scene_id} already has a generation in progress")
        self.scene_id = scene_id


class RunCancelledError(LessonReelError):
    """A pipeline run or merge was cancelled through its token."""
