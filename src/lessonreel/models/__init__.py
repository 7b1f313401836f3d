"""Data models for the lesson video generator."""

from .scene import ArtifactKind, GenerationStatus, Scene, new_scene_id
from .script import TextbookScript
from .settings import AspectRatio, ImageQuality
from .run import PipelineStage, RunState

__all__ = [
    "ArtifactKind",
    "GenerationStatus",
    "Scene",
    "new_scene_id",
    "TextbookScript",
    "AspectRatio",
    "ImageQuality",
    "PipelineStage",
    "RunState",
]
