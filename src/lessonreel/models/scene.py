"""Scene data model."""

import uuid
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class GenerationStatus(str, Enum):
    """Outcome of a generation attempt."""
    IDLE = "IDLE"
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ArtifactKind(str, Enum):
    """Artifact a scene can have generated for it."""
    IMAGE = "image"
    VIDEO = "video"


def new_scene_id() -> str:
    """Allocate a collision-resistant scene identifier."""
    return uuid.uuid4().hex


class Scene(BaseModel):
    """One narrated beat of the lesson video."""

    id: str = Field(default_factory=new_scene_id, description="Unique scene identifier")
    title: str = Field(..., description="Scene title")
    narration: str = Field(..., description="Narration read over the scene")
    visual_prompt: str = Field(..., description="Prompt used to synthesize imagery")
    image_url: Optional[str] = Field(None, description="Generated still image reference")
    video_url: Optional[str] = Field(None, description="Generated clip reference")
    status: GenerationStatus = Field(
        default=GenerationStatus.IDLE,
        description="Outcome of the most recent attempt for either artifact"
    )
    image_state: GenerationStatus = Field(default=GenerationStatus.IDLE, description="Image artifact state")
    video_state: GenerationStatus = Field(default=GenerationStatus.IDLE, description="Video artifact state")
    error: Optional[str] = Field(None, description="Message of the most recent failure")

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def busy(self) -> bool:
        """True while any artifact of this scene is being generated."""
        return GenerationStatus.PENDING in (self.image_state, self.video_state)

    @property
    def has_video(self) -> bool:
        return bool(self.video_url)
