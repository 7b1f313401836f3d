"""Pipeline run state model."""

from typing import List
from enum import Enum
from pydantic import BaseModel, Field


class PipelineStage(str, Enum):
    """Pipeline stage enum."""
    IDLE = "idle"
    ANALYZE = "analyze"
    IMAGES = "images"
    DONE = "done"
    FAILED = "failed"


class RunState(BaseModel):
    """Pipeline run state tracking."""

    stage: PipelineStage = Field(default=PipelineStage.IDLE, description="Current stage")
    label: str = Field(default="", description="Human-readable progress label")
    running: bool = Field(default=False, description="Whether a run is in progress")
    errors: List[str] = Field(default_factory=list, description="Error messages")

    class Config:
        """Pydantic config."""
        frozen = False
