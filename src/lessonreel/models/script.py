"""Textbook script data model."""

from typing import List, Optional
from pathlib import Path
from pydantic import BaseModel, Field
import yaml

from .scene import Scene
from .settings import AspectRatio


class TextbookScript(BaseModel):
    """Ordered scene breakdown of a textbook excerpt.

    Scene order is the narrative order and the merge order.
    """

    topic: str = Field(..., description="Lesson topic")
    scenes: List[Scene] = Field(default_factory=list, description="Ordered scenes")
    aspect_ratio: AspectRatio = Field(default=AspectRatio.LANDSCAPE, description="Output aspect ratio")

    class Config:
        """Pydantic config."""
        frozen = False

    def find(self, scene_id: str) -> Optional[Scene]:
        """Return the scene with the given id, if any."""
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        return None

    def scenes_with_video(self) -> List[Scene]:
        """Scenes that carry a clip, in script order."""
        return [scene for scene in self.scenes if scene.has_video]

    @classmethod
    def from_yaml(cls, path: Path) -> "TextbookScript":
        """Load a script from a YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save the script to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
            )
