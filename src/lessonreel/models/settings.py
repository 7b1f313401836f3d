"""Generation settings shared by the pipeline and the merge engine."""

from enum import Enum
from typing import Tuple


class AspectRatio(str, Enum):
    """Supported output aspect ratios."""
    SQUARE = "1:1"
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"

    @property
    def dimensions(self) -> Tuple[int, int]:
        """Pixel (width, height) of the merge surface for this ratio."""
        return OUTPUT_DIMENSIONS[self]


class ImageQuality(str, Enum):
    """Image synthesis quality presets."""
    STANDARD = "standard"
    HIGH = "high"


OUTPUT_DIMENSIONS = {
    AspectRatio.SQUARE: (1280, 1280),
    AspectRatio.LANDSCAPE: (1280, 720),
    AspectRatio.PORTRAIT: (720, 1280),
}

