"""Scene generation pipeline."""

from .cancel import CancellationToken
from .orchestrator import PipelineOrchestrator
from .video import SceneVideoGenerator

__all__ = ["CancellationToken", "PipelineOrchestrator", "SceneVideoGenerator"]
