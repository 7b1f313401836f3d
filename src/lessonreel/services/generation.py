"""Generation service: script analysis, image synthesis and video synthesis."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from ..config import config
from ..errors import AnalysisError, ImageGenerationError, VideoGenerationError
from ..models import AspectRatio, ImageQuality, TextbookScript, new_scene_id

logger = logging.getLogger(__name__)


class GenerationService(Protocol):
    """Remote generation backend used by the pipeline and the scene video generator."""

    async def analyze(
        self, content: str, image: Optional[bytes] = None, direct_mode: bool = False
    ) -> TextbookScript:
        ...

    async def generate_image(
        self, prompt: str, aspect_ratio: AspectRatio, quality: ImageQuality
    ) -> str:
        ...

    async def generate_video(self, prompt: str, seed_image: Optional[str] = None) -> str:
        ...


class VertexGenerationService:
    """Generation service backed by Claude for scripts and Vertex AI for media.

    The underlying clients block on HTTP, so every call runs in a worker
    thread and the event loop stays free while a request is in flight.
    """

    def __init__(
        self,
        script_agent=None,
        imagen=None,
        veo=None,
        workspace: Optional[Path] = None,
    ) -> None:
        self._script_agent = script_agent
        self._imagen = imagen
        self._veo = veo
        self._workspace = workspace or config.workspace

    @property
    def script_agent(self):
        if self._script_agent is None:
            from ..agents import ScriptAgent
            self._script_agent = ScriptAgent()
        return self._script_agent

    @property
    def imagen(self):
        if self._imagen is None:
            from .imagen import ImagenClient
            self._imagen = ImagenClient()
        return self._imagen

    @property
    def veo(self):
        if self._veo is None:
            from .veo import VeoClient
            self._veo = VeoClient()
        return self._veo

    async def analyze(
        self, content: str, image: Optional[bytes] = None, direct_mode: bool = False
    ) -> TextbookScript:
        """Break the material into scenes.

        Raises:
            AnalysisError: On a failed call or unusable output.
        """
        from ..agents import ScriptInput

        input_data = ScriptInput(content=content, image=image, direct_mode=direct_mode)
        try:
            script = await asyncio.to_thread(self.script_agent.run, input_data)
        except AnalysisError:
            raise
        except Exception as e:
            raise AnalysisError(f"Script analysis failed: {e}") from e

        if not script.scenes:
            raise AnalysisError("Script analysis returned no scenes")

        # Ids are allocated here whatever the agent did
        for scene in script.scenes:
            scene.id = new_scene_id()
        return script

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE,
        quality: ImageQuality = ImageQuality.STANDARD,
    ) -> str:
        """Generate a still image and return its local path.

        Raises:
            ImageGenerationError: If no image payload was returned.
        """
        output_path = self._workspace / "assets" / f"{new_scene_id()}.png"
        result = await asyncio.to_thread(
            self.imagen.generate_image,
            prompt=prompt,
            output_path=output_path,
            aspect_ratio=aspect_ratio,
            quality=quality,
        )
        if result.error_message or not result.local_path:
            raise ImageGenerationError(result.error_message or "No image returned")
        return str(result.local_path)

    async def generate_video(self, prompt: str, seed_image: Optional[str] = None) -> str:
        """Generate a clip, seeded by a still image when one is given.

        Raises:
            VideoGenerationError: If the operation finished without output.
        """
        from .veo import OperationStatus

        seed_bytes = None
        if seed_image:
            seed_bytes = await asyncio.to_thread(Path(seed_image).read_bytes)

        output_path = self._workspace / "clips" / f"{new_scene_id()}.mp4"
        result = await asyncio.to_thread(
            self.veo.generate_clip,
            prompt=prompt,
            output_path=output_path,
            seed_image=seed_bytes,
        )
        if result.status != OperationStatus.COMPLETED or not result.local_path:
            raise VideoGenerationError(result.error_message or "No video returned")
        return str(result.local_path)
