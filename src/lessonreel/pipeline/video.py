"""On-demand upgrade of a single scene's still image into a video clip."""

import logging
from typing import Optional

from ..errors import GenerationInProgressError, VideoGenerationError
from ..models import ArtifactKind, Scene
from ..services.credentials import CredentialGate
from ..services.generation import GenerationService
from ..store import SceneStore

logger = logging.getLogger(__name__)


class SceneVideoGenerator:
    """Generates a clip for one scene, gated by a credential check."""

    def __init__(
        self,
        service: GenerationService,
        store: SceneStore,
        gate: CredentialGate,
    ) -> None:
        self._service = service
        self._store = store
        self._gate = gate

    async def generate_video_for(self, scene_id: str) -> Optional[str]:
        """Generate a clip for a scene.

        Returns:
            The clip reference, or None when the scene is unknown, a
            credential had to be requested first, or the script was replaced
            before the clip arrived.

        Raises:
            GenerationInProgressError: The scene already has an attempt in flight.
            VideoGenerationError: The clip could not be generated.
        """
        scene = self._store.get(scene_id)
        if scene is None:
            logger.debug(f"Ignoring video request for unknown scene {scene_id}")
            return None
        if scene.busy:
            raise GenerationInProgressError(scene_id)

        if not await self._gate.has_credential():
            logger.info("No credential for video generation; requesting one")
            await self._gate.request_credential()
            return None

        # The scene may have been replaced or claimed while the gate was awaited
        if not self._still_installed(scene):
            logger.debug(f"Scene {scene_id} was replaced before generation started")
            return None
        if scene.busy:
            raise GenerationInProgressError(scene_id)
        self._store.begin(scene_id, ArtifactKind.VIDEO)

        try:
            video_url = await self._service.generate_video(scene.visual_prompt, scene.image_url)
        except Exception as e:
            logger.error(f"Video generation failed for scene {scene_id}: {e}")
            if self._still_installed(scene):
                self._store.fail(scene_id, ArtifactKind.VIDEO, str(e))
            if isinstance(e, VideoGenerationError):
                raise
            raise VideoGenerationError(str(e)) from e

        if not self._still_installed(scene):
            logger.warning(f"Scene {scene_id} was replaced while its clip was generated; dropping {video_url}")
            return None
        self._store.succeed(scene_id, ArtifactKind.VIDEO, video_url)
        logger.info(f"Scene {scene_id} clip ready: {video_url}")
        return video_url

    def _still_installed(self, scene: Scene) -> bool:
        # A new run replaces the script wholesale while a clip is in flight
        return self._store.get(scene.id) is scene
