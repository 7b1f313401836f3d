"""
PipelineOrchestrator: turns textbook input into an illustrated script.

Stages, strictly in order:
  analyze: one script-analysis call; its failure aborts the run
  images:  one image request per scene, sequential, failures stay scene-local
  done:    terminal label kept visible for a short grace delay
"""

import asyncio
import logging
from typing import Callable, Optional

from ..config import config
from ..errors import AnalysisError, EmptyInputError, PipelineBusyError, RunCancelledError
from ..models import (
    ArtifactKind,
    AspectRatio,
    ImageQuality,
    PipelineStage,
    RunState,
    TextbookScript,
)
from ..services.generation import GenerationService
from ..store import SceneStore
from .cancel import CancellationToken, check

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

LABEL_ANALYZE = "Analyzing content..."
LABEL_NORMALIZE = "Normalizing your script..."
LABEL_IMAGES = "Starting batch illustration..."
LABEL_DONE = "Pipeline complete!"


class PipelineOrchestrator:
    """
    Drives one pipeline run over a SceneStore.

    Usage:
        orchestrator = PipelineOrchestrator(service, store)
        await orchestrator.run(text, image=None, direct_mode=False)

    Scene updates are visible in the store as they happen; the progress label
    is reported through ``on_progress`` and kept on ``state``.
    """

    def __init__(
        self,
        service: GenerationService,
        store: SceneStore,
        on_progress: Optional[ProgressCallback] = None,
        inter_request_delay: Optional[float] = None,
        grace_delay: Optional[float] = None,
    ) -> None:
        self._service = service
        self._store = store
        self._on_progress = on_progress
        self._inter_request_delay = (
            config.inter_request_delay if inter_request_delay is None else inter_request_delay
        )
        self._grace_delay = config.grace_delay if grace_delay is None else grace_delay
        self.state = RunState()

    @property
    def running(self) -> bool:
        return self.state.running

    def _update(self, stage: PipelineStage, label: str) -> None:
        self.state.stage = stage
        self.state.label = label
        logger.info(f"[{stage.value}] {label}")
        if self._on_progress:
            self._on_progress(label)

    async def run(
        self,
        content: str,
        image: Optional[bytes] = None,
        direct_mode: bool = False,
        aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE,
        cancel: Optional[CancellationToken] = None,
    ) -> TextbookScript:
        """Run the full pipeline.

        Args:
            content: Raw textbook text, or a ready script in direct mode.
            image: Optional photographed textbook page.
            direct_mode: Treat ``content`` as a script to normalise rather
                than material to summarise.
            aspect_ratio: Aspect ratio for the scene images.
            cancel: Optional token checked between units of work.

        Returns:
            The installed script.

        Raises:
            EmptyInputError: Neither content nor image was supplied.
            PipelineBusyError: A run is already in progress.
            AnalysisError: The analysis stage failed; no script is installed.
            RunCancelledError: The token was cancelled.
        """
        if not (content and content.strip()) and not image:
            raise EmptyInputError("Provide textbook content or an image")
        if self.state.running:
            raise PipelineBusyError("A pipeline run is already in progress")

        self.state = RunState(running=True)

        try:
            script = await self._analyze(content, image, direct_mode, cancel)
            await self._illustrate(script, aspect_ratio, cancel)

            self._update(PipelineStage.DONE, LABEL_DONE)
            check(cancel)
            await asyncio.sleep(self._grace_delay)
            return script

        except (AnalysisError, RunCancelledError) as e:
            self.state.stage = PipelineStage.FAILED
            self.state.errors.append(str(e))
            logger.error(f"Pipeline aborted: {e}")
            raise

        finally:
            self.state.running = False

    async def _analyze(
        self,
        content: str,
        image: Optional[bytes],
        direct_mode: bool,
        cancel: Optional[CancellationToken],
    ) -> TextbookScript:
        self._update(PipelineStage.ANALYZE, LABEL_NORMALIZE if direct_mode else LABEL_ANALYZE)
        check(cancel)
        self._store.reset()

        try:
            script = await self._service.analyze(content, image, direct_mode)
        except AnalysisError:
            raise
        except Exception as e:
            raise AnalysisError(f"Analysis failed: {e}") from e

        self._store.install(script)
        return script

    async def _illustrate(
        self,
        script: TextbookScript,
        aspect_ratio: AspectRatio,
        cancel: Optional[CancellationToken],
    ) -> None:
        script.aspect_ratio = aspect_ratio
        self._update(PipelineStage.IMAGES, LABEL_IMAGES)
        total = len(script.scenes)

        for i, scene in enumerate(script.scenes):
            check(cancel)
            self._update(PipelineStage.IMAGES, f"Illustrating scene {i + 1}/{total}...")
            self._store.begin(scene.id, ArtifactKind.IMAGE)

            try:
                url = await self._service.generate_image(
                    scene.visual_prompt, aspect_ratio, ImageQuality.STANDARD
                )
                self._store.succeed(scene.id, ArtifactKind.IMAGE, url)
                logger.info(f"Scene {i + 1}/{total} illustrated: {url}")
            except Exception as e:
                self._store.fail(scene.id, ArtifactKind.IMAGE, str(e))
                logger.warning(f"Scene {i + 1}/{total} image failed: {e}")

            await asyncio.sleep(self._inter_request_delay)
