"""In-memory scene store shared by the pipeline and the scene video generator."""

import logging
from pathlib import Path
from typing import Callable, List, Optional

from .models import ArtifactKind, GenerationStatus, Scene, TextbookScript

logger = logging.getLogger(__name__)

SceneListener = Callable[[Scene], None]


class SceneStore:
    """Holds the current script and applies per-scene state transitions.

    Every write touches exactly one scene. Listeners receive a copy of the
    scene after each write so a presentation layer can render progress
    without sharing the mutable record.
    """

    def __init__(self, script: Optional[TextbookScript] = None) -> None:
        self._script = script
        self._listeners: List[SceneListener] = []

    @property
    def script(self) -> Optional[TextbookScript]:
        return self._script

    @property
    def topic(self) -> Optional[str]:
        return self._script.topic if self._script else None

    @property
    def scenes(self) -> List[Scene]:
        return list(self._script.scenes) if self._script else []

    def snapshot(self) -> Optional[TextbookScript]:
        """Return a deep copy of the current script."""
        return self._script.model_copy(deep=True) if self._script else None

    def install(self, script: TextbookScript) -> None:
        """Replace the current script wholesale."""
        self._script = script
        logger.info(f"Installed script '{script.topic}' with {len(script.scenes)} scenes")

    def reset(self) -> None:
        """Drop the current script."""
        self._script = None

    def get(self, scene_id: str) -> Optional[Scene]:
        if not self._script:
            return None
        return self._script.find(scene_id)

    def subscribe(self, listener: SceneListener) -> Callable[[], None]:
        """Register a listener for scene updates.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def begin(self, scene_id: str, kind: ArtifactKind) -> Scene:
        """Mark an artifact of a scene as being generated."""
        scene = self._require(scene_id)
        scene.error = None
        self._set_state(scene, kind, GenerationStatus.PENDING)
        return scene

    def succeed(self, scene_id: str, kind: ArtifactKind, url: str) -> Scene:
        """Record a generated artifact for a scene."""
        if not url:
            raise ValueError(f"Empty {kind.value} reference for scene {scene_id}")

        scene = self._require(scene_id)
        if kind == ArtifactKind.IMAGE:
            scene.image_url = url
        else:
            scene.video_url = url
        self._set_state(scene, kind, GenerationStatus.SUCCESS)
        return scene

    def fail(self, scene_id: str, kind: ArtifactKind, message: str) -> Scene:
        """Record a failed generation attempt for a scene."""
        scene = self._require(scene_id)
        scene.error = message
        self._set_state(scene, kind, GenerationStatus.ERROR)
        return scene

    def load(self, path: Path) -> TextbookScript:
        """Load and install a script from a YAML file."""
        script = TextbookScript.from_yaml(path)
        self.install(script)
        return script

    def save(self, path: Path) -> None:
        """Persist the current script to a YAML file."""
        if not self._script:
            raise ValueError("No script to save")
        path.parent.mkdir(parents=True, exist_ok=True)
        self._script.to_yaml(path)
        logger.debug(f"Saved script to {path}")

    def _require(self, scene_id: str) -> Scene:
        scene = self.get(scene_id)
        if scene is None:
            raise KeyError(scene_id)
        return scene

    def _set_state(self, scene: Scene, kind: ArtifactKind, status: GenerationStatus) -> None:
        if kind == ArtifactKind.IMAGE:
            scene.image_state = status
        else:
            scene.video_state = status
        # Most recent attempt wins
        scene.status = status
        logger.debug(f"Scene {scene.id} {kind.value} -> {status.value}")
        self._notify(scene)

    def _notify(self, scene: Scene) -> None:
        for listener in list(self._listeners):
            try:
                listener(scene.model_copy())
            except Exception as e:
                logger.warning(f"Scene listener failed: {e}")
