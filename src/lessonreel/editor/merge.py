"""Video merge engine: sequential capture of scene clips into one stream."""

import asyncio
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from ..config import config
from ..errors import MergeBusyError, MergeError, NoClipsError, RunCancelledError
from ..models import AspectRatio, Scene
from ..pipeline.cancel import CancellationToken, check
from .capture import Surface, WebmRecorderSink, load_clip

logger = logging.getLogger(__name__)


class ClipSource(Protocol):
    def frames(self, fps: int) -> Iterable:
        ...

    def close(self) -> None:
        ...


class RecorderSink(Protocol):
    def start(self) -> None:
        ...

    def write_frame(self, frame) -> None:
        ...

    def stop(self) -> List[bytes]:
        ...

    def discard(self) -> None:
        ...


ClipLoader = Callable[[str], ClipSource]
SinkFactory = Callable[[Tuple[int, int], int], RecorderSink]


@dataclass
class MergeResult:
    """The merged artifact."""

    filename: str
    data: bytes
    clip_count: int
    frame_count: int


DownloadTrigger = Callable[[MergeResult], None]


def output_filename(
    topic: str,
    prefix: Optional[str] = None,
    extension: Optional[str] = None,
) -> str:
    """Derive ``<prefix>-<topic>.<ext>``: whitespace runs become hyphens, lowercase."""
    prefix = config.output_prefix if prefix is None else prefix
    extension = config.output_extension if extension is None else extension
    normalized = re.sub(r"\s+", "-", topic).lower()
    return f"{prefix}-{normalized}.{extension}"


def save_to_directory(directory: Path) -> DownloadTrigger:
    """Download trigger that writes the artifact into ``directory``."""

    def trigger(result: MergeResult) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / result.filename
        path.write_bytes(result.data)
        logger.info(f"Saved merged video to {path}")

    return trigger


class FrameClock:
    """Paces the draw loop; every tick yields to the event loop."""

    def __init__(self, fps: int, realtime: bool = False) -> None:
        self._interval = 1.0 / fps
        self._realtime = realtime
        self._next: Optional[float] = None

    async def tick(self) -> None:
        if not self._realtime:
            await asyncio.sleep(0)
            return
        now = time.monotonic()
        if self._next is None:
            self._next = now
        self._next += self._interval
        await asyncio.sleep(max(0.0, self._next - now))


class MergeEngine:
    """
    Concatenates scene clips by replaying each one onto a fixed-size
    surface and recording that surface.

    Clips are captured strictly in the given order, one at a time, so the
    output timeline is their concatenation whatever each clip's own frame
    rate or resolution. One merge may run at a time per engine.
    """

    def __init__(
        self,
        clip_loader: ClipLoader = load_clip,
        sink_factory: Optional[SinkFactory] = None,
        download: Optional[DownloadTrigger] = None,
        on_progress: Optional[Callable[[int], None]] = None,
        fps: Optional[int] = None,
        realtime: bool = False,
    ) -> None:
        self._clip_loader = clip_loader
        self._sink_factory = sink_factory or (lambda size, fps: WebmRecorderSink(size, fps))
        self._download = download
        self._on_progress = on_progress
        self._fps = fps or config.merge_fps
        self._realtime = realtime
        self.merging = False
        self.progress = 0

    def _set_progress(self, percent: int) -> None:
        self.progress = percent
        logger.debug(f"Merge progress {percent}%")
        if self._on_progress:
            self._on_progress(percent)

    async def merge(
        self,
        scenes: Sequence[Scene],
        aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE,
        topic: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> MergeResult:
        """Merge every scene clip into one artifact.

        Args:
            scenes: Scenes in script order; scenes without a clip are skipped.
            aspect_ratio: Selects the output surface size.
            topic: Script topic used to name the output file.
            cancel: Optional token checked between frames.

        Returns:
            The merged artifact, also handed to the download trigger.

        Raises:
            NoClipsError: No scene carries a clip.
            MergeBusyError: Another merge is in progress.
            MergeError: Any failure while merging; nothing is emitted.
            RunCancelledError: The token was cancelled.
        """
        clips = [scene.video_url for scene in scenes if scene.video_url]
        if not clips:
            raise NoClipsError("Generate at least one video clip before merging")
        if self.merging:
            raise MergeBusyError("A merge is already in progress")

        self.merging = True
        self._set_progress(0)
        sink: Optional[RecorderSink] = None
        stopped = False

        try:
            width, height = AspectRatio(aspect_ratio).dimensions
            surface = Surface(width, height)
            clock = FrameClock(self._fps, self._realtime)
            logger.info(f"Merging {len(clips)} clips at {width}x{height}@{self._fps}")

            sink = self._sink_factory(surface.size, self._fps)
            await asyncio.to_thread(sink.start)

            frame_count = 0
            for i, url in enumerate(clips):
                self._set_progress(round(i / len(clips) * 100))
                capture = asyncio.create_task(
                    self._capture_clip(url, surface, sink, clock, cancel),
                    name=f"capture-clip-{i + 1}",
                )
                frames = await capture
                frame_count += frames
                logger.info(f"Captured clip {i + 1}/{len(clips)} ({frames} frames)")

            self._set_progress(100)
            chunks = await asyncio.to_thread(sink.stop)
            stopped = True

            result = MergeResult(
                filename=output_filename(topic or "untitled"),
                data=b"".join(chunks),
                clip_count=len(clips),
                frame_count=frame_count,
            )
            if self._download:
                self._download(result)
            return result

        except RunCancelledError:
            logger.warning("Merge cancelled")
            raise

        except Exception as e:
            logger.error(f"Merge failed: {e}")
            raise MergeError(f"Merging videos failed: {e}") from e

        finally:
            if sink is not None and not stopped:
                sink.discard()
            self.merging = False

    async def _capture_clip(
        self,
        url: str,
        surface: Surface,
        sink: RecorderSink,
        clock: FrameClock,
        cancel: Optional[CancellationToken],
    ) -> int:
        """Play one clip onto the surface until it ends; return frames drawn.

        Loading, decoding and encoding run in worker threads; the loop only
        sequences them.
        """
        clip = await asyncio.to_thread(self._clip_loader, url)
        frames = 0
        try:
            source = iter(clip.frames(self._fps))
            while True:
                check(cancel)
                drawn = await asyncio.to_thread(_draw_next, source, surface, sink)
                if not drawn:
                    break
                frames += 1
                await clock.tick()
        finally:
            clip.close()
        return frames


def _draw_next(source: Iterator, surface: Surface, sink: RecorderSink) -> bool:
    """Decode the next frame, draw it and record the surface; False at clip end."""
    frame = next(source, None)
    if frame is None:
        return False
    surface.draw(frame)
    sink.write_frame(surface.frame)
    return True
