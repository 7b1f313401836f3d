"""Drawing surface, clip sources and recorder sink used by the merge engine."""

import logging
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import numpy as np
import requests
from PIL import Image
from moviepy import VideoFileClip
from moviepy.video.io.ffmpeg_writer import FFMPEG_VideoWriter

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class Surface:
    """Fixed-size RGB frame buffer every clip is drawn onto."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.frame = np.zeros((height, width, 3), dtype=np.uint8)

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def draw(self, frame: np.ndarray) -> None:
        """Draw a frame stretched over the whole surface."""
        frame = np.asarray(frame, dtype=np.uint8)
        if frame.ndim == 3 and frame.shape[2] == 4:
            frame = frame[:, :, :3]
        if frame.shape[:2] != (self.height, self.width):
            frame = np.asarray(
                Image.fromarray(frame).resize((self.width, self.height), Image.BILINEAR)
            )
        self.frame[...] = frame


class MoviepyClipSource:
    """A muted clip read frame by frame through moviepy."""

    def __init__(self, path: Path, cleanup: bool = False) -> None:
        self._path = path
        self._cleanup = cleanup
        self._clip = VideoFileClip(str(path), audio=False)

    def frames(self, fps: int) -> Iterator[np.ndarray]:
        """Yield the clip's frames resampled to the surface frame rate."""
        return self._clip.iter_frames(fps=fps, dtype="uint8")

    def close(self) -> None:
        self._clip.close()
        if self._cleanup:
            self._path.unlink(missing_ok=True)


def load_clip(url: str, timeout: float = 120.0) -> MoviepyClipSource:
    """Open a clip from a local path or an http(s) URL.

    Raises:
        FileNotFoundError: If a local clip does not exist.
        requests.HTTPError: If a remote clip cannot be fetched.
    """
    if url.startswith(("http://", "https://")):
        with tempfile.NamedTemporaryFile(suffix=".mp4", delete=False) as f:
            path = Path(f.name)
        try:
            with requests.get(url, stream=True, timeout=timeout) as response:
                response.raise_for_status()
                with open(path, "wb") as out:
                    for chunk in response.iter_content(chunk_size=8192):
                        if chunk:
                            out.write(chunk)
            logger.debug(f"Fetched {url} to {path}")
            return MoviepyClipSource(path, cleanup=True)
        except Exception:
            path.unlink(missing_ok=True)
            raise

    path = Path(url)
    if not path.exists():
        raise FileNotFoundError(f"Clip not found: {path}")
    return MoviepyClipSource(path)


class WebmRecorderSink:
    """Records surface frames into a VP9 WebM stream.

    ``stop`` returns the encoded stream as chunks in arrival order.
    """

    def __init__(
        self,
        size: Tuple[int, int],
        fps: int,
        codec: str = "libvpx-vp9",
    ) -> None:
        self.size = size
        self.fps = fps
        self._codec = codec
        self._path: Optional[Path] = None
        self._writer: Optional[FFMPEG_VideoWriter] = None

    def start(self) -> None:
        with tempfile.NamedTemporaryFile(suffix=".webm", delete=False) as f:
            self._path = Path(f.name)
        self._writer = FFMPEG_VideoWriter(
            str(self._path), self.size, self.fps, codec=self._codec
        )
        logger.debug(f"Recording {self.size[0]}x{self.size[1]}@{self.fps} to {self._path}")

    def write_frame(self, frame: np.ndarray) -> None:
        if self._writer is None:
            raise RuntimeError("Recorder sink is not recording")
        self._writer.write_frame(frame)

    def stop(self) -> List[bytes]:
        """Finish the stream and emit its chunks."""
        if self._writer is None:
            raise RuntimeError("Recorder sink is not recording")
        self._writer.close()
        self._writer = None

        chunks: List[bytes] = []
        try:
            with open(self._path, "rb") as f:
                while True:
                    chunk = f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    chunks.append(chunk)
        finally:
            self._remove()
        return chunks

    def discard(self) -> None:
        """Abandon the recording without emitting anything."""
        if self._writer is not None:
            try:
                self._writer.close()
            except Exception as e:
                logger.debug(f"Error closing writer: {e}")
            self._writer = None
        self._remove()

    def _remove(self) -> None:
        if self._path is not None:
            self._path.unlink(missing_ok=True)
            self._path = None
