"""
Unit tests for the WebM recorder sink and clip loading (ffmpeg mocked)
"""

from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest

from lessonreel.editor import WebmRecorderSink, load_clip


class FakeWriter:
    """Stands in for moviepy's ffmpeg writer; one byte per frame."""

    def __init__(self, filename, size, fps, codec=None):
        self.filename = filename
        self.frames = []

    def write_frame(self, frame):
        self.frames.append(int(frame[0, 0, 0]))

    def close(self):
        Path(self.filename).write_bytes(bytes(self.frames))


@pytest.fixture
def fake_writer():
    with patch("lessonreel.editor.capture.FFMPEG_VideoWriter", FakeWriter):
        yield


def test_sink_emits_recorded_stream(fake_writer):
    sink = WebmRecorderSink((4, 2), 30)
    sink.start()
    for value in (1, 2, 3):
        sink.write_frame(np.full((2, 4, 3), value, dtype=np.uint8))
    path = sink._path

    chunks = sink.stop()

    assert b"".join(chunks) == bytes([1, 2, 3])
    assert not path.exists()


def test_sink_discard_removes_temp_file(fake_writer):
    sink = WebmRecorderSink((4, 2), 30)
    sink.start()
    path = sink._path

    sink.discard()

    assert not path.exists()


def test_sink_rejects_frames_before_start():
    sink = WebmRecorderSink((4, 2), 30)
    with pytest.raises(RuntimeError):
        sink.write_frame(np.zeros((2, 4, 3), dtype=np.uint8))


def test_load_clip_missing_local_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_clip(str(tmp_path / "missing.mp4"))


class FakeDownload:
    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def raise_for_status(self):
        pass

    def iter_content(self, chunk_size=None):
        yield from self.chunks
        if self.error:
            raise self.error


@pytest.fixture
def temp_dir(tmp_path, monkeypatch):
    monkeypatch.setattr("tempfile.tempdir", str(tmp_path))
    return tmp_path


def test_load_clip_removes_download_when_clip_cannot_open(temp_dir):
    download = FakeDownload([b"not a video"])
    with patch("lessonreel.editor.capture.requests.get", return_value=download), \
            patch("lessonreel.editor.capture.MoviepyClipSource", side_effect=OSError("corrupt")):
        with pytest.raises(OSError, match="corrupt"):
            load_clip("https://example.com/clip.mp4")

    assert download.closed
    assert list(temp_dir.iterdir()) == []


def test_load_clip_removes_partial_download(temp_dir):
    download = FakeDownload([b"partial"], error=ConnectionError("reset"))
    with patch("lessonreel.editor.capture.requests.get", return_value=download):
        with pytest.raises(ConnectionError):
            load_clip("https://example.com/clip.mp4")

    assert download.closed
    assert list(temp_dir.iterdir()) == []
