import asyncio

import numpy as np
import pytest

from lessonreel.errors import ImageGenerationError, VideoGenerationError
from lessonreel.models import Scene, TextbookScript
from lessonreel.store import SceneStore


def make_script(count=4, topic="Photosynthesis Basics"):
    return TextbookScript(
        topic=topic,
        scenes=[
            Scene(
                title=f"Scene {i}",
                narration=f"Narration {i}",
                visual_prompt=f"prompt-{i}",
            )
            for i in range(1, count + 1)
        ],
    )


class FakeService:
    """In-memory generation service recording every call."""

    def __init__(self, script=None, fail_prompts=(), analyze_error=None, video_error=None):
        self.script = script or make_script()
        self.fail_prompts = set(fail_prompts)
        self.analyze_error = analyze_error
        self.video_error = video_error
        self.calls = []
        self.active = 0
        self.max_active = 0

    async def analyze(self, content, image=None, direct_mode=False):
        self.calls.append(("analyze", content, image, direct_mode))
        await asyncio.sleep(0)
        if self.analyze_error:
            raise self.analyze_error
        return self.script.model_copy(deep=True)

    async def generate_image(self, prompt, aspect_ratio, quality):
        self.calls.append(("image", prompt, aspect_ratio, quality))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0)
        finally:
            self.active -= 1
        if prompt in self.fail_prompts:
            raise ImageGenerationError("No image returned")
        return f"assets/{prompt}.png"

    async def generate_video(self, prompt, seed_image=None):
        self.calls.append(("video", prompt, seed_image))
        await asyncio.sleep(0)
        if self.video_error:
            raise self.video_error
        return f"clips/{prompt}.mp4"


class FakeGate:
    def __init__(self, present=True):
        self.present = present
        self.requests = 0

    async def has_credential(self):
        return self.present

    async def request_credential(self):
        self.requests += 1


class FakeClip:
    def __init__(self, url, count, value, log):
        self.url = url
        self.count = count
        self.value = value
        self.log = log

    def frames(self, fps):
        self.log.append(("play", self.url))
        for _ in range(self.count):
            yield np.full((4, 4, 3), self.value, dtype=np.uint8)

    def close(self):
        self.log.append(("close", self.url))


class FakeClipLoader:
    """Serves clips of ``count`` frames filled with ``value`` per url."""

    def __init__(self, clips):
        self.clips = clips
        self.log = []

    def __call__(self, url):
        if url not in self.clips:
            raise FileNotFoundError(f"Clip not found: {url}")
        count, value = self.clips[url]
        self.log.append(("load", url))
        return FakeClip(url, count, value, self.log)


class FakeSink:
    def __init__(self, size, fps):
        self.size = size
        self.fps = fps
        self.values = []
        self.started = False
        self.stopped = False
        self.discarded = False

    def start(self):
        self.started = True

    def write_frame(self, frame):
        assert self.started
        assert frame.shape == (self.size[1], self.size[0], 3)
        self.values.append(int(frame[0, 0, 0]))

    def stop(self):
        self.stopped = True
        return [b"webm-", bytes(self.values)]

    def discard(self):
        self.discarded = True


class SinkFactory:
    def __init__(self):
        self.sinks = []

    def __call__(self, size, fps):
        sink = FakeSink(size, fps)
        self.sinks.append(sink)
        return sink


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def store():
    return SceneStore()


@pytest.fixture
def gate():
    return FakeGate()


@pytest.fixture
def sink_factory():
    return SinkFactory()
