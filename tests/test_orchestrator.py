"""
Unit tests for PipelineOrchestrator
Tests stage sequencing, scene-local failures and run-level aborts
"""

import asyncio
from collections import defaultdict

import pytest

from lessonreel.errors import (
    AnalysisError,
    EmptyInputError,
    PipelineBusyError,
    RunCancelledError,
)
from lessonreel.models import AspectRatio, GenerationStatus, ImageQuality, PipelineStage
from lessonreel.pipeline import CancellationToken, PipelineOrchestrator

from conftest import FakeService, make_script


def make_orchestrator(service, store, labels=None):
    return PipelineOrchestrator(
        service,
        store,
        on_progress=labels.append if labels is not None else None,
        inter_request_delay=0,
        grace_delay=0,
    )


@pytest.mark.asyncio
async def test_partial_image_failure_does_not_abort_run(store):
    service = FakeService(make_script(4), fail_prompts={"prompt-3"})
    labels = []
    orchestrator = make_orchestrator(service, store, labels)

    await orchestrator.run("Chapter 3: plants make food from light")

    assert [s.status for s in store.scenes] == [
        GenerationStatus.SUCCESS,
        GenerationStatus.SUCCESS,
        GenerationStatus.ERROR,
        GenerationStatus.SUCCESS,
    ]
    assert store.scenes[2].image_url is None
    assert store.scenes[0].image_url == "assets/prompt-1.png"
    assert orchestrator.state.stage == PipelineStage.DONE
    assert labels[-1] == "Pipeline complete!"
    assert not orchestrator.running


@pytest.mark.asyncio
async def test_every_scene_ends_success_or_error(store):
    service = FakeService(make_script(6), fail_prompts={"prompt-1", "prompt-5"})

    await make_orchestrator(service, store).run("text")

    assert all(
        s.status in (GenerationStatus.SUCCESS, GenerationStatus.ERROR) for s in store.scenes
    )


@pytest.mark.asyncio
async def test_each_scene_passes_through_pending(store):
    transitions = defaultdict(list)
    store.subscribe(lambda scene: transitions[scene.visual_prompt].append(scene.status))
    service = FakeService(make_script(3), fail_prompts={"prompt-2"})

    await make_orchestrator(service, store).run("text")

    assert transitions["prompt-1"] == [GenerationStatus.PENDING, GenerationStatus.SUCCESS]
    assert transitions["prompt-2"] == [GenerationStatus.PENDING, GenerationStatus.ERROR]
    assert transitions["prompt-3"] == [GenerationStatus.PENDING, GenerationStatus.SUCCESS]


@pytest.mark.asyncio
async def test_images_generated_sequentially_in_order(store):
    service = FakeService(make_script(5))

    await make_orchestrator(service, store).run("text", aspect_ratio=AspectRatio.PORTRAIT)

    image_calls = [call for call in service.calls if call[0] == "image"]
    assert [call[1] for call in image_calls] == [f"prompt-{i}" for i in range(1, 6)]
    assert all(call[2] == AspectRatio.PORTRAIT for call in image_calls)
    assert all(call[3] == ImageQuality.STANDARD for call in image_calls)
    assert service.max_active == 1
    assert store.script.aspect_ratio == AspectRatio.PORTRAIT


@pytest.mark.asyncio
async def test_empty_input_fails_before_any_call(store, service):
    orchestrator = make_orchestrator(service, store)

    with pytest.raises(EmptyInputError):
        await orchestrator.run("   ", image=None)

    assert service.calls == []
    assert not orchestrator.running


@pytest.mark.asyncio
async def test_image_only_input_is_accepted(store, service):
    await make_orchestrator(service, store).run("", image=b"\x89PNG page")

    assert service.calls[0] == ("analyze", "", b"\x89PNG page", False)


@pytest.mark.asyncio
async def test_direct_mode_label_and_flag(store, service):
    labels = []

    await make_orchestrator(service, store, labels).run("Scene 1: a robot", direct_mode=True)

    assert labels[0] == "Normalizing your script..."
    assert service.calls[0][3] is True


@pytest.mark.asyncio
async def test_progress_labels(store):
    labels = []

    await make_orchestrator(FakeService(make_script(2)), store, labels).run("text")

    assert labels == [
        "Analyzing content...",
        "Starting batch illustration...",
        "Illustrating scene 1/2...",
        "Illustrating scene 2/2...",
        "Pipeline complete!",
    ]


@pytest.mark.asyncio
async def test_analysis_failure_aborts_and_installs_nothing(store):
    store.install(make_script(2, topic="Previous run"))
    service = FakeService(analyze_error=ConnectionError("network down"))
    orchestrator = make_orchestrator(service, store)

    with pytest.raises(AnalysisError, match="network down"):
        await orchestrator.run("text")

    assert store.script is None
    assert orchestrator.state.stage == PipelineStage.FAILED
    assert orchestrator.state.errors
    assert not orchestrator.running
    assert [call[0] for call in service.calls] == ["analyze"]


@pytest.mark.asyncio
async def test_analysis_error_propagates_unchanged(store):
    error = AnalysisError("Response does not contain any scenes")
    orchestrator = make_orchestrator(FakeService(analyze_error=error), store)

    with pytest.raises(AnalysisError) as excinfo:
        await orchestrator.run("text")

    assert excinfo.value is error


@pytest.mark.asyncio
async def test_concurrent_run_rejected(store):
    service = FakeService(make_script(3))
    orchestrator = PipelineOrchestrator(service, store, inter_request_delay=0.01, grace_delay=0)

    first = asyncio.create_task(orchestrator.run("text"))
    await asyncio.sleep(0)
    with pytest.raises(PipelineBusyError):
        await orchestrator.run("again")
    await first

    assert not orchestrator.running


@pytest.mark.asyncio
async def test_running_until_grace_delay_elapses(store, service):
    orchestrator = PipelineOrchestrator(service, store, inter_request_delay=0, grace_delay=0.05)

    task = asyncio.create_task(orchestrator.run("text"))
    while orchestrator.state.stage != PipelineStage.DONE:
        await asyncio.sleep(0.001)

    assert orchestrator.running
    await task
    assert not orchestrator.running


@pytest.mark.asyncio
async def test_cancellation_between_scenes(store):
    token = CancellationToken()
    service = FakeService(make_script(4))
    store.subscribe(
        lambda scene: token.cancel("user stop")
        if scene.visual_prompt == "prompt-2" and scene.status == GenerationStatus.SUCCESS
        else None
    )
    orchestrator = make_orchestrator(service, store)

    with pytest.raises(RunCancelledError):
        await orchestrator.run("text", cancel=token)

    assert [s.status for s in store.scenes] == [
        GenerationStatus.SUCCESS,
        GenerationStatus.SUCCESS,
        GenerationStatus.IDLE,
        GenerationStatus.IDLE,
    ]
    assert orchestrator.state.stage == PipelineStage.FAILED
    assert not orchestrator.running


@pytest.mark.asyncio
async def test_new_run_replaces_script(store):
    orchestrator = make_orchestrator(FakeService(make_script(2, topic="First")), store)
    await orchestrator.run("one")
    first_ids = [s.id for s in store.scenes]

    orchestrator._service = FakeService(make_script(3, topic="Second"))
    await orchestrator.run("two")

    assert store.topic == "Second"
    assert len(store.scenes) == 3
    assert not set(first_ids) & {s.id for s in store.scenes}
