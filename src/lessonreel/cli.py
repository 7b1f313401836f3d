"""CLI entry point for the lesson video generator."""

import asyncio
import logging
import typer
from pathlib import Path
from typing import Optional

from . import __version__
from .config import config
from .errors import (
    EmptyInputError,
    GenerationInProgressError,
    LessonReelError,
    NoClipsError,
)
from .models import AspectRatio, GenerationStatus, Scene
from .store import SceneStore

app = typer.Typer(
    name="lessonreel",
    help="Turn textbook excerpts into narrated lesson videos",
    no_args_is_help=True
)

STATUS_ICONS = {
    GenerationStatus.IDLE: "⏳",
    GenerationStatus.PENDING: "🔄",
    GenerationStatus.SUCCESS: "✅",
    GenerationStatus.ERROR: "❌",
}

SCRIPT_OPTION = typer.Option(
    Path("script.yaml"),
    "--script",
    "-s",
    help="Path to the script YAML file",
    file_okay=True,
    dir_okay=False
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"lessonreel version {__version__}")
        raise typer.Exit()


def load_store(script: Path) -> SceneStore:
    """Load a saved script or exit with an error."""
    if not script.exists():
        typer.echo(f"❌ No script found at {script}")
        typer.echo("   Run 'lessonreel run' to create one")
        raise typer.Exit(1)

    store = SceneStore()
    try:
        store.load(script)
    except Exception as e:
        typer.echo(f"❌ Error loading script: {e}")
        raise typer.Exit(1)
    return store


def resolve_scene(store: SceneStore, ref: str) -> Optional[Scene]:
    """Find a scene by id or by its 1-based position."""
    scene = store.get(ref)
    if scene is None and ref.isdigit():
        scenes = store.scenes
        index = int(ref) - 1
        if 0 <= index < len(scenes):
            scene = scenes[index]
    return scene


def echo_scenes(store: SceneStore) -> None:
    typer.echo("\n🎞️  Scenes:")
    for i, scene in enumerate(store.scenes, 1):
        typer.echo(f"   {STATUS_ICONS[scene.status]} [{i}] {scene.title}  ({scene.id})")
        narration = scene.narration[:70] + "..." if len(scene.narration) > 70 else scene.narration
        typer.echo(f"      \"{narration}\"")
        if scene.image_url:
            typer.echo(f"      image: {scene.image_url}")
        if scene.video_url:
            typer.echo(f"      video: {scene.video_url}")
        if scene.error:
            typer.echo(f"      error: {scene.error}")


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Lesson Reel - Turn textbook pages into narrated videos using AI."""
    pass


@app.command()
def run(
    text: Optional[str] = typer.Argument(
        None,
        help="Textbook content, or a ready script with --direct"
    ),
    text_file: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        help="Read the content from a text file",
        exists=True,
        dir_okay=False
    ),
    image: Optional[Path] = typer.Option(
        None,
        "--image",
        "-i",
        help="Photo or scan of the textbook page",
        exists=True,
        dir_okay=False
    ),
    direct: bool = typer.Option(
        False,
        "--direct",
        "-d",
        help="Content is already a script; normalize instead of summarizing"
    ),
    aspect_ratio: AspectRatio = typer.Option(
        AspectRatio.LANDSCAPE,
        "--aspect-ratio",
        "-a",
        help="Aspect ratio of the images and the merged video"
    ),
    script: Path = SCRIPT_OPTION,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging"
    ),
) -> None:
    """Analyze the content and illustrate every scene."""
    from .pipeline import PipelineOrchestrator
    from .services import VertexGenerationService

    setup_logging(verbose)

    content = text or ""
    if text_file:
        content = text_file.read_text(encoding="utf-8")
    image_bytes = image.read_bytes() if image else None

    try:
        config.validate_required()
        config.validate_vertex_required()
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}")
        raise typer.Exit(1)

    store = SceneStore()
    orchestrator = PipelineOrchestrator(
        VertexGenerationService(),
        store,
        on_progress=lambda label: typer.echo(f"   {label}"),
    )

    typer.echo("🎬 Starting pipeline")
    typer.echo(f"   Mode: {'direct script' if direct else 'analyze'}")
    typer.echo(f"   Aspect ratio: {aspect_ratio.value}")

    try:
        asyncio.run(orchestrator.run(
            content,
            image=image_bytes,
            direct_mode=direct,
            aspect_ratio=aspect_ratio,
        ))
    except EmptyInputError:
        typer.echo("❌ Provide textbook content (argument or --file) or an --image")
        raise typer.Exit(1)
    except LessonReelError as e:
        typer.echo(f"❌ System error: {e}")
        raise typer.Exit(1)

    try:
        store.save(script)
    except Exception as e:
        typer.echo(f"❌ Error saving script: {e}")
        raise typer.Exit(1)

    typer.echo(f"\n📁 {store.topic}")
    echo_scenes(store)
    failed = sum(1 for scene in store.scenes if scene.status == GenerationStatus.ERROR)
    if failed:
        typer.echo(f"\n⚠️  {failed} scene(s) could not be illustrated")
    typer.echo(f"\n✅ Script saved: {script}")


@app.command()
def status(script: Path = SCRIPT_OPTION) -> None:
    """Show the saved script and scene states."""
    store = load_store(script)
    current = store.script

    typer.echo(f"📁 Topic: {current.topic}")
    typer.echo(f"   Aspect ratio: {current.aspect_ratio.value}")
    typer.echo(f"   Scenes: {len(current.scenes)}")
    typer.echo(f"   Clips: {len(current.scenes_with_video())}")
    echo_scenes(store)


@app.command()
def video(
    scene_ref: str = typer.Argument(
        ...,
        help="Scene id or 1-based scene number"
    ),
    script: Path = SCRIPT_OPTION,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging"
    ),
) -> None:
    """Animate one scene's image into a video clip using Google Veo."""
    from .pipeline import SceneVideoGenerator
    from .services import PromptCredentialGate, VertexGenerationService

    setup_logging(verbose)
    store = load_store(script)

    scene = resolve_scene(store, scene_ref)
    if scene is None:
        typer.echo(f"❌ No scene {scene_ref} in {script}")
        raise typer.Exit(1)

    generator = SceneVideoGenerator(VertexGenerationService(), store, PromptCredentialGate())
    typer.echo(f"🎥 Generating clip for: {scene.title}")

    try:
        video_url = asyncio.run(generator.generate_video_for(scene.id))
    except GenerationInProgressError:
        typer.echo("⚠️  This scene is already being generated")
        raise typer.Exit(1)
    except LessonReelError as e:
        store.save(script)
        typer.echo(f"❌ Video generation failed: {e}")
        raise typer.Exit(1)

    if video_url is None:
        typer.echo("🔑 Credentials are required for video generation; run the command again")
        raise typer.Exit(1)

    store.save(script)
    typer.echo(f"✅ Clip saved: {video_url}")


@app.command()
def merge(
    script: Path = SCRIPT_OPTION,
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory (defaults to <workspace>/output)",
        file_okay=False
    ),
    aspect_ratio: Optional[AspectRatio] = typer.Option(
        None,
        "--aspect-ratio",
        "-a",
        help="Override the script's aspect ratio"
    ),
    realtime: bool = typer.Option(
        False,
        "--realtime",
        help="Capture clips at playback speed"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging"
    ),
) -> None:
    """Merge every scene clip into one video file."""
    from .editor import MergeEngine, save_to_directory

    setup_logging(verbose)
    store = load_store(script)
    current = store.script
    ratio = aspect_ratio or current.aspect_ratio

    last = {"percent": -1}

    def report(percent: int) -> None:
        if percent != last["percent"]:
            last["percent"] = percent
            typer.echo(f"   {percent}% complete")

    engine = MergeEngine(
        download=save_to_directory(output or config.output_dir),
        on_progress=report,
        realtime=realtime,
    )

    typer.echo(f"📼 Merging clips for: {current.topic}")
    try:
        result = asyncio.run(engine.merge(current.scenes, ratio, topic=current.topic))
    except NoClipsError:
        typer.echo("❌ Generate at least one video clip before merging")
        raise typer.Exit(1)
    except LessonReelError as e:
        typer.echo(f"❌ Error merging videos: {e}. Please try again.")
        raise typer.Exit(1)

    typer.echo(f"✅ Video merged: {result.filename}")
    typer.echo(f"   Clips: {result.clip_count}")
    typer.echo(f"   Frames: {result.frame_count}")


@app.command()
def reset(
    script: Path = SCRIPT_OPTION,
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation"
    ),
) -> None:
    """Delete the saved script."""
    if not script.exists():
        typer.echo(f"Nothing to reset at {script}")
        raise typer.Exit(0)

    if not yes and not typer.confirm(f"Delete {script}?"):
        raise typer.Exit(1)

    script.unlink()
    typer.echo(f"🗑️  Removed {script}")


if __name__ == "__main__":
    app()
