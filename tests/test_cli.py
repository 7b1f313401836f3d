"""
CLI tests using typer's CliRunner
"""

import pytest
from typer.testing import CliRunner

import lessonreel.services
from lessonreel import __version__
from lessonreel.cli import app
from lessonreel.config import config
from lessonreel.models import GenerationStatus, TextbookScript

from conftest import FakeService, make_script

runner = CliRunner()


@pytest.fixture
def script_path(tmp_path):
    path = tmp_path / "script.yaml"
    make_script(3, topic="Plant Cells").to_yaml(path)
    return path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_status_lists_scenes(script_path):
    result = runner.invoke(app, ["status", "--script", str(script_path)])

    assert result.exit_code == 0
    assert "Plant Cells" in result.output
    assert "Scene 1" in result.output
    assert "Clips: 0" in result.output


def test_status_without_script(tmp_path):
    result = runner.invoke(app, ["status", "--script", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "No script found" in result.output


def test_merge_without_clips(script_path):
    result = runner.invoke(app, ["merge", "--script", str(script_path)])

    assert result.exit_code == 1
    assert "at least one video clip" in result.output


def test_video_unknown_scene(script_path):
    result = runner.invoke(app, ["video", "42", "--script", str(script_path)])

    assert result.exit_code == 1
    assert "No scene 42" in result.output


def test_reset_removes_script(script_path):
    result = runner.invoke(app, ["reset", "--yes", "--script", str(script_path)])

    assert result.exit_code == 0
    assert not script_path.exists()


def test_run_saves_illustrated_script(tmp_path, monkeypatch):
    service = FakeService(make_script(3, topic="Photosynthesis"), fail_prompts={"prompt-2"})
    monkeypatch.setattr(lessonreel.services, "VertexGenerationService", lambda: service)
    monkeypatch.setattr(config, "anthropic_api_key", "test-key")
    monkeypatch.setattr(config, "google_cloud_project", "test-project")
    monkeypatch.setattr(config, "inter_request_delay", 0.0)
    monkeypatch.setattr(config, "grace_delay", 0.0)
    path = tmp_path / "script.yaml"

    result = runner.invoke(app, ["run", "Plants turn light into sugar", "--script", str(path)])

    assert result.exit_code == 0, result.output
    saved = TextbookScript.from_yaml(path)
    assert saved.topic == "Photosynthesis"
    assert [s.status for s in saved.scenes] == [
        GenerationStatus.SUCCESS,
        GenerationStatus.ERROR,
        GenerationStatus.SUCCESS,
    ]
    assert "1 scene(s) could not be illustrated" in result.output


def test_run_without_input(monkeypatch, tmp_path):
    monkeypatch.setattr(lessonreel.services, "VertexGenerationService", FakeService)
    monkeypatch.setattr(config, "anthropic_api_key", "test-key")
    monkeypatch.setattr(config, "google_cloud_project", "test-project")

    result = runner.invoke(app, ["run", "--script", str(tmp_path / "script.yaml")])

    assert result.exit_code == 1
    assert "Provide textbook content" in result.output
