"""
Unit tests for ScriptAgent response handling
"""

import json
from unittest.mock import MagicMock

import pytest

from lessonreel.agents import ScriptAgent, ScriptInput
from lessonreel.agents.script import DEFAULT_TOPIC
from lessonreel.errors import AnalysisError
from lessonreel.models import GenerationStatus

RESPONSE = {
    "topic": "The Water Cycle",
    "scenes": [
        {"title": "Evaporation", "narration": "The sun heats the sea.", "visualPrompt": "sunlit ocean"},
        {"title": "Condensation", "narration": "Vapour forms clouds.", "visualPrompt": "puffy clouds"},
    ],
}


@pytest.fixture
def client():
    client = MagicMock()
    client.create_message.return_value = json.dumps(RESPONSE)
    return client


@pytest.fixture
def agent(client):
    return ScriptAgent(client=client, model="test-model")


def test_run_builds_script(agent, client):
    script = agent.run(ScriptInput(content="Water evaporates and condenses."))

    assert script.topic == "The Water Cycle"
    assert [s.title for s in script.scenes] == ["Evaporation", "Condensation"]
    assert script.scenes[0].visual_prompt == "sunlit ocean"
    assert all(s.status == GenerationStatus.IDLE for s in script.scenes)
    assert len({s.id for s in script.scenes}) == 2

    kwargs = client.create_message.call_args.kwargs
    assert "Water evaporates" in kwargs["prompt"]
    assert "split it into 4 scenes" in kwargs["system"]
    assert kwargs["image"] is None


def test_direct_mode_uses_normalizing_prompt(agent, client):
    agent.run(ScriptInput(content="Scene 1: a robot waters flowers", direct_mode=True))

    system = client.create_message.call_args.kwargs["system"]
    assert "already wrote the script" in system


def test_image_is_forwarded(agent, client):
    agent.run(ScriptInput(content="", image=b"\xff\xd8jpeg"))

    kwargs = client.create_message.call_args.kwargs
    assert kwargs["image"] == b"\xff\xd8jpeg"
    assert "attached textbook page" in kwargs["prompt"]


def test_json_inside_markdown_fence(agent, client):
    client.create_message.return_value = "Here it is:\n```json\n" + json.dumps(RESPONSE) + "\n```"

    script = agent.run(ScriptInput(content="text"))

    assert len(script.scenes) == 2


def test_json_with_surrounding_prose(agent, client):
    client.create_message.return_value = "Sure! " + json.dumps(RESPONSE) + " Hope this helps."

    assert agent.run(ScriptInput(content="text")).topic == "The Water Cycle"


def test_missing_topic_defaults(agent, client):
    client.create_message.return_value = json.dumps({"scenes": RESPONSE["scenes"]})

    assert agent.run(ScriptInput(content="text")).topic == DEFAULT_TOPIC


@pytest.mark.parametrize("payload", [
    "not json at all",
    json.dumps({"topic": "Empty", "scenes": []}),
    json.dumps({"topic": "No scenes"}),
    json.dumps({"topic": "Bad", "scenes": [{"title": "only a title"}]}),
])
def test_unusable_output_raises(agent, client, payload):
    client.create_message.return_value = payload

    with pytest.raises(AnalysisError):
        agent.run(ScriptInput(content="text"))
