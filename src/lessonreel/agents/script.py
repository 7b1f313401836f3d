"""Script agent: turns a textbook excerpt into an ordered scene breakdown."""

import json
from dataclasses import dataclass
from typing import Optional

from ..errors import AnalysisError
from ..models import Scene, TextbookScript
from .base import BaseAgent

DEFAULT_TOPIC = "Custom script"

OUTPUT_FORMAT = """Output valid JSON only, with no additional text or markdown formatting.
The JSON must be an object of the form:
{"topic": "...", "scenes": [{"title": "...", "narration": "...", "visualPrompt": "..."}]}"""

ANALYZE_PROMPT = """You are a professional scriptwriter for educational videos.
Analyze the textbook material you are given and split it into {num_scenes} scenes.
Each scene needs a short title and a narration in the language of the material.
Each scene also needs a 'visualPrompt' written in ENGLISH that describes the image
in detail, in a professional 3D educational illustration style.

""" + OUTPUT_FORMAT

DIRECT_PROMPT = """You are an expert at optimizing visual scripts. The user already wrote the script.
1. Keep the scenes and ideas the user provided.
2. For each scene, write a highly detailed 'visualPrompt' in ENGLISH
   (3D animated feature film style, volumetric lighting, very sharp).
3. If the script is too short, split it into {num_scenes} scenes based on its content.

""" + OUTPUT_FORMAT


@dataclass
class ScriptInput:
    """Input data for the script agent."""

    content: str
    image: Optional[bytes] = None
    direct_mode: bool = False
    num_scenes: int = 4


class ScriptAgent(BaseAgent[ScriptInput, TextbookScript]):
    """Agent for breaking a textbook excerpt into narrated scenes.

    In analyze mode the material is summarised into a fixed number of
    scenes. In direct mode the content is already a script and is only
    normalised: scenes are kept and visual prompts are written for them.
    """

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "ScriptAgent"

    def system_prompt(self, input_data: ScriptInput) -> str:
        template = DIRECT_PROMPT if input_data.direct_mode else ANALYZE_PROMPT
        # OUTPUT_FORMAT holds literal braces, so no str.format here
        return template.replace("{num_scenes}", str(input_data.num_scenes))

    def run(self, input_data: ScriptInput) -> TextbookScript:
        """Generate a script from the input material.

        Args:
            input_data: Textbook content, optional page image and mode.

        Returns:
            TextbookScript whose scenes all start IDLE with fresh ids.

        Raises:
            AnalysisError: If the response is malformed or has no scenes.
        """
        self._logger.info(
            f"Analyzing {len(input_data.content)} chars of content "
            f"(image: {input_data.image is not None}, direct: {input_data.direct_mode})"
        )

        response = self._create_message(
            prompt=self._build_prompt(input_data),
            system=self.system_prompt(input_data),
            max_tokens=4096,
            temperature=0.7,
            image=input_data.image,
        )

        script = self._parse_response(response)
        self._logger.info(f"Generated {len(script.scenes)} scenes for '{script.topic}'")
        return script

    def _build_prompt(self, input_data: ScriptInput) -> str:
        content = input_data.content.strip()
        if not content:
            return "Input content: see the attached textbook page."
        return f"Input content: {content}"

    def _parse_response(self, response: str) -> TextbookScript:
        """Parse Claude's response into a TextbookScript.

        Raises:
            AnalysisError: If response cannot be parsed into at least one scene.
        """
        json_str = self._extract_json(response)

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse JSON: {e}")
            self._logger.debug(f"Raw response: {response}")
            raise AnalysisError(f"Invalid JSON in response: {e}") from e

        if not isinstance(data, dict):
            raise AnalysisError("Response is not a JSON object")

        scenes_data = data.get("scenes")
        if not isinstance(scenes_data, list) or not scenes_data:
            raise AnalysisError("Response does not contain any scenes")

        scenes: list[Scene] = []
        for i, scene_data in enumerate(scenes_data):
            if not isinstance(scene_data, dict):
                raise AnalysisError(f"Scene {i + 1} is not an object")
            try:
                scenes.append(Scene(
                    title=str(scene_data["title"]),
                    narration=str(scene_data["narration"]),
                    visual_prompt=str(scene_data.get("visualPrompt") or scene_data["visual_prompt"]),
                ))
            except KeyError as e:
                raise AnalysisError(f"Scene {i + 1} is missing field {e}") from e

        return TextbookScript(topic=data.get("topic") or DEFAULT_TOPIC, scenes=scenes)

    def _extract_json(self, response: str) -> str:
        """Extract JSON from a response that may contain markdown or other text."""
        if "```json" in response:
            start = response.find("```json") + 7
            end = response.find("```", start)
            if end > start:
                return response[start:end].strip()

        if "```" in response:
            start = response.find("```") + 3
            end = response.find("```", start)
            if end > start:
                return response[start:end].strip()

        start = response.find("{")
        if start != -1:
            depth = 0
            for i, char in enumerate(response[start:], start):
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        return response[start:i + 1]

        return response.strip()
