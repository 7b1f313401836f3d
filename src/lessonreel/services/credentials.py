"""Credential gates guarding video synthesis."""

import logging
import os
from typing import Callable, Optional, Protocol

from ..config import Config, config as default_config

logger = logging.getLogger(__name__)


class CredentialGate(Protocol):
    """Authorization check in front of video synthesis.

    ``request_credential`` starts an out-of-band flow and does not hand the
    credential back; callers retry afterwards.
    """

    async def has_credential(self) -> bool:
        ...

    async def request_credential(self) -> None:
        ...


class EnvCredentialGate:
    """Credential is present when a Google Cloud project is configured."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self._config = config or default_config

    async def has_credential(self) -> bool:
        return bool(self._config.google_cloud_project)

    async def request_credential(self) -> None:
        logger.warning(
            "Video generation needs Vertex AI access. Set GOOGLE_CLOUD_PROJECT "
            "(and GOOGLE_APPLICATION_CREDENTIALS) and try again."
        )


class PromptCredentialGate(EnvCredentialGate):
    """Asks the user for the Google Cloud project when it is missing."""

    def __init__(
        self,
        config: Optional[Config] = None,
        prompt: Optional[Callable[[str], str]] = None,
    ) -> None:
        super().__init__(config)
        if prompt is None:
            import typer
            prompt = lambda text: typer.prompt(text, default="", show_default=False)
        self._prompt = prompt

    async def request_credential(self) -> None:
        project = self._prompt("Google Cloud project for Veo").strip()
        if not project:
            logger.warning("No project entered; video generation stays disabled")
            return
        self._config.google_cloud_project = project
        os.environ["GOOGLE_CLOUD_PROJECT"] = project
        logger.info(f"Using Google Cloud project {project}")
