"""Google Imagen API client wrapper via Vertex AI."""

import base64
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import requests

from ..config import config
from ..models import AspectRatio, ImageQuality
from .vertex import auth_headers, model_url

logger = logging.getLogger(__name__)


@dataclass
class ImageResult:
    """Result of an Imagen generation operation."""

    prompt: str
    local_path: Optional[Path] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)


class ImagenClient:
    """Client wrapper for Google Imagen image generation via Vertex AI."""

    DEFAULT_TIMEOUT = 120.0

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the Imagen client.

        Args:
            project_id: Google Cloud project ID.
            location: GCP region for Vertex AI.
            timeout: HTTP timeout in seconds.
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location or config.google_cloud_location
        self._timeout = timeout

        if not self._project_id:
            raise ValueError("GOOGLE_CLOUD_PROJECT not set")

    @staticmethod
    def model_for(quality: ImageQuality) -> str:
        """Return the Imagen model used for a quality preset."""
        if quality == ImageQuality.HIGH:
            return config.imagen_high_model
        return config.imagen_model

    def generate_image(
        self,
        prompt: str,
        output_path: Path,
        aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE,
        quality: ImageQuality = ImageQuality.STANDARD,
    ) -> ImageResult:
        """Generate an image from a text prompt.

        Args:
            prompt: Text description of the image to generate.
            output_path: Local path to save the generated image.
            aspect_ratio: Image aspect ratio.
            quality: Quality preset; selects the Imagen model.

        Returns:
            ImageResult with generation details. ``error_message`` is set
            when no image could be produced.
        """
        model = self.model_for(quality)
        result = ImageResult(
            prompt=prompt,
            created_at=datetime.now(),
            metadata={
                "aspect_ratio": aspect_ratio.value,
                "model": model,
            },
        )

        try:
            url = model_url(self._project_id, self._location, model, "predict")
            request_body = {
                "instances": [
                    {"prompt": prompt}
                ],
                "parameters": {
                    "sampleCount": 1,
                    "aspectRatio": aspect_ratio.value,
                },
            }

            logger.info(f"Generating image with Imagen: {prompt[:50]}...")
            response = requests.post(
                url, json=request_body, headers=auth_headers(), timeout=self._timeout
            )

            if response.status_code != 200:
                error_msg = f"{response.status_code}: {response.text[:500]}"
                logger.error(f"Imagen API error: {error_msg}")
                result.error_message = error_msg
                return result

            data = response.json()

            predictions = data.get("predictions", [])
            if not predictions:
                result.error_message = "No predictions in response"
                return result

            image_data = predictions[0].get("bytesBase64Encoded")
            if not image_data:
                result.error_message = "No image data in response"
                return result

            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "wb") as f:
                f.write(base64.b64decode(image_data))

            result.local_path = output_path
            logger.info(f"Saved image to {output_path}")

            return result

        except Exception as e:
            logger.error(f"Image generation failed: {e}")
            result.error_message = str(e)
            return result
