"""Google Veo API client wrapper via Vertex AI."""

import base64
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import requests
from google.cloud import storage
from google.api_core import exceptions as google_exceptions

from ..config import config
from .anthropic import detect_media_type
from .vertex import auth_headers, model_url

logger = logging.getLogger(__name__)


class OperationStatus(str, Enum):
    """Status of a Veo long-running operation."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ClipResult:
    """Result of a Veo generation operation."""

    operation_name: str
    status: OperationStatus
    output_uri: Optional[str] = None
    local_path: Optional[Path] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)


class VeoClient:
    """Client wrapper for Google Veo video generation via Vertex AI.

    This client handles:
    - Submitting long-running generation requests (optionally seeded by an image)
    - Polling the operation until its ``done`` flag is set
    - Fetching the clip from GCS or from inline bytes
    """

    DEFAULT_POLL_INTERVAL = 10.0  # seconds
    DEFAULT_MAX_POLL_TIME = 600.0  # 10 minutes
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 2.0
    PROMPT_PREFIX = "Cinematic 3D animation style: "

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        output_bucket: Optional[str] = None,
        model: Optional[str] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_time: float = DEFAULT_MAX_POLL_TIME,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize the Veo client.

        Args:
            project_id: Google Cloud project ID. Defaults to GOOGLE_CLOUD_PROJECT env var.
            location: GCP region for Vertex AI. Defaults to GOOGLE_CLOUD_LOCATION.
            output_bucket: Optional GCS prefix for output videos. When unset the
                clip bytes are returned inline.
            model: Veo model name.
            poll_interval: Seconds between polling checks.
            max_poll_time: Maximum seconds to wait for generation.
            max_retries: Maximum attempts when downloading from GCS.
            retry_delay: Base delay between download retries (exponential backoff).
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location or config.google_cloud_location
        self._output_bucket = output_bucket if output_bucket is not None else config.veo_output_bucket
        self._model = model or config.veo_model
        self._poll_interval = poll_interval
        self._max_poll_time = max_poll_time
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._storage_client: Optional[storage.Client] = None

        self._validate_config()

    def _validate_config(self) -> None:
        """Validate that required configuration is set."""
        if not self._project_id:
            raise ValueError(
                "Missing required configuration: GOOGLE_CLOUD_PROJECT. "
                "Set the corresponding environment variable."
            )

        if self._output_bucket and not self._output_bucket.startswith("gs://"):
            raise ValueError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self._output_bucket}"
            )

    def generate_clip(
        self,
        prompt: str,
        output_path: Path,
        seed_image: Optional[bytes] = None,
        aspect_ratio: str = "16:9",
    ) -> ClipResult:
        """Generate a video clip from a prompt, optionally seeded by an image.

        Args:
            prompt: Text description of the clip.
            output_path: Local path to save the generated video.
            seed_image: Still image the clip should animate.
            aspect_ratio: Video aspect ratio ('16:9' or '9:16').

        Returns:
            ClipResult with the final operation status.

        Raises:
            ValueError: If the prompt is empty.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        result = ClipResult(
            operation_name="",
            status=OperationStatus.PENDING,
            started_at=datetime.now(),
            metadata={
                "prompt": prompt,
                "aspect_ratio": aspect_ratio,
                "seeded": seed_image is not None,
                "model": self._model,
            },
        )

        try:
            logger.info(f"Starting Veo generation: {prompt[:60]}...")
            result.operation_name = self._submit_generation_request(prompt, seed_image, aspect_ratio)
            result.status = OperationStatus.PROCESSING

            operation = self._poll_operation(result.operation_name)
            if operation is None:
                result.status = OperationStatus.FAILED
                result.error_message = f"Operation timed out after {self._max_poll_time}s"
                result.completed_at = datetime.now()
                return result

            if "error" in operation:
                result.status = OperationStatus.FAILED
                result.error_message = operation["error"].get("message", "Veo operation failed")
                result.completed_at = datetime.now()
                return result

            self._save_output(operation.get("response", {}), output_path, result)
            result.completed_at = datetime.now()
            return result

        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"GCS error: {e}")
            result.status = OperationStatus.FAILED
            result.error_message = str(e)
            result.completed_at = datetime.now()
            return result

        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            result.status = OperationStatus.FAILED
            result.error_message = str(e)
            result.completed_at = datetime.now()
            return result

    def _submit_generation_request(
        self,
        prompt: str,
        seed_image: Optional[bytes],
        aspect_ratio: str,
    ) -> str:
        """Submit a long-running generation request and return the operation name."""
        instance: dict = {"prompt": f"{self.PROMPT_PREFIX}{prompt}"}
        if seed_image:
            instance["image"] = {
                "bytesBase64Encoded": base64.b64encode(seed_image).decode("ascii"),
                "mimeType": detect_media_type(seed_image),
            }

        parameters: dict = {
            "sampleCount": 1,
            "aspectRatio": aspect_ratio,
            "resolution": "720p",
        }
        if self._output_bucket:
            parameters["storageUri"] = self._output_bucket.rstrip("/") + "/"

        url = model_url(self._project_id, self._location, self._model, "predictLongRunning")
        response = requests.post(
            url,
            json={"instances": [instance], "parameters": parameters},
            headers=auth_headers(),
            timeout=60,
        )
        response.raise_for_status()

        operation_name = response.json().get("name")
        if not operation_name:
            raise RuntimeError("Veo did not return an operation name")
        logger.debug(f"Submitted Veo operation {operation_name}")
        return operation_name

    def _poll_operation(self, operation_name: str) -> Optional[dict]:
        """Poll an operation until its ``done`` flag is set.

        Returns:
            The finished operation payload, or None on timeout.
        """
        url = model_url(self._project_id, self._location, self._model, "fetchPredictOperation")
        start_time = time.time()
        poll_count = 0

        while True:
            elapsed = time.time() - start_time
            if elapsed > self._max_poll_time:
                logger.warning(f"Operation {operation_name} timed out after {elapsed:.1f}s")
                return None

            poll_count += 1
            logger.debug(f"Polling operation (attempt {poll_count}): {operation_name}")

            try:
                response = requests.post(
                    url,
                    json={"operationName": operation_name},
                    headers=auth_headers(),
                    timeout=60,
                )
                response.raise_for_status()
                operation = response.json()
                if operation.get("done"):
                    logger.info(f"Operation {operation_name} finished after {poll_count} polls")
                    return operation

            except requests.RequestException as e:
                logger.warning(f"Error checking operation status: {e}")

            time.sleep(self._poll_interval)

    def _save_output(self, response: dict, output_path: Path, result: ClipResult) -> None:
        """Write the first generated video of an operation response to disk."""
        videos = response.get("videos") or response.get("generatedSamples") or []
        video = videos[0] if videos else {}
        if "video" in video:
            video = video["video"]

        gcs_uri = video.get("gcsUri") or video.get("uri")
        inline = video.get("bytesBase64Encoded")

        if gcs_uri:
            self._download_from_gcs(gcs_uri, output_path)
            result.output_uri = gcs_uri
        elif inline:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(base64.b64decode(inline))
        else:
            result.status = OperationStatus.FAILED
            result.error_message = "No video output in completed operation"
            return

        result.local_path = output_path
        result.status = OperationStatus.COMPLETED
        logger.info(f"Saved generated clip to {output_path}")

    def _download_from_gcs(self, gcs_uri: str, local_path: Path) -> None:
        """Download a file from GCS to local path.

        Args:
            gcs_uri: GCS URI (gs://bucket/path/to/file).
            local_path: Local path to save the file.
        """
        if not gcs_uri.startswith("gs://"):
            raise ValueError(f"Invalid GCS URI: {gcs_uri}")

        uri_parts = gcs_uri[5:].split("/", 1)
        if len(uri_parts) != 2:
            raise ValueError(f"Invalid GCS URI format: {gcs_uri}")

        bucket_name, blob_name = uri_parts

        local_path.parent.mkdir(parents=True, exist_ok=True)

        if self._storage_client is None:
            self._storage_client = storage.Client(project=self._project_id)

        # Download with retry
        for attempt in range(self._max_retries):
            try:
                bucket = self._storage_client.bucket(bucket_name)
                blob = bucket.blob(blob_name)
                blob.download_to_filename(str(local_path))
                logger.debug(f"Downloaded {gcs_uri} to {local_path}")
                return

            except google_exceptions.NotFound:
                logger.error(f"File not found in GCS: {gcs_uri}")
                raise

            except Exception as e:
                if attempt == self._max_retries - 1:
                    raise
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Download failed (attempt {attempt + 1}): {e}. Retrying in {delay}s...")
                time.sleep(delay)
