"""Configuration management."""

import os
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


class Config(BaseModel):
    """Application configuration."""

    # API Keys
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""),
        description="Anthropic API key (script analysis)"
    )
    google_application_credentials: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""),
        description="Path to Google Cloud service account JSON"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID"
    )
    google_cloud_location: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1"),
        description="Vertex AI region"
    )
    veo_output_bucket: str = Field(
        default_factory=lambda: os.getenv("VEO_OUTPUT_BUCKET", ""),
        description="Optional GCS bucket for Veo output"
    )

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("LESSONREEL_WORKSPACE", ".")),
        description="Workspace directory"
    )

    # Model settings
    default_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Default Claude model"
    )
    imagen_model: str = Field(
        default="imagen-3.0-fast-generate-001",
        description="Imagen model for standard quality"
    )
    imagen_high_model: str = Field(
        default="imagen-3.0-generate-002",
        description="Imagen model for high quality"
    )
    veo_model: str = Field(
        default="veo-3.1-fast-generate-preview",
        description="Veo model for scene clips"
    )

    # Pipeline pacing
    inter_request_delay: float = Field(
        default_factory=lambda: _env_float("LESSONREEL_REQUEST_DELAY", 0.8),
        description="Seconds to wait between scene image requests"
    )
    grace_delay: float = Field(
        default_factory=lambda: _env_float("LESSONREEL_GRACE_DELAY", 2.0),
        description="Seconds the final pipeline label stays visible"
    )

    # Merge settings
    merge_fps: int = Field(default=30, description="Capture surface frame rate")
    output_prefix: str = Field(default="lesson", description="Merged file name prefix")
    output_extension: str = Field(default="webm", description="Merged file container")

    class Config:
        """Pydantic config."""
        frozen = False

    @property
    def assets_dir(self) -> Path:
        return self.workspace / "assets"

    @property
    def clips_dir(self) -> Path:
        return self.workspace / "clips"

    @property
    def output_dir(self) -> Path:
        return self.workspace / "output"

    def validate_required(self) -> None:
        """Validate that required credentials are set."""
        if not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")

    def validate_vertex_required(self) -> None:
        """Validate that Vertex AI (Imagen / Veo) settings are present.

        Raises:
            ValueError: If any required Vertex AI configuration is missing.
        """
        if not self.google_cloud_project:
            raise ValueError(
                "Missing required Vertex AI configuration: GOOGLE_CLOUD_PROJECT. "
                "Set the corresponding environment variable."
            )

        # Validate bucket format
        if self.veo_output_bucket and not self.veo_output_bucket.startswith("gs://"):
            raise ValueError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self.veo_output_bucket}"
            )


# Global config instance
config = Config()
