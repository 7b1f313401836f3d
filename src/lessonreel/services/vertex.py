"""Shared helpers for Vertex AI REST calls."""

import google.auth
import google.auth.transport.requests

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def get_access_token() -> str:
    """Return a fresh OAuth access token from application default credentials."""
    credentials, _ = google.auth.default(scopes=SCOPES)
    credentials.refresh(google.auth.transport.requests.Request())
    return credentials.token


def model_url(project_id: str, location: str, model: str, method: str) -> str:
    """Build the REST URL of a publisher model method (e.g. ``predict``)."""
    return (
        f"https://{location}-aiplatform.googleapis.com/v1/"
        f"projects/{project_id}/locations/{location}/"
        f"publishers/google/models/{model}:{method}"
    )


def auth_headers() -> dict:
    return {
        "Authorization": f"Bearer {get_access_token()}",
        "Content-Type": "application/json",
    }
