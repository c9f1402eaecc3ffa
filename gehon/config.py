"""
Runtime settings for Gehon, resolved from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_STORY_MODEL = "gemini/gemini-2.5-flash"
DEFAULT_IMAGEN_MODEL = "imagen-3.0-fast-generate-001"
DEFAULT_PREVIEW_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_IMAGEN_LOCATION = "us-central1"
DEFAULT_IMAGE_PRIMARY = "gemini"
DEFAULT_REQUEST_TIMEOUT = 120.0
DEFAULT_CANDIDATE_ROUNDS = 3

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(value: str | None) -> bool:
    """Interpret an environment-style flag (``1``/``true``/``yes``/``on``)."""
    return (value or "").strip().lower() in _TRUTHY


def _coerce_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Expected a number, got {value!r}") from exc


def _coerce_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Expected an integer, got {value!r}") from exc


@dataclass(frozen=True)
class GehonSettings:
    """
    Configuration shared by the story generator, providers, and pipeline.

    Attributes
    ----------
    gemini_api_key:
        API key for the Gemini generateContent and images endpoints.
    story_api_key:
        API key for LiteLLM story and rewrite calls; defaults to the Gemini key.
    story_model:
        LiteLLM model identifier used for story and description rewriting calls.
    imagen_model:
        Imagen model used by the ``gemini`` and ``vertex`` providers.
    preview_model:
        Model used by the reference-capable ``preview`` provider.
    imagen_location:
        Vertex AI region for the predict endpoint.
    image_primary:
        Provider tried first when no reference image is live.
    imagen_project_id:
        Google Cloud project for Vertex AI. Resolved from the metadata server when unset.
    imagen_access_token:
        Bearer token for Vertex AI. Resolved from the metadata server when unset.
    debug_prompts:
        Log prompt excerpts and attach prompt previews to page results.
    request_timeout:
        Per-call HTTP timeout in seconds for provider requests.
    candidate_rounds:
        Number of candidate images generated per page.
    """

    gemini_api_key: str | None = None
    story_api_key: str | None = None
    story_model: str = DEFAULT_STORY_MODEL
    imagen_model: str = DEFAULT_IMAGEN_MODEL
    preview_model: str = DEFAULT_PREVIEW_MODEL
    imagen_location: str = DEFAULT_IMAGEN_LOCATION
    image_primary: str = DEFAULT_IMAGE_PRIMARY
    imagen_project_id: str | None = None
    imagen_access_token: str | None = None
    debug_prompts: bool = False
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    candidate_rounds: int = DEFAULT_CANDIDATE_ROUNDS

    @classmethod
    def from_env(cls) -> "GehonSettings":
        """
        Build settings from the process environment.
        """
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            story_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("LITELLM_API_KEY") or None,
            story_model=(
                os.getenv("GEHON_STORY_MODEL")
                or os.getenv("LITELLM_STORY_MODEL")
                or os.getenv("LITELLM_MODEL")
                or DEFAULT_STORY_MODEL
            ),
            imagen_model=(
                os.getenv("GEHON_IMAGEN_MODEL")
                or os.getenv("GEHON_ILLUSTRATION_MODEL")
                or DEFAULT_IMAGEN_MODEL
            ),
            preview_model=os.getenv("GEHON_PREVIEW_MODEL") or DEFAULT_PREVIEW_MODEL,
            imagen_location=os.getenv("GEHON_IMAGEN_LOCATION") or DEFAULT_IMAGEN_LOCATION,
            image_primary=(os.getenv("GEHON_IMAGE_PRIMARY") or DEFAULT_IMAGE_PRIMARY).lower(),
            imagen_project_id=(
                os.getenv("GEHON_IMAGEN_PROJECT_ID")
                or os.getenv("GOOGLE_CLOUD_PROJECT")
                or os.getenv("GCLOUD_PROJECT")
                or None
            ),
            imagen_access_token=os.getenv("GEHON_IMAGEN_ACCESS_TOKEN") or None,
            debug_prompts=env_flag(os.getenv("GEHON_DEBUG_PROMPT")),
            request_timeout=_coerce_float(
                os.getenv("GEHON_REQUEST_TIMEOUT"), DEFAULT_REQUEST_TIMEOUT
            ),
            candidate_rounds=_coerce_int(
                os.getenv("GEHON_CANDIDATE_ROUNDS"), DEFAULT_CANDIDATE_ROUNDS
            ),
        )
