"""
HTTP adapters for the three interchangeable image-synthesis providers.

Every adapter shares one contract: ``generate(prompt, aspect_ratio, reference)``
returns :class:`ImageData` or ``None``. Failures never propagate past the adapter;
they are logged and reported as ``None`` so one provider cannot abort a page.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Protocol, Sequence

import requests

from gehon.common import ImageData, LazyCell
from gehon.config import GehonSettings
from gehon.exceptions import ProviderError

from .prompting import NEGATIVE_PROMPT

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_IMAGES_ENDPOINT = f"{GEMINI_API_BASE}/models/imagegeneration:generate"
METADATA_TOKEN_URL = (
    "http://metadata.google.internal/computeMetadata/v1/instance/service-accounts/default/token"
)
METADATA_PROJECT_URL = "http://metadata.google.internal/computeMetadata/v1/project/project-id"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}
METADATA_TIMEOUT = 5.0


class ProviderName(str, Enum):
    """Closed set of image providers."""

    PREVIEW = "preview"
    GEMINI = "gemini"
    VERTEX = "vertex"


FALLBACK_PROVIDER_TAG = "fallback"

# Paths (relative to a prediction entry) where base64 payloads have been observed.
_GEMINI_PAYLOAD_PATHS: tuple[tuple[str, ...], ...] = (
    ("image", "base64Data"),
    ("image", "inlineData", "data"),
    ("bytesBase64Encoded",),
    ("imageBytes",),
    ("b64_json",),
)
_VERTEX_PAYLOAD_PATHS: tuple[tuple[str, ...], ...] = (
    ("bytesBase64Encoded",),
    ("imageBytes",),
    ("b64_json",),
    ("image", "base64Data"),
    ("image", "bytesBase64Encoded"),
)


class ImageProvider(Protocol):
    """Capability shared by every image-synthesis adapter."""

    name: ProviderName
    accepts_reference: bool

    def generate(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: ImageData | None = None,
    ) -> ImageData | None:
        ...


class HTTPImageProvider:
    """
    Base class wrapping one JSON-over-HTTP image generation call.

    Subclasses implement :meth:`_request_image` and may raise :class:`ProviderError`,
    ``requests.RequestException`` or ``ValueError``; all are absorbed by :meth:`generate`.
    """

    name: ProviderName
    accepts_reference = False

    def __init__(
        self,
        *,
        settings: GehonSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings or GehonSettings.from_env()
        self._session = session or requests.Session()

    def generate(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: ImageData | None = None,
    ) -> ImageData | None:
        try:
            image = self._request_image(prompt, aspect_ratio, reference)
        except ProviderError as exc:
            logger.warning("Image provider unavailable: %s", exc)
            return None
        except requests.RequestException:
            logger.exception("Image provider %s request failed.", self.name.value)
            return None
        except ValueError as exc:
            logger.warning("Image provider %s returned an unusable payload: %s", self.name.value, exc)
            return None

        if image is None or not image.data:
            return None
        return image

    def _request_image(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: ImageData | None,
    ) -> ImageData | None:
        raise NotImplementedError

    def _post_json(
        self,
        url: str,
        body: Mapping[str, Any],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)
        response = self._session.post(
            url,
            json=body,
            headers=request_headers,
            timeout=self._settings.request_timeout,
        )
        if not response.ok:
            raise ProviderError(
                self.name.value,
                f"Request failed with status {response.status_code}: {response.text[:500]}",
            )
        return response.json()

    def _require_api_key(self) -> str:
        api_key = self._settings.gemini_api_key
        if not api_key:
            raise ProviderError(self.name.value, "GEMINI_API_KEY is not configured.")
        return api_key


class PreviewImageProvider(HTTPImageProvider):
    """
    Direct generateContent call against the image preview model.

    The only provider that accepts an inline reference image.
    """

    name = ProviderName.PREVIEW
    accepts_reference = True

    def _request_image(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: ImageData | None,
    ) -> ImageData | None:
        api_key = self._require_api_key()

        parts: list[dict[str, Any]] = []
        if reference is not None and reference.data:
            parts.append(
                {"inlineData": {"mimeType": reference.mime_type, "data": reference.base64}}
            )
            parts.append(
                {
                    "text": (
                        f"{prompt}\n"
                        f"Canvas aspect ratio: {aspect_ratio} (portrait)\n"
                        "Keep the mood, colors and the protagonist's appearance (hairstyle, "
                        "clothing, color scheme) of the reference image while painting the new "
                        "scene described above in watercolor."
                    )
                }
            )
        else:
            parts.append({"text": f"{prompt}\nCanvas aspect ratio: {aspect_ratio} (portrait)"})

        body = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": 0.7,
                "topK": 1,
                "topP": 1,
                "maxOutputTokens": 1024,
            },
        }
        url = f"{GEMINI_API_BASE}/models/{self._settings.preview_model}:generateContent"
        data = self._post_json(f"{url}?key={api_key}", body)

        image = extract_inline_image(data)
        if image is None:
            raise ProviderError(self.name.value, "Response did not contain an inline image.")
        return image


class GeminiImageProvider(HTTPImageProvider):
    """
    Text-to-image call through the Gemini images endpoint (model chosen in the body).
    """

    name = ProviderName.GEMINI

    def _request_image(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: ImageData | None,
    ) -> ImageData | None:
        api_key = self._require_api_key()
        body = {
            "model": self._settings.imagen_model,
            "prompt": {"text": prompt},
            "negativePrompt": NEGATIVE_PROMPT,
            "imageGenerationConfig": {
                "numberOfImages": 1,
                "aspectRatio": aspect_ratio,
            },
        }
        data = self._post_json(f"{GEMINI_IMAGES_ENDPOINT}?key={api_key}", body)

        image = extract_prediction_image(
            data,
            containers=("generatedImages", "predictions", "images"),
            payload_paths=_GEMINI_PAYLOAD_PATHS,
        )
        if image is None:
            raise ProviderError(self.name.value, "Could not extract base64 image from response.")
        return image


class VertexImageProvider(HTTPImageProvider):
    """
    Vertex AI predict call against the public Imagen model.
    """

    name = ProviderName.VERTEX

    def __init__(
        self,
        *,
        settings: GehonSettings | None = None,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(settings=settings, session=session)
        self._project_id = LazyCell(self._resolve_project_id)

    def _request_image(
        self,
        prompt: str,
        aspect_ratio: str,
        reference: ImageData | None,
    ) -> ImageData | None:
        project_id = self._project_id.get()
        access_token = self._fetch_access_token()
        location = self._settings.imagen_location
        endpoint = (
            f"https://{location}-aiplatform.googleapis.com/v1/projects/{project_id}"
            f"/locations/{location}/publishers/google/models/{self._settings.imagen_model}:predict"
        )
        body = {
            "instances": [{"prompt": prompt, "negativePrompt": NEGATIVE_PROMPT}],
            "parameters": {"sampleCount": 1, "aspectRatio": aspect_ratio},
        }
        data = self._post_json(
            endpoint,
            body,
            headers={"Authorization": f"Bearer {access_token}"},
        )

        image = extract_prediction_image(
            data,
            containers=("predictions", "generatedImages", "images"),
            payload_paths=_VERTEX_PAYLOAD_PATHS,
        )
        if image is None:
            raise ProviderError(self.name.value, "Could not extract base64 image from response.")
        return image

    def _resolve_project_id(self) -> str:
        if self._settings.imagen_project_id:
            return self._settings.imagen_project_id

        try:
            response = self._session.get(
                METADATA_PROJECT_URL, headers=METADATA_HEADERS, timeout=METADATA_TIMEOUT
            )
        except requests.RequestException as exc:
            raise ProviderError(self.name.value, f"Could not reach metadata server: {exc}") from exc

        project_id = response.text.strip() if response.ok else ""
        if not project_id:
            raise ProviderError(self.name.value, "Could not resolve the Google Cloud project id.")
        return project_id

    def _fetch_access_token(self) -> str:
        if self._settings.imagen_access_token:
            return self._settings.imagen_access_token

        try:
            response = self._session.get(
                METADATA_TOKEN_URL, headers=METADATA_HEADERS, timeout=METADATA_TIMEOUT
            )
            payload = response.json() if response.ok else {}
        except (requests.RequestException, ValueError) as exc:
            raise ProviderError(self.name.value, f"Could not fetch access token: {exc}") from exc

        token = payload.get("access_token") if isinstance(payload, Mapping) else None
        if not token:
            raise ProviderError(
                self.name.value,
                "No access token available. Run on Google Cloud or set GEHON_IMAGEN_ACCESS_TOKEN.",
            )
        return str(token)


def extract_inline_image(data: Any) -> ImageData | None:
    """
    Pull the first inline image out of a generateContent response.

    Accepts both ``inlineData{mimeType,data}`` and ``inline_data{mime_type,data}`` parts,
    then the alternate top-level ``image.base64Data`` / ``bytesBase64Encoded`` fields.
    """
    if not isinstance(data, Mapping):
        return None

    candidates = data.get("candidates")
    for candidate in candidates if isinstance(candidates, list) else []:
        if not isinstance(candidate, Mapping):
            continue
        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, Mapping) else None
        for part in parts if isinstance(parts, list) else []:
            if not isinstance(part, Mapping):
                continue
            camel = part.get("inlineData")
            snake = part.get("inline_data")
            camel = camel if isinstance(camel, Mapping) else {}
            snake = snake if isinstance(snake, Mapping) else {}
            mime_type = camel.get("mimeType") or snake.get("mime_type")
            payload = camel.get("data") or snake.get("data")
            if isinstance(mime_type, str) and isinstance(payload, str) and mime_type and payload:
                return ImageData.from_base64(payload, mime_type)

    alternate = _dig(data, ("image", "base64Data")) or _dig(data, ("bytesBase64Encoded",))
    if isinstance(alternate, str) and alternate:
        return ImageData.from_base64(alternate, "image/png")
    return None


def extract_prediction_image(
    data: Any,
    *,
    containers: Sequence[str],
    payload_paths: Sequence[tuple[str, ...]],
) -> ImageData | None:
    """
    Pull the first image out of an images/predict style response.

    ``containers`` lists the top-level arrays to look in (first non-empty wins) and
    ``payload_paths`` the locations of the base64 payload inside an entry.
    """
    if not isinstance(data, Mapping):
        return None

    entry: Any = None
    for key in containers:
        items = data.get(key)
        if isinstance(items, list) and items and items[0]:
            entry = items[0]
            break
    if not isinstance(entry, Mapping):
        return None

    for path in payload_paths:
        payload = _dig(entry, path)
        if isinstance(payload, str) and payload:
            mime_type = entry.get("mimeType")
            return ImageData.from_base64(
                payload, mime_type if isinstance(mime_type, str) and mime_type else "image/png"
            )
    return None


def _dig(data: Any, path: Sequence[str]) -> Any:
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def build_default_providers(
    settings: GehonSettings | None = None,
    *,
    session: requests.Session | None = None,
) -> dict[ProviderName, ImageProvider]:
    """
    Instantiate one adapter per provider, sharing settings and the HTTP session.
    """
    resolved = settings or GehonSettings.from_env()
    shared_session = session or requests.Session()
    return {
        ProviderName.PREVIEW: PreviewImageProvider(settings=resolved, session=shared_session),
        ProviderName.GEMINI: GeminiImageProvider(settings=resolved, session=shared_session),
        ProviderName.VERTEX: VertexImageProvider(settings=resolved, session=shared_session),
    }
