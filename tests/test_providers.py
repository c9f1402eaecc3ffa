"""Tests for the HTTP image provider adapters (no network)."""

import base64

import requests

from gehon.ai_generation import (
    GeminiImageProvider,
    PreviewImageProvider,
    ProviderName,
    VertexImageProvider,
    build_default_providers,
)
from gehon.ai_generation.prompting import NEGATIVE_PROMPT
from gehon.ai_generation.providers import extract_inline_image, extract_prediction_image
from gehon.common import ImageData
from gehon.config import GehonSettings

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"
PNG_B64 = base64.b64encode(PNG_BYTES).decode("ascii")


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, posts=(), gets=()):
        self._posts = list(posts)
        self._gets = list(gets)
        self.post_calls = []
        self.get_calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.post_calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return self._next(self._posts)

    def get(self, url, headers=None, timeout=None):
        self.get_calls.append({"url": url, "headers": headers})
        return self._next(self._gets)

    @staticmethod
    def _next(queue):
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def _settings(**overrides):
    values = {"gemini_api_key": "test-key", "request_timeout": 7.0}
    values.update(overrides)
    return GehonSettings(**values)


class TestPreviewImageProvider:
    def test_extracts_inline_image(self):
        payload = {
            "candidates": [
                {"content": {"parts": [{"text": "here"}, {"inlineData": {"mimeType": "image/png", "data": PNG_B64}}]}}
            ]
        }
        session = FakeSession(posts=[FakeResponse(payload=payload)])

        image = PreviewImageProvider(settings=_settings(), session=session).generate("prompt", "3:4")

        assert image == ImageData(PNG_BYTES, "image/png")
        call = session.post_calls[0]
        assert "gemini-2.5-flash-image-preview:generateContent" in call["url"]
        assert call["url"].endswith("?key=test-key")
        assert call["timeout"] == 7.0

    def test_reference_is_sent_as_inline_data(self):
        reference = ImageData(b"hero-bytes", "image/jpeg")
        payload = {"candidates": [{"content": {"parts": [{"inline_data": {"mime_type": "image/png", "data": PNG_B64}}]}}]}
        session = FakeSession(posts=[FakeResponse(payload=payload)])

        image = PreviewImageProvider(settings=_settings(), session=session).generate(
            "prompt", "3:4", reference
        )

        assert image is not None
        parts = session.post_calls[0]["json"]["contents"][0]["parts"]
        assert parts[0] == {"inlineData": {"mimeType": "image/jpeg", "data": reference.base64}}
        assert "prompt" in parts[1]["text"]

    def test_non_2xx_returns_none(self):
        session = FakeSession(posts=[FakeResponse(status_code=429, text="quota")])

        assert PreviewImageProvider(settings=_settings(), session=session).generate("p", "3:4") is None

    def test_missing_api_key_returns_none_without_calling(self):
        session = FakeSession()
        provider = PreviewImageProvider(settings=_settings(gemini_api_key=None), session=session)

        assert provider.generate("p", "3:4") is None
        assert session.post_calls == []

    def test_transport_error_returns_none(self):
        session = FakeSession(posts=[requests.ConnectionError("down")])

        assert PreviewImageProvider(settings=_settings(), session=session).generate("p", "3:4") is None

    def test_response_without_image_returns_none(self):
        session = FakeSession(posts=[FakeResponse(payload={"candidates": []})])

        assert PreviewImageProvider(settings=_settings(), session=session).generate("p", "3:4") is None


class TestGeminiImageProvider:
    def test_body_and_generated_images_shape(self):
        payload = {"generatedImages": [{"image": {"base64Data": PNG_B64}}]}
        session = FakeSession(posts=[FakeResponse(payload=payload)])

        image = GeminiImageProvider(settings=_settings(), session=session).generate("prompt", "3:4")

        assert image.data == PNG_BYTES
        body = session.post_calls[0]["json"]
        assert body["model"] == "imagen-3.0-fast-generate-001"
        assert body["prompt"] == {"text": "prompt"}
        assert body["imageGenerationConfig"] == {"numberOfImages": 1, "aspectRatio": "3:4"}
        assert body["negativePrompt"] == NEGATIVE_PROMPT

    def test_predictions_shape(self):
        payload = {"predictions": [{"bytesBase64Encoded": PNG_B64, "mimeType": "image/jpeg"}]}
        session = FakeSession(posts=[FakeResponse(payload=payload)])

        image = GeminiImageProvider(settings=_settings(), session=session).generate("prompt", "3:4")

        assert image == ImageData(PNG_BYTES, "image/jpeg")

    def test_invalid_base64_returns_none(self):
        payload = {"images": [{"b64_json": "!!not base64!!"}]}
        session = FakeSession(posts=[FakeResponse(payload=payload)])

        assert GeminiImageProvider(settings=_settings(), session=session).generate("p", "3:4") is None


class TestVertexImageProvider:
    def test_uses_configured_project_and_token(self):
        payload = {"predictions": [{"bytesBase64Encoded": PNG_B64}]}
        session = FakeSession(posts=[FakeResponse(payload=payload)])
        settings = _settings(imagen_project_id="picture-books", imagen_access_token="tok")

        image = VertexImageProvider(settings=settings, session=session).generate("prompt", "3:4")

        assert image.data == PNG_BYTES
        call = session.post_calls[0]
        assert "/projects/picture-books/locations/us-central1/" in call["url"]
        assert call["url"].endswith("imagen-3.0-fast-generate-001:predict")
        assert call["headers"]["Authorization"] == "Bearer tok"
        assert call["json"]["parameters"] == {"sampleCount": 1, "aspectRatio": "3:4"}
        assert call["json"]["instances"] == [{"prompt": "prompt", "negativePrompt": NEGATIVE_PROMPT}]
        assert session.get_calls == []

    def test_project_lookup_failure_is_retried_on_next_call(self):
        payload = {"predictions": [{"bytesBase64Encoded": PNG_B64}]}
        session = FakeSession(
            posts=[FakeResponse(payload=payload)],
            gets=[requests.ConnectionError("no metadata"), FakeResponse(text="from-metadata\n")],
        )
        provider = VertexImageProvider(settings=_settings(imagen_access_token="tok"), session=session)

        assert provider.generate("prompt", "3:4") is None
        image = provider.generate("prompt", "3:4")

        assert image is not None
        assert "/projects/from-metadata/" in session.post_calls[0]["url"]
        assert len(session.get_calls) == 2

    def test_missing_token_returns_none(self):
        session = FakeSession(gets=[FakeResponse(status_code=404)])
        settings = _settings(imagen_project_id="picture-books")

        assert VertexImageProvider(settings=settings, session=session).generate("p", "3:4") is None
        assert session.post_calls == []


def test_extract_helpers_ignore_unexpected_shapes():
    assert extract_inline_image(["not", "a", "mapping"]) is None
    assert extract_inline_image({"image": {"base64Data": PNG_B64}}).data == PNG_BYTES
    assert extract_prediction_image({"predictions": []}, containers=("predictions",), payload_paths=()) is None


def test_build_default_providers_registers_all_three():
    providers = build_default_providers(_settings(), session=FakeSession())

    assert set(providers) == set(ProviderName)
    assert providers[ProviderName.PREVIEW].accepts_reference
    assert not providers[ProviderName.GEMINI].accepts_reference
