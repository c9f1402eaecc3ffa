from io import BytesIO

import pytest
from PIL import Image

from gehon.common import ImageData


def encode_image(image: Image.Image, image_format: str = "PNG") -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture()
def solid_png():
    def _build(color=(200, 40, 40), size=(16, 16)) -> ImageData:
        return ImageData(encode_image(Image.new("RGB", size, color)), "image/png")

    return _build


@pytest.fixture()
def half_split_png():
    """Left half black, right half white."""

    def _build(width=16, height=16) -> ImageData:
        image = Image.new("RGB", (width, height), (255, 255, 255))
        for x in range(width // 2):
            for y in range(height):
                image.putpixel((x, y), (0, 0, 0))
        return ImageData(encode_image(image), "image/png")

    return _build


@pytest.fixture(autouse=True)
def _clear_gehon_env(monkeypatch):
    for name in (
        "GEMINI_API_KEY",
        "LITELLM_API_KEY",
        "GEHON_STORY_MODEL",
        "LITELLM_STORY_MODEL",
        "LITELLM_MODEL",
        "GEHON_IMAGEN_MODEL",
        "GEHON_ILLUSTRATION_MODEL",
        "GEHON_IMAGEN_LOCATION",
        "GEHON_IMAGE_PRIMARY",
        "GEHON_PREVIEW_MODEL",
        "GEHON_IMAGEN_PROJECT_ID",
        "GOOGLE_CLOUD_PROJECT",
        "GCLOUD_PROJECT",
        "GEHON_IMAGEN_ACCESS_TOKEN",
        "GEHON_DEBUG_PROMPT",
        "GEHON_REQUEST_TIMEOUT",
        "GEHON_CANDIDATE_ROUNDS",
    ):
        monkeypatch.delenv(name, raising=False)
