"""
Average-hash fingerprints used to compare illustrations against a reference.

The hash is deliberately coarse: an 8x8 nearest-neighbour luminance grid compared
against its own mean. It tolerates colour and exposure drift between independently
sampled illustrations and ignores fine detail.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, features

from gehon.common import ImageData, LazyCell

logger = logging.getLogger(__name__)

GRID_SIZE = 8
FINGERPRINT_LENGTH = GRID_SIZE * GRID_SIZE

PNG_FORMAT = "PNG"
JPEG_FORMAT = "JPEG"


@dataclass(frozen=True)
class DecodeCapability:
    """Raster formats the running Pillow build can decode."""

    png: bool
    jpeg: bool

    @property
    def available(self) -> bool:
        return self.png or self.jpeg

    def supports(self, image_format: str) -> bool:
        if image_format == PNG_FORMAT:
            return self.png
        if image_format == JPEG_FORMAT:
            return self.jpeg
        return False


def _detect_decode_capability() -> DecodeCapability:
    capability = DecodeCapability(
        png=bool(features.check_codec("zlib")),
        jpeg=bool(features.check_codec("jpg")),
    )
    if not capability.available:
        logger.warning("Pillow has neither PNG nor JPEG support; similarity ranking is disabled.")
    return capability


_DECODE_CAPABILITY: LazyCell[DecodeCapability] = LazyCell(_detect_decode_capability)


def decode_capability() -> DecodeCapability:
    """Return the decoding capability, detected once per process."""
    return _DECODE_CAPABILITY.get()


def candidate_formats(mime_type: str) -> tuple[str, ...]:
    """
    Formats to try for a declared MIME type: the declared one, then the alternate.
    """
    mime = (mime_type or "").lower()
    if "png" in mime:
        return (PNG_FORMAT, JPEG_FORMAT)
    if "jpeg" in mime or "jpg" in mime:
        return (JPEG_FORMAT, PNG_FORMAT)
    return (PNG_FORMAT, JPEG_FORMAT)


def average_hash(
    data: bytes,
    mime_type: str,
    *,
    capability: DecodeCapability | None = None,
) -> str | None:
    """
    Reduce an image to a 64-character ``0``/``1`` fingerprint.

    Returns ``None`` when the bytes cannot be decoded as PNG or JPEG.
    """
    if not data:
        return None

    resolved = capability or decode_capability()
    if not resolved.available:
        return None

    image: Image.Image | None = None
    for image_format in candidate_formats(mime_type):
        if not resolved.supports(image_format):
            continue
        image = _decode_rgb(data, image_format)
        if image is not None:
            break
    if image is None:
        return None

    return _fingerprint(image)


def hash_image(image: ImageData | None, *, capability: DecodeCapability | None = None) -> str | None:
    if image is None:
        return None
    return average_hash(image.data, image.mime_type, capability=capability)


def _decode_rgb(data: bytes, image_format: str) -> Image.Image | None:
    try:
        with Image.open(BytesIO(data), formats=[image_format]) as opened:
            opened.load()
            return opened.convert("RGB")
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError):
        return None


def _sample_index(position: int, size: int) -> int:
    # round half up
    scaled = math.floor((position / GRID_SIZE) * (size - 1) + 0.5)
    return min(size - 1, max(0, scaled))


def _fingerprint(image: Image.Image) -> str:
    width, height = image.size
    pixels = image.load()

    samples: list[float] = []
    for y in range(GRID_SIZE):
        yi = _sample_index(y, height)
        for x in range(GRID_SIZE):
            xi = _sample_index(x, width)
            red, green, blue = pixels[xi, yi][:3]
            samples.append(0.299 * red + 0.587 * green + 0.114 * blue)

    mean = sum(samples) / len(samples)
    return "".join("1" if value >= mean else "0" for value in samples)
