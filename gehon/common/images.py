"""
In-memory image payloads and data-URL conversion.
"""

from __future__ import annotations

import base64
import binascii
import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path

_DATA_URL_PATTERN = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class ImageData:
    """
    Raw image bytes together with their declared MIME type.
    """

    data: bytes
    mime_type: str = "image/png"

    @property
    def is_image(self) -> bool:
        """True when the payload is non-empty and declared as ``image/*``."""
        return bool(self.data) and self.mime_type.lower().startswith("image/")

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"

    @classmethod
    def from_base64(cls, payload: str, mime_type: str | None = None) -> "ImageData":
        """
        Decode a base64 payload. Raises ``ValueError`` when the payload is not valid base64.
        """
        try:
            data = base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Image payload is not valid base64.") from exc
        return cls(data=data, mime_type=mime_type or "image/png")

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImageData":
        parsed = parse_data_url(data_url)
        if parsed is None:
            raise ValueError("Expected a base64 data URL (data:<mime>;base64,<payload>).")
        mime_type, payload = parsed
        return cls.from_base64(payload, mime_type)

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageData":
        image_path = Path(path).expanduser()
        mime_type, _ = mimetypes.guess_type(image_path.name)
        return cls(data=image_path.read_bytes(), mime_type=mime_type or "image/jpeg")


def parse_data_url(data_url: str | None) -> tuple[str, str] | None:
    """
    Split a ``data:<mime>;base64,<payload>`` URL into ``(mime, payload)``.
    """
    if not data_url or not isinstance(data_url, str):
        return None
    match = _DATA_URL_PATTERN.match(data_url.strip())
    if not match:
        return None
    return match.group(1), match.group(2)


def load_image_source(source: str | Path | None) -> ImageData | None:
    """
    Accept a data URL or a local file path and return the decoded image.
    """
    if source is None:
        return None
    candidate = str(source).strip()
    if not candidate:
        return None
    if candidate.lower().startswith("data:"):
        return ImageData.from_data_url(candidate)

    image_path = Path(candidate).expanduser()
    if not image_path.exists():
        raise FileNotFoundError(f"Reference image not found at '{image_path}'.")
    return ImageData.from_path(image_path)
