"""
Parse the story model's raw completion into a validated, fixed-length page array.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .prompting import STORY_PAGE_COUNT

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)

_INDEX_KEYS = ("idx", "index", "page_number")
_TEXT_KEYS = ("right_text_ja", "text", "narrative_text")
_DESCRIPTION_KEYS = ("left_image_desc", "image_description", "image_desc")


@dataclass(frozen=True)
class PageSpec:
    """
    A single validated page: narrative text plus the description of its illustration.
    """

    index: int
    narrative_text: str
    image_description: str

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "narrative_text": self.narrative_text,
            "image_description": self.image_description,
        }


def strip_code_fences(raw_text: str) -> str:
    """Remove Markdown code-fence markers (```json / ```) anywhere in the text."""
    return _FENCE_PATTERN.sub("", raw_text or "").strip()


def load_json_object(raw_text: str) -> Any | None:
    """
    Parse the completion as JSON, falling back to the span between the first ``{``
    and the last ``}``. Returns ``None`` when neither parses.
    """
    normalized = strip_code_fences(raw_text)
    if not normalized:
        return None

    try:
        return json.loads(normalized)
    except json.JSONDecodeError:
        pass

    start = normalized.find("{")
    end = normalized.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None

    try:
        return json.loads(normalized[start : end + 1])
    except json.JSONDecodeError:
        return None


def parse_story_pages(
    raw_text: str,
    *,
    page_count: int = STORY_PAGE_COUNT,
) -> list[PageSpec] | None:
    """
    Turn a raw completion into exactly ``page_count`` pages, or ``None`` if it is unusable.

    Arrays that are shorter, longer, or contain malformed items are rejected outright;
    there is no partial success.
    """
    parsed = load_json_object(raw_text)
    if not isinstance(parsed, Mapping):
        return None

    pages_payload = parsed.get("pages")
    if not isinstance(pages_payload, list):
        return None

    if len(pages_payload) != page_count:
        logger.warning(
            "Story response contained %d pages, expected %d.", len(pages_payload), page_count
        )
        return None

    pages = _convert_to_pages(pages_payload)
    if pages is None or not _is_sequential(pages):
        return None
    return pages


def _convert_to_pages(pages_payload: Sequence[Any]) -> list[PageSpec] | None:
    pages: list[PageSpec] = []
    for item in pages_payload:
        if not isinstance(item, Mapping):
            return None

        raw_index = _first_present(item, _INDEX_KEYS)
        if isinstance(raw_index, float) and not raw_index.is_integer():
            logger.warning("Page payload has a non-integral index: %r", raw_index)
            return None
        try:
            index = int(raw_index)
        except (TypeError, ValueError, OverflowError):
            logger.warning("Page payload has an invalid index: %r", raw_index)
            return None

        narrative = _first_present(item, _TEXT_KEYS)
        description = _first_present(item, _DESCRIPTION_KEYS)
        narrative_text = str(narrative).strip() if narrative is not None else ""
        image_description = str(description).strip() if description is not None else ""
        if not narrative_text or not image_description:
            logger.warning("Page %d is missing narrative text or image description.", index)
            return None

        pages.append(
            PageSpec(
                index=index,
                narrative_text=narrative_text,
                image_description=image_description,
            )
        )
    return pages


def _first_present(item: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return None


def _is_sequential(pages: Sequence[PageSpec]) -> bool:
    for expected, page in enumerate(pages, start=1):
        if page.index != expected:
            logger.warning("Page numbers must be sequential starting from 1.")
            return False
    return True
