"""
Scrubbing helpers that keep page text and image descriptions in a pre-modern folktale register.
"""

from __future__ import annotations

import re

FALLBACK_IMAGE_DESCRIPTION = "やわらかな水彩で描かれた、昔話の一場面。"

_ALPHANUMERIC_RUN = re.compile(r"[A-Za-z0-9#_\-]{2,}")
_CAMERA_TERMS = re.compile(
    r"(カメラ|レンズ|ボケ|被写界深度|スタジオ照明|スタジオ|撮影|フォト|写真|RAW|JPEG|背景紙)"
)
_GADGET_TERMS = re.compile(
    r"(スマホ|スマートフォン|パソコン|PC|ノートPC|タブレット|テレビ|ブランド|ロゴ)"
)
_TEXT_GADGET_TERMS = re.compile(
    r"(スマホ|スマートフォン|ディスプレイ|オーディオ|カメラ|レンズ|テレビ|パソコン|PC|ノートPC|タブレット|ブランド|ロゴ)"
)
_TRADEMARK_SYMBOLS = re.compile(r"[©®™]")
_WHITESPACE = re.compile(r"\s+")
_SPACED_COMMA = re.compile(r"\s*、\s*")


def sanitize_image_description(description: str) -> str:
    """
    Strip model codes, camera vocabulary and modern gadgets from an image description.
    """
    text = _ALPHANUMERIC_RUN.sub("", description or "")
    text = _CAMERA_TERMS.sub("", text)
    text = _GADGET_TERMS.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return text or FALLBACK_IMAGE_DESCRIPTION


def sanitize_page_text(text: str) -> str:
    """
    Remove brand-like tokens and gadget words from the narrative shown on a page.
    """
    cleaned = _ALPHANUMERIC_RUN.sub("", text or "")
    cleaned = _TEXT_GADGET_TERMS.sub("", cleaned)
    cleaned = _TRADEMARK_SYMBOLS.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned)
    cleaned = _SPACED_COMMA.sub("、", cleaned)
    return cleaned.strip()
