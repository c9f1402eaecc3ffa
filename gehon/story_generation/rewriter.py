"""
Rewrite page image descriptions into one-sentence watercolor folktale prompts.
"""

from __future__ import annotations

import logging
from typing import Any

from gehon.common import CompletionCallable, call_chat_completion
from gehon.config import GehonSettings

from .sanitize import sanitize_image_description

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You rewrite Japanese prompts for a watercolor Japanese folktale picture book. "
    "Output ONE short Japanese sentence only, no quotes. Remove modern/brand/camera terms, "
    "English letters and numbers. Keep a pre-modern vibe, soft watercolor, child-friendly."
)


class ImageDescriptionRewriter:
    """
    Uses the story model to normalise a page's image description.

    Any failure (no credentials, provider error, empty response) falls back to
    :func:`sanitize_image_description` so the page can still be illustrated.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        settings: GehonSettings | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        resolved = settings or GehonSettings.from_env()
        self._api_key = api_key or resolved.story_api_key or resolved.gemini_api_key
        self._model = model or resolved.story_model
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    def rewrite(
        self,
        story_title: str,
        child_name: str,
        description: str,
        *,
        temperature: float = 0.6,
        max_output_tokens: int = 256,
        **response_kwargs: Any,
    ) -> str:
        if not self._api_key:
            return sanitize_image_description(description)

        user_prompt = (
            f"題材: {story_title}\n"
            f"主人公: {child_name}\n"
            f"元の説明: {description}\n"
            "出力条件: 1文/日本語/水彩絵本/昔話風/現代物・英数字・ブランド・カメラ用語なし"
        )
        try:
            result = self._completion_fn(
                model=self._model,
                messages=[
                    {"role": "system", "content": _SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_output_tokens,
                api_key=self._api_key,
                **response_kwargs,
            )
        except Exception:
            logger.warning("Image description rewrite failed; using sanitized text.", exc_info=True)
            return sanitize_image_description(description)

        rewritten = (result.text or "").strip()
        return rewritten or sanitize_image_description(description)
