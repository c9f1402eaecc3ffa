"""
Service layer that obtains the structured 10-page story via LiteLLM-compatible models.
"""

from __future__ import annotations

import logging
from typing import Any

from gehon.common import ChatResult, CompletionCallable, call_chat_completion
from gehon.config import GehonSettings
from gehon.exceptions import StoryStructureError

from .brief import StoryBrief
from .prompting import STORY_PAGE_COUNT, StoryPrompt, build_story_prompt
from .story_parser import PageSpec, parse_story_pages

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2


class StoryStructureGenerator:
    """
    High-level helper that turns a story brief into a validated list of pages.

    The whole upstream generation call is retried when the response cannot be parsed;
    after ``max_attempts`` failures a :class:`StoryStructureError` carrying the last
    raw completion is raised.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        settings: GehonSettings | None = None,
        completion_fn: CompletionCallable | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        page_count: int = STORY_PAGE_COUNT,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")

        resolved = settings or GehonSettings.from_env()
        self._api_key = api_key or resolved.story_api_key or resolved.gemini_api_key
        self._model = model or resolved.story_model
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._max_attempts = max_attempts
        self._page_count = page_count

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    def generate_pages(
        self,
        brief: StoryBrief,
        *,
        temperature: float = 0.8,
        max_output_tokens: int = 8192,
        **response_kwargs: Any,
    ) -> list[PageSpec]:
        """
        Invoke the configured LLM until it yields exactly ``page_count`` valid pages.
        """
        prompt: StoryPrompt = build_story_prompt(brief, page_count=self._page_count)
        messages = [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": prompt.user},
        ]

        raw_text = ""
        for attempt in range(1, self._max_attempts + 1):
            try:
                result: ChatResult = self._completion_fn(
                    model=self._model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_output_tokens,
                    api_key=self._api_key,
                    json_mode=True,
                    **response_kwargs,
                )
            except Exception:
                logger.exception("Attempt %d failed to generate the story.", attempt)
                continue

            raw_text = result.text or ""
            pages = parse_story_pages(raw_text, page_count=self._page_count)
            if pages is not None:
                return pages
            logger.error("Attempt %d failed to parse story JSON: %s", attempt, raw_text[:500])

        raise StoryStructureError(
            "Could not obtain structured story content: the model did not return "
            f"a JSON object with {self._page_count} pages.",
            raw_text=raw_text,
            attempts=self._max_attempts,
        )
