"""
Sequential page illustration with reference chaining.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from gehon.ai_generation import FALLBACK_PROVIDER_TAG, ProviderName
from gehon.ai_generation.fallback import coerce_provider_name
from gehon.ai_generation.prompting import aspect_ratio_for_page, build_illustration_prompt
from gehon.common import ImageData
from gehon.exceptions import PipelineCancelled
from gehon.story_generation import PageSpec

from .candidates import CandidateGenerator, Selection, select_winner
from .similarity import SimilarityRanker

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, Any]], None]

PROMPT_PREVIEW_LENGTH = 160
PROMPT_LOG_LENGTH = 500


@dataclass
class PageResult:
    """Externally visible output for one illustrated page."""

    index: int
    text: str
    image: ImageData | None
    provider: str
    prompt_used: str
    prompt_preview: str | None = None
    image_description: str | None = None

    @property
    def image_data_url(self) -> str:
        return self.image.to_data_url() if self.image is not None else ""

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "index": self.index,
            "text": self.text,
            "image": self.image_data_url,
            "provider": self.provider,
            "prompt_used": self.prompt_used,
        }
        if self.prompt_preview is not None:
            payload["prompt_preview"] = self.prompt_preview
        if self.image_description is not None:
            payload["image_description"] = self.image_description
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "PageResult":
        try:
            index = int(payload["index"])
            text = str(payload.get("text", "")).strip()
        except (KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid page entry: {payload}") from exc

        image_url = payload.get("image") or ""
        image = ImageData.from_data_url(image_url) if image_url else None
        return cls(
            index=index,
            text=text,
            image=image,
            provider=str(payload.get("provider") or FALLBACK_PROVIDER_TAG),
            prompt_used=str(payload.get("prompt_used", "")),
            prompt_preview=payload.get("prompt_preview"),
            image_description=payload.get("image_description"),
        )


@dataclass(frozen=True)
class SinglePageRequest:
    """
    Materials for regenerating or advancing exactly one page.

    ``previous_image`` takes precedence over ``hero_image`` as the reference.
    """

    index: int
    image_description: str
    story_title: str
    child_name_display: str
    narrative_text: str = ""
    previous_image: ImageData | None = None
    hero_image: ImageData | None = None
    previous_prompt: str = ""
    primary: ProviderName | str | None = None

    @property
    def reference(self) -> ImageData | None:
        return self.previous_image or self.hero_image


class IllustrationPipeline:
    """
    Illustrates pages one after another, feeding each page's winner forward as the
    reference for the next page.

    A page whose providers are all exhausted still produces a :class:`PageResult` (with
    no image and the ``"fallback"`` tag); the walk never stops early.
    """

    def __init__(
        self,
        *,
        candidate_generator: CandidateGenerator,
        ranker: SimilarityRanker | None = None,
        primary: ProviderName | str | None = None,
        debug_prompts: bool = False,
    ) -> None:
        self._candidate_generator = candidate_generator
        self._ranker = ranker or SimilarityRanker()
        self._primary = coerce_provider_name(primary)
        self._debug_prompts = debug_prompts

    def illustrate_pages(
        self,
        pages: Sequence[PageSpec],
        *,
        story_title: str,
        child_name_display: str,
        hero_image: ImageData | None = None,
        primary: ProviderName | str | None = None,
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[PageResult]:
        """
        Illustrate ``pages`` in index order and return one result per page.
        """
        ordered = sorted(pages, key=lambda page: page.index)
        total_pages = len(ordered)
        reference: ImageData | None = hero_image if hero_image is not None and hero_image.data else None
        if reference is not None:
            logger.debug("Hero image attached as the initial reference.")

        results: list[PageResult] = []
        for position, page in enumerate(ordered, start=1):
            self._notify(
                progress_callback,
                "page:processing",
                page_number=page.index,
                page_index=position,
                total_pages=total_pages,
            )
            result, selection = self._render_page(
                index=page.index,
                text=page.narrative_text,
                description=page.image_description,
                story_title=story_title,
                child_name_display=child_name_display,
                reference=reference,
                primary=primary,
                previous_prompt=None,
                cancel_event=cancel_event,
            )
            results.append(result)
            reference = selection.image if selection.chainable else None
            self._notify(
                progress_callback,
                "page:done",
                page_number=page.index,
                page_index=position,
                total_pages=total_pages,
                provider=result.provider,
            )
        return results

    def illustrate_page(
        self,
        request: SinglePageRequest,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PageResult:
        """
        Illustrate a single page against an externally supplied reference.
        """
        result, _ = self._render_page(
            index=request.index,
            text=request.narrative_text,
            description=request.image_description,
            story_title=request.story_title,
            child_name_display=request.child_name_display,
            reference=request.reference,
            primary=request.primary,
            previous_prompt=request.previous_prompt,
            cancel_event=cancel_event,
        )
        return result

    def _render_page(
        self,
        *,
        index: int,
        text: str,
        description: str,
        story_title: str,
        child_name_display: str,
        reference: ImageData | None,
        primary: ProviderName | str | None,
        previous_prompt: str | None,
        cancel_event: threading.Event | None,
    ) -> tuple[PageResult, Selection]:
        self._raise_if_cancelled(cancel_event, index)

        prompt = build_illustration_prompt(
            story_title,
            description,
            child_name_display,
            story_snippet=text,
            previous_prompt=previous_prompt,
        ).positive
        aspect_ratio = aspect_ratio_for_page(index)
        resolved_primary = coerce_provider_name(primary) if primary else self._primary
        if self._debug_prompts:
            logger.info(
                "[PROMPT][page=%d] aspect=%s title=%s\n%s",
                index,
                aspect_ratio,
                story_title,
                prompt[:PROMPT_LOG_LENGTH],
            )

        pool = self._candidate_generator.generate(
            prompt,
            aspect_ratio,
            primary=resolved_primary,
            reference=reference,
        )
        self._raise_if_cancelled(cancel_event, index)

        selection = select_winner(pool, reference, self._ranker)
        logger.info(
            "[ENGINE][page=%d] primary=%s picked=%s reference_attached=%s",
            index,
            resolved_primary.value,
            selection.provider,
            reference is not None,
        )

        result = PageResult(
            index=index,
            text=text,
            image=selection.image,
            provider=selection.provider,
            prompt_used=prompt,
            prompt_preview=prompt[:PROMPT_PREVIEW_LENGTH] if self._debug_prompts else None,
            image_description=description,
        )
        return result, selection

    @staticmethod
    def _raise_if_cancelled(cancel_event: threading.Event | None, index: int) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelled(index)

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)
