"""
Orchestrates the full Gehon flow from a story brief to illustrated pages.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from gehon.ai_generation import (
    FALLBACK_PROVIDER_TAG,
    FallbackImageResolver,
    ProviderName,
    build_default_providers,
)
from gehon.common import CompletionCallable, ImageData
from gehon.config import GehonSettings
from gehon.story_generation import (
    ImageDescriptionRewriter,
    PageSpec,
    StoryBrief,
    StoryStructureGenerator,
    sanitize_image_description,
    sanitize_page_text,
)

from .candidates import CandidateGenerator
from .pipeline import IllustrationPipeline, PageResult, ProgressCallback, SinglePageRequest

logger = logging.getLogger(__name__)


@dataclass
class StoryBook:
    """Aggregated output of one Gehon run."""

    brief: StoryBrief
    story_title: str
    pages: list[PageResult]

    def to_dict(self) -> dict[str, Any]:
        return {
            "brief": self.brief.as_dict(),
            "story_title": self.story_title,
            "pages": [page.to_dict() for page in self.pages],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StoryBook":
        if "brief" not in payload:
            raise ValueError("Story book payload must include 'brief'.")
        if "pages" not in payload:
            raise ValueError("Story book payload must include 'pages'.")

        brief = StoryBrief.from_mapping(payload["brief"])
        pages = [PageResult.from_dict(entry) for entry in payload.get("pages") or []]
        return cls(
            brief=brief,
            story_title=str(payload.get("story_title") or brief.story_title),
            pages=pages,
        )

    @classmethod
    def from_yaml(cls, text: str) -> "StoryBook":
        data = yaml.safe_load(text)
        if not isinstance(data, Mapping):
            raise ValueError("Story book YAML must contain a mapping at the top level.")
        return cls.from_dict(data)


class GehonOrchestrator:
    """
    High-level coordinator chaining story generation, page clean-up and illustration.

    Parameters
    ----------
    settings:
        Shared configuration; read from the environment when omitted.
    story_generator, rewriter, pipeline:
        Collaborators; default instances are built from ``settings``.
    completion_fn:
        LLM completion callable forwarded to the default story generator and rewriter.
    """

    def __init__(
        self,
        *,
        settings: GehonSettings | None = None,
        story_generator: StoryStructureGenerator | None = None,
        rewriter: ImageDescriptionRewriter | None = None,
        pipeline: IllustrationPipeline | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._settings = settings or GehonSettings.from_env()
        self._story_generator = story_generator or StoryStructureGenerator(
            settings=self._settings,
            completion_fn=completion_fn,
        )
        self._rewriter = rewriter or ImageDescriptionRewriter(
            settings=self._settings,
            completion_fn=completion_fn,
        )
        self._pipeline = pipeline or build_illustration_pipeline(self._settings)

    def run_from_mapping(
        self,
        brief_data: Mapping[str, Any],
        **kwargs: Any,
    ) -> StoryBook:
        """
        Complete flow from a raw brief mapping (form fields, parsed JSON/YAML).
        """
        return self.run(StoryBrief.from_mapping(brief_data), **kwargs)

    def run_from_file(self, brief_path: Path | str, **kwargs: Any) -> StoryBook:
        """
        Load a brief from a YAML or JSON file and run the full flow.
        """
        return self.run_from_mapping(load_mapping_file(Path(brief_path)), **kwargs)

    def run(
        self,
        brief: StoryBrief,
        *,
        hero_image: ImageData | None = None,
        primary: ProviderName | str | None = None,
        text_only: bool = False,
        progress_callback: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> StoryBook:
        self._notify(progress_callback, "story:generating", story_id=brief.story_id)
        raw_pages = self._story_generator.generate_pages(brief)
        self._notify(progress_callback, "story:generated", total_pages=len(raw_pages))

        story_title = brief.story_title
        if text_only:
            pages = [
                PageResult(
                    index=page.index,
                    text=sanitize_page_text(page.narrative_text),
                    image=None,
                    provider=FALLBACK_PROVIDER_TAG,
                    prompt_used="",
                    image_description=sanitize_image_description(page.image_description),
                )
                for page in sorted(raw_pages, key=lambda page: page.index)
            ]
            logger.info("Text-only mode: returning %d pages without illustrations.", len(pages))
        else:
            self._notify(progress_callback, "pages:preparing", total_pages=len(raw_pages))
            prepared = [self._prepare_page(brief, page) for page in raw_pages]
            pages = self._pipeline.illustrate_pages(
                prepared,
                story_title=story_title,
                child_name_display=brief.display_name,
                hero_image=hero_image,
                primary=primary,
                progress_callback=progress_callback,
                cancel_event=cancel_event,
            )

        book = StoryBook(brief=brief, story_title=story_title, pages=pages)
        self._notify(
            progress_callback,
            "pipeline:complete",
            total_pages=len(pages),
            child_name=brief.child_name,
        )
        return book

    def regenerate_page(
        self,
        brief: StoryBrief,
        *,
        index: int,
        image_description: str,
        narrative_text: str = "",
        previous_image: ImageData | None = None,
        hero_image: ImageData | None = None,
        previous_prompt: str = "",
        primary: ProviderName | str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> PageResult:
        """
        Illustrate one page on its own, e.g. to redo a page the reader did not like.
        """
        prepared = self._prepare_page(
            brief,
            PageSpec(index=index, narrative_text=narrative_text, image_description=image_description),
        )
        request = SinglePageRequest(
            index=prepared.index,
            image_description=prepared.image_description,
            story_title=brief.story_title,
            child_name_display=brief.display_name,
            narrative_text=prepared.narrative_text,
            previous_image=previous_image,
            hero_image=hero_image,
            previous_prompt=previous_prompt,
            primary=primary,
        )
        return self._pipeline.illustrate_page(request, cancel_event=cancel_event)

    def _prepare_page(self, brief: StoryBrief, page: PageSpec) -> PageSpec:
        description = self._rewriter.rewrite(
            brief.story_title,
            brief.display_name,
            page.image_description,
        )
        return PageSpec(
            index=page.index,
            narrative_text=sanitize_page_text(page.narrative_text),
            image_description=description,
        )

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)


def build_illustration_pipeline(
    settings: GehonSettings,
    *,
    max_workers: int = 1,
) -> IllustrationPipeline:
    """Wire the default HTTP providers into a ready-to-use illustration pipeline."""
    resolver = FallbackImageResolver(build_default_providers(settings))
    generator = CandidateGenerator(
        resolver,
        rounds=settings.candidate_rounds,
        max_workers=max_workers,
    )
    return IllustrationPipeline(
        candidate_generator=generator,
        primary=settings.image_primary,
        debug_prompts=settings.debug_prompts,
    )


def load_mapping_file(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif suffix == ".json":
        data = json.loads(text)
    else:
        raise ValueError("Unsupported brief file format. Use YAML or JSON.")
    if not isinstance(data, Mapping):
        raise ValueError(f"Brief file {path} must contain a mapping.")
    return data
