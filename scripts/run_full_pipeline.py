"""
CLI to run the complete Gehon picture-book pipeline end-to-end.

Usage:
    python scripts/run_full_pipeline.py \
        --name たろう --honorific kun --story momotaro \
        --hero-image hero.png \
        --output gehon_book.yaml
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gehon import GehonOrchestrator, GehonSettings, PipelineCancelled, StoryBrief, StoryStructureError
from gehon.ai_generation import ProviderName
from gehon.common import load_image_source
from gehon.pipeline.orchestrator import load_mapping_file
from gehon.story_generation import STORY_LIBRARY
from gehon.story_generation.brief import CUSTOM_STORY_ID


class ProgressTracker:
    """
    Provides command-line progress updates for the Gehon pipeline.
    """

    def __init__(self) -> None:
        self._page_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "story:generating":
                story_id = payload.get("story_id", "")
                self._write(f"[1/3] Writing the story ({story_id})...")
            case "story:generated":
                total = payload.get("total_pages", 0)
                self._write(f"[1/3] Story ready with {total} pages.")
            case "pages:preparing":
                total = payload.get("total_pages", 0)
                self._write("[2/3] Cleaning page text and illustration notes...")
                self._page_bar = tqdm(total=total, desc="Illustrated pages", unit="page")
            case "page:processing":
                if self._page_bar is not None:
                    page_number = payload.get("page_number")
                    if page_number is not None:
                        self._page_bar.set_description(f"Page {page_number}")
            case "page:done":
                if self._page_bar is not None:
                    self._page_bar.set_postfix(provider=payload.get("provider", ""))
                    self._page_bar.update(1)
            case "pipeline:complete":
                self.close()
                self._write("[3/3] Pipeline complete.")

    def close(self) -> None:
        if self._page_bar is not None:
            self._page_bar.close()
            self._page_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def install_cancel_handler(cancel_event: threading.Event) -> Any:
    """
    Route Ctrl+C to ``cancel_event`` so the pipeline stops at its next page checkpoint.

    A second Ctrl+C while cancellation is pending interrupts immediately.
    Returns the previous SIGINT handler so the caller can restore it.
    """

    def _handle_sigint(signum: int, frame: Any) -> None:
        if cancel_event.is_set():
            raise KeyboardInterrupt
        cancel_event.set()
        tqdm.write("Cancelling after the current page... (Ctrl+C again to abort)")

    return signal.signal(signal.SIGINT, _handle_sigint)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a personalised folktale picture book.")
    parser.add_argument(
        "--brief",
        default=None,
        help="Path to a brief YAML/JSON file (child_name, honorific, story_id, custom_story).",
    )
    parser.add_argument("--name", default=None, help="Child's name; used when --brief is omitted.")
    parser.add_argument(
        "--honorific",
        choices=("kun", "chan", "none"),
        default="none",
        help="How the child is addressed in the story.",
    )
    parser.add_argument(
        "--story",
        choices=sorted([*STORY_LIBRARY, CUSTOM_STORY_ID]),
        default=None,
        help="Built-in folktale id, or 'custom' together with --custom-story.",
    )
    parser.add_argument(
        "--custom-story",
        default="",
        help="Free-form story outline for --story custom.",
    )
    parser.add_argument(
        "--hero-image",
        default=None,
        help="Path or data URL of a portrait used as the reference for page 1.",
    )
    parser.add_argument(
        "--engine",
        choices=[name.value for name in ProviderName],
        default=None,
        help="Primary image provider (defaults to GEHON_IMAGE_PRIMARY or 'gemini').",
    )
    parser.add_argument(
        "--text-only",
        action="store_true",
        help="Skip illustration and only produce the cleaned page text.",
    )
    parser.add_argument(
        "--output",
        default="gehon_book.yaml",
        help="Output YAML file for the story book.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser.parse_args()


def build_brief(args: argparse.Namespace) -> StoryBrief:
    if args.brief:
        return StoryBrief.from_mapping(load_mapping_file(Path(args.brief)))
    if not args.name or not args.story:
        raise ValueError("Provide --brief, or both --name and --story.")
    return StoryBrief(
        child_name=args.name,
        story_id=args.story,
        honorific=args.honorific,
        custom_story=args.custom_story,
    )


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        brief = build_brief(args)
        hero_image = load_image_source(args.hero_image)
    except (ValueError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    orchestrator = GehonOrchestrator(settings=GehonSettings.from_env())
    tracker = ProgressTracker()
    cancel_event = threading.Event()
    previous_handler = install_cancel_handler(cancel_event)

    try:
        book = orchestrator.run(
            brief,
            hero_image=hero_image,
            primary=args.engine,
            text_only=args.text_only,
            progress_callback=tracker,
            cancel_event=cancel_event,
        )
    except StoryStructureError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except PipelineCancelled as exc:
        print(str(exc), file=sys.stderr)
        return 130
    except KeyboardInterrupt:
        print("Aborted.", file=sys.stderr)
        return 130
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        tracker.close()

    output_path = Path(args.output)
    output_path.write_text(book.to_yaml(), encoding="utf-8")
    missing = sum(1 for page in book.pages if page.image is None)
    print(f"Saved story book to {output_path}")
    if missing and not args.text_only:
        print(f"{missing} page(s) have no illustration.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
