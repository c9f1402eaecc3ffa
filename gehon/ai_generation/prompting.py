"""
Prompt construction utilities for Gehon illustration generation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Sequence

STORY_SNIPPET_LENGTH = 120
PREVIOUS_PROMPT_HINT_LENGTH = 240
DEFAULT_ASPECT_RATIO = "3:4"

NEGATIVE_PROMPT = (
    "photo, photograph, real photo, stock photo, snapshot, camera, lens, depth of field, dof, "
    "photorealistic, realistic, CGI, 3D, render, hyperrealistic, signature, watermark, logo, text, "
    "letters, numbers, brand, model number, modern device, phone, smartphone, car, pc, laptop, "
    "keyboard, screen, monitor, display, audio device, television, gore, blood, violence, scary, "
    "horror, realistic fur, real fur, animal photograph, anthropomorphic, furry, kemono, animal ears, "
    "beast ears, human-animal hybrid, kemomimi"
)


@dataclass(frozen=True)
class ArtDirection:
    """Shared look of every page: watercolor Japanese folktale picture book."""

    style_title: str
    style_keywords: Sequence[str]
    palette: Sequence[tuple[str, str]]
    composition: Sequence[str]
    avoid: Sequence[str]


ART_DIRECTION = ArtDirection(
    style_title="Japanese folktale watercolor picture book",
    style_keywords=(
        "soft watercolor",
        "loose hand-drawn lines",
        "low contrast",
        "washi paper texture",
        "simple child-friendly shapes",
        "calm traditional Japanese colors",
    ),
    palette=(
        ("kinari", "#F3EAD3"),
        ("ai indigo", "#274A78"),
        ("shu vermilion", "#E95464"),
        ("matsuba green", "#6B8E23"),
        ("sumi ink", "#2B2B2B"),
    ),
    composition=(
        "protagonist placed center to slightly below center",
        "simplified background that uses empty space",
        "soft shading and pale saturation",
    ),
    avoid=(
        "photographic or photorealistic looks",
        "3D, CGI, rendered or hyperreal looks",
        "excessive detail or high contrast",
        "modern machines, electronics, Latin letters or digits, brand names, model numbers",
        "copyright marks, signatures, logos, watermarks",
        "violent, frightening or adult content",
        "animal ears, anthropomorphic or half-animal characters",
    ),
)


@dataclass(frozen=True)
class IllustrationPrompt:
    """Positive prompt for one page; providers that accept one attach ``NEGATIVE_PROMPT`` themselves."""

    positive: str


def build_illustration_prompt(
    story_title: str,
    page_description: str,
    child_name_display: str,
    *,
    story_snippet: str | None = None,
    previous_prompt: str | None = None,
    art_direction: ArtDirection = ART_DIRECTION,
) -> IllustrationPrompt:
    """
    Build the illustration prompt for one page.

    Parameters
    ----------
    story_title:
        Title of the folktale the book is based on.
    page_description:
        One-sentence description of what the page should show.
    child_name_display:
        The protagonist's name including honorific.
    story_snippet:
        Optional excerpt of the page text; truncated to ``STORY_SNIPPET_LENGTH`` characters.
    previous_prompt:
        Optional prompt used for the previous page. A condensed hint is appended so the
        style carries over when a single page is regenerated.
    """
    if not page_description or not page_description.strip():
        raise ValueError("page_description must be a non-empty string.")

    palette_text = ", ".join(f"{name} ({hex_code})" for name, hex_code in art_direction.palette)
    style_text = ", ".join(art_direction.style_keywords)
    composition_text = ", ".join(art_direction.composition)
    avoid_text = ", ".join(art_direction.avoid)

    lines = [
        f"Style: {art_direction.style_title}. {style_text}. "
        "children's book watercolor illustration, hand-drawn, soft brush.",
        f"Palette: based on {palette_text}.",
        f"Composition: {composition_text}. Keep the background slightly abstract and let the paint bleed.",
        f"Protagonist: \"{child_name_display}\". Draw the same person on every page with consistent "
        "hairstyle, clothing, body shape and colors.",
        f"Premise: the protagonist is a human child named \"{child_name_display}\". Animals stay in "
        "supporting roles.",
        f"Subject: a Japanese folktale interpretation of \"{story_title}\".",
    ]

    snippet = (story_snippet or "").strip()[:STORY_SNIPPET_LENGTH]
    if snippet:
        lines.append(f"Key points of the page text: {snippet}")

    lines.extend(
        [
            f"Page content: {page_description.strip()}.",
            f"Clearly show \"{child_name_display}\" at the center of the scene taking an active role.",
            "Texture: pale watercolor on washi paper, hand-drawn brushwork, restrained detail.",
            "Important: this is a hand-painted watercolor illustration, not a photograph. No camera, "
            "lens or depth-of-field effects; no realistic fur or skin texture.",
            f"Avoid: {avoid_text}.",
            "The final image is the illustration only (no text, signature, or frame).",
        ]
    )

    hint = condense_previous_prompt(previous_prompt)
    if hint:
        lines.append(f"Reference: key points of the previous page's instructions (for style continuity): {hint}")

    return IllustrationPrompt(positive="\n".join(lines))


def condense_previous_prompt(previous_prompt: str | None) -> str:
    """Collapse whitespace and keep the first ``PREVIOUS_PROMPT_HINT_LENGTH`` characters."""
    if not previous_prompt:
        return ""
    return re.sub(r"\s+", " ", previous_prompt).strip()[:PREVIOUS_PROMPT_HINT_LENGTH]


def aspect_ratio_for_page(index: int) -> str:
    """All pages share the portrait picture-book canvas."""
    return DEFAULT_ASPECT_RATIO
