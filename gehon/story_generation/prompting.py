"""
Prompt construction utilities for the Gehon story generation workflow.
"""

from __future__ import annotations

from dataclasses import dataclass

from .brief import StoryBrief

STORY_PAGE_COUNT = 10


@dataclass(frozen=True)
class StoryPrompt:
    """
    Container for the system and user prompts passed to the story model.
    """

    system: str
    user: str


def build_story_prompt(brief: StoryBrief, *, page_count: int = STORY_PAGE_COUNT) -> StoryPrompt:
    """
    Build the prompt pair used to solicit the structured page array from the LLM.
    """
    spreads = page_count // 2

    system_prompt = f"""You are a picture-book maker for children.
Output STRICT JSON with an object {{"pages":[...]}} of length {page_count} ({spreads} spreads).
Each item must include:
- "idx": 1..{page_count}
- "right_text_ja": 150-200 Japanese characters, warm/simple words, include the child's name at least once.
- "left_image_desc": a 1-sentence visual description (in Japanese) for a watercolor-style illustration (NO camera/lens/photography terms).

Constraints:
- Style: Japanese folktale picture-book tone (昔話の語り口).
- Time/props: Avoid modern items and technology (no phones, cars, PCs, brands, product names, alphanumerics). Keep a pre-modern vibe unless the source explicitly needs otherwise.
- Safety: Avoid scary/violent/sexual expressions.
- Names: If the provided child name contains English letters/numbers or looks like a brand or product code, replace it with a simple Japanese given name suitable for children.

No extra commentary. JSON only."""

    user_prompt = f"""Create a Japanese picture book that satisfies the following conditions.
Protagonist's name: {brief.child_name}
Story material:
{brief.story_instruction()}
Give the protagonist a concrete role or action on every page. Keep the story warm and relatable for children and avoid frightening or violent scenes."""

    return StoryPrompt(system=system_prompt, user=user_prompt)
