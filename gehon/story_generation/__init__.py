"""
Story generation utilities for crafting structured Gehon picture books.
"""

from .brief import STORY_LIBRARY, StoryBrief, display_name_with_honorific
from .prompting import STORY_PAGE_COUNT, StoryPrompt, build_story_prompt
from .rewriter import ImageDescriptionRewriter
from .sanitize import sanitize_image_description, sanitize_page_text
from .story_parser import PageSpec, parse_story_pages
from .story_service import StoryStructureGenerator

__all__ = [
    "STORY_LIBRARY",
    "STORY_PAGE_COUNT",
    "StoryBrief",
    "display_name_with_honorific",
    "StoryPrompt",
    "build_story_prompt",
    "ImageDescriptionRewriter",
    "sanitize_image_description",
    "sanitize_page_text",
    "PageSpec",
    "parse_story_pages",
    "StoryStructureGenerator",
]
