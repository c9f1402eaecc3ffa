"""
Gehon package exposing story generation and the picture-book illustration pipeline.
"""

from .config import GehonSettings
from .exceptions import GehonError, PipelineCancelled, ProviderError, StoryStructureError
from .pipeline import (
    GehonOrchestrator,
    IllustrationPipeline,
    PageResult,
    SinglePageRequest,
    StoryBook,
)
from .story_generation import StoryBrief

__all__ = [
    "GehonSettings",
    "GehonError",
    "PipelineCancelled",
    "ProviderError",
    "StoryStructureError",
    "GehonOrchestrator",
    "IllustrationPipeline",
    "PageResult",
    "SinglePageRequest",
    "StoryBook",
    "StoryBrief",
]
