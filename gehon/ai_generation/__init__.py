"""
AI image generation package for Gehon.
"""

from .fallback import (
    FallbackImageResolver,
    GenerationOutcome,
    resolve_provider_order,
)
from .prompting import IllustrationPrompt, build_illustration_prompt
from .providers import (
    FALLBACK_PROVIDER_TAG,
    GeminiImageProvider,
    ImageProvider,
    PreviewImageProvider,
    ProviderName,
    VertexImageProvider,
    build_default_providers,
)

__all__ = [
    "FALLBACK_PROVIDER_TAG",
    "FallbackImageResolver",
    "GenerationOutcome",
    "GeminiImageProvider",
    "IllustrationPrompt",
    "ImageProvider",
    "PreviewImageProvider",
    "ProviderName",
    "VertexImageProvider",
    "build_default_providers",
    "build_illustration_prompt",
    "resolve_provider_order",
]
