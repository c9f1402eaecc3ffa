"""
Common utilities shared across Gehon modules.
"""

from .images import ImageData, load_image_source, parse_data_url
from .lazy import LazyCell
from .llm import ChatResult, CompletionCallable, call_chat_completion

__all__ = [
    "ChatResult",
    "CompletionCallable",
    "call_chat_completion",
    "ImageData",
    "LazyCell",
    "load_image_source",
    "parse_data_url",
]
