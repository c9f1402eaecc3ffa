"""
Exception types raised across the Gehon picture-book pipeline.
"""

from __future__ import annotations


class GehonError(Exception):
    """Base exception for all Gehon errors."""


class ProviderError(GehonError):
    """
    Raised inside an image provider adapter when a call cannot produce an image.

    Adapters catch this at their boundary and report ``None`` to the caller.
    """

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class StoryStructureError(GehonError):
    """
    Raised when the story model never returned a usable 10-page JSON payload.

    ``raw_text`` holds the last raw completion for diagnostics.
    """

    def __init__(self, message: str, *, raw_text: str = "", attempts: int = 0) -> None:
        self.raw_text = raw_text
        self.attempts = attempts
        super().__init__(message)


class PipelineCancelled(GehonError):
    """Raised when a running illustration walk is cancelled."""

    def __init__(self, page_index: int | None = None) -> None:
        self.page_index = page_index
        suffix = f" before page {page_index} completed" if page_index is not None else ""
        super().__init__(f"Illustration pipeline cancelled{suffix}.")
