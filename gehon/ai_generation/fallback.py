"""
Ordered multi-provider fallback for image synthesis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from gehon.common import ImageData

from .providers import FALLBACK_PROVIDER_TAG, ImageProvider, ProviderName

logger = logging.getLogger(__name__)

PROVIDER_PREFERENCES: Mapping[ProviderName, tuple[ProviderName, ...]] = {
    ProviderName.PREVIEW: (ProviderName.PREVIEW, ProviderName.GEMINI, ProviderName.VERTEX),
    ProviderName.GEMINI: (ProviderName.GEMINI, ProviderName.VERTEX, ProviderName.PREVIEW),
    ProviderName.VERTEX: (ProviderName.VERTEX, ProviderName.GEMINI, ProviderName.PREVIEW),
}
DEFAULT_PRIMARY = ProviderName.GEMINI
REFERENCE_CAPABLE_PROVIDER = ProviderName.PREVIEW


def coerce_provider_name(value: ProviderName | str | None) -> ProviderName:
    """Map a provider identifier to :class:`ProviderName`, defaulting to ``gemini``."""
    if isinstance(value, ProviderName):
        return value
    try:
        return ProviderName(str(value or "").strip().lower())
    except ValueError:
        return DEFAULT_PRIMARY


def resolve_provider_order(
    primary: ProviderName | str | None,
    has_reference: bool,
) -> tuple[ProviderName, ...]:
    """
    Compute the de-duplicated order in which providers are tried.

    With a reference image the reference-capable provider always goes first.
    """
    base_order = PROVIDER_PREFERENCES[coerce_provider_name(primary)]
    if not has_reference:
        return base_order

    order: list[ProviderName] = []
    for name in (REFERENCE_CAPABLE_PROVIDER, *base_order):
        if name not in order:
            order.append(name)
    return tuple(order)


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of one fallback round: the image (if any) and the provider that produced it."""

    image: ImageData | None
    provider: str

    @property
    def succeeded(self) -> bool:
        return self.image is not None and bool(self.image.data)


class FallbackImageResolver:
    """
    Invokes provider adapters in preference order and keeps the first non-empty image.
    """

    def __init__(self, providers: Mapping[ProviderName, ImageProvider]) -> None:
        self._providers = dict(providers)

    @property
    def providers(self) -> Mapping[ProviderName, ImageProvider]:
        return self._providers

    def generate(
        self,
        prompt: str,
        aspect_ratio: str,
        *,
        primary: ProviderName | str | None,
        reference: ImageData | None = None,
    ) -> GenerationOutcome:
        has_reference = reference is not None and bool(reference.data)
        for name in resolve_provider_order(primary, has_reference):
            provider = self._providers.get(name)
            if provider is None:
                logger.warning("No adapter registered for provider '%s'; skipping.", name.value)
                continue

            image = provider.generate(
                prompt,
                aspect_ratio,
                reference if has_reference else None,
            )
            if image is not None and image.data:
                return GenerationOutcome(image=image, provider=name.value)
            logger.info("Provider '%s' returned no image; trying next.", name.value)

        logger.warning("All image providers exhausted for this round.")
        return GenerationOutcome(image=None, provider=FALLBACK_PROVIDER_TAG)
