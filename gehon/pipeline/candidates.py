"""
Candidate over-sampling and consistency selection for a single page.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from gehon.ai_generation import FALLBACK_PROVIDER_TAG, FallbackImageResolver, ProviderName
from gehon.common import ImageData
from gehon.config import DEFAULT_CANDIDATE_ROUNDS

from .similarity import Candidate, SimilarityRanker

logger = logging.getLogger(__name__)


class CandidateGenerator:
    """
    Runs a fixed number of independent fallback rounds for one page.

    Rounds may run on a thread pool (``max_workers > 1``); ordinals always follow
    submission order, so tie-breaking does not depend on completion order.
    """

    def __init__(
        self,
        resolver: FallbackImageResolver,
        *,
        rounds: int = DEFAULT_CANDIDATE_ROUNDS,
        max_workers: int = 1,
    ) -> None:
        if rounds < 1:
            raise ValueError("rounds must be at least 1.")
        self._resolver = resolver
        self._rounds = rounds
        self._max_workers = max(1, max_workers)

    @property
    def rounds(self) -> int:
        return self._rounds

    def generate(
        self,
        prompt: str,
        aspect_ratio: str,
        *,
        primary: ProviderName | str | None,
        reference: ImageData | None = None,
    ) -> list[Candidate]:
        def run_round(ordinal: int) -> Candidate:
            outcome = self._resolver.generate(
                prompt,
                aspect_ratio,
                primary=primary,
                reference=reference,
            )
            return Candidate(image=outcome.image, provider=outcome.provider, ordinal=ordinal)

        if self._max_workers == 1:
            return [run_round(ordinal) for ordinal in range(self._rounds)]

        with ThreadPoolExecutor(max_workers=min(self._max_workers, self._rounds)) as executor:
            return list(executor.map(run_round, range(self._rounds)))


@dataclass(frozen=True)
class Selection:
    """The winning image for a page and the provider tag that produced it."""

    image: ImageData | None
    provider: str

    @property
    def chainable(self) -> bool:
        """Whether the winner may become the next page's reference image."""
        return self.image is not None and self.image.is_image


def select_winner(
    pool: Sequence[Candidate],
    reference: ImageData | None,
    ranker: SimilarityRanker | None = None,
) -> Selection:
    """
    Choose one image from the pool, preferring the one closest to ``reference``.
    """
    chosen = (ranker or SimilarityRanker()).pick(reference, pool)
    if chosen is None or not chosen.has_image:
        return Selection(image=None, provider=FALLBACK_PROVIDER_TAG)
    return Selection(image=chosen.image, provider=chosen.provider)
