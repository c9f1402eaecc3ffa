"""
Rank candidate illustrations by closeness to the live reference image.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable

from gehon.common import ImageData

from .hashing import hash_image

logger = logging.getLogger(__name__)

HEAD_COMPARE_LENGTH = 256
HEAD_WEIGHT = 0.6
LENGTH_WEIGHT = 0.4

Hasher = Callable[[ImageData], "str | None"]


@dataclass(frozen=True)
class Candidate:
    """One generation attempt for a page, tagged with the provider and its round ordinal."""

    image: ImageData | None
    provider: str
    ordinal: int

    @property
    def has_image(self) -> bool:
        return self.image is not None and bool(self.image.data)


def hamming_distance(left: str, right: str) -> int:
    """
    Count positional mismatches, plus the length difference as a penalty.
    """
    mismatches = sum(1 for a, b in zip(left, right) if a != b)
    return mismatches + abs(len(left) - len(right))


def byte_similarity_score(candidate_b64: str, reference_b64: str) -> float:
    """
    Best-effort proxy used when fingerprints are unavailable.

    Blends the character match ratio of the first 256 base64 characters (60%) with how
    close the payload lengths are (40%). The weights carry no deeper meaning.
    """
    length_score = 0.0
    if reference_b64:
        longest = max(len(candidate_b64), len(reference_b64))
        length_score = 1 - abs(len(candidate_b64) - len(reference_b64)) / longest

    head_reference = reference_b64[:HEAD_COMPARE_LENGTH]
    head_candidate = candidate_b64[:HEAD_COMPARE_LENGTH]
    head_score = 0.0
    if head_reference:
        same = sum(1 for a, b in zip(head_reference, head_candidate) if a == b)
        head_score = same / max(len(head_reference), len(head_candidate))

    return HEAD_WEIGHT * head_score + LENGTH_WEIGHT * length_score


class SimilarityRanker:
    """
    Picks the candidate that looks most like the reference.

    Order of preference:

    1. No reference: the first candidate that has an image.
    2. Minimum fingerprint Hamming distance (ties go to the lowest ordinal).
    3. When the reference or every candidate is unhashable, the byte heuristic.
    """

    def __init__(self, hasher: Hasher | None = None) -> None:
        self._hasher: Hasher = hasher or hash_image

    def pick(
        self,
        reference: ImageData | None,
        candidates: Iterable[Candidate],
    ) -> Candidate | None:
        pool = sorted(candidates, key=lambda candidate: candidate.ordinal)
        first_success = next((candidate for candidate in pool if candidate.has_image), None)
        if reference is None or not reference.data:
            return first_success

        by_distance = self._pick_by_fingerprint(reference, pool)
        if by_distance is not None:
            return by_distance

        logger.info("Fingerprints unavailable; ranking candidates with the byte heuristic.")
        by_heuristic = self._pick_by_heuristic(reference, pool)
        return by_heuristic or first_success

    def _pick_by_fingerprint(
        self,
        reference: ImageData,
        pool: list[Candidate],
    ) -> Candidate | None:
        reference_hash = self._hasher(reference)
        if reference_hash is None:
            return None

        best: Candidate | None = None
        best_distance = math.inf
        for candidate in pool:
            if not candidate.has_image:
                continue
            candidate_hash = self._hasher(candidate.image)  # type: ignore[arg-type]
            if candidate_hash is None:
                continue
            distance = hamming_distance(reference_hash, candidate_hash)
            logger.debug(
                "Candidate %d (%s) distance=%d", candidate.ordinal, candidate.provider, distance
            )
            if distance < best_distance:
                best_distance = distance
                best = candidate
        return best

    @staticmethod
    def _pick_by_heuristic(reference: ImageData, pool: list[Candidate]) -> Candidate | None:
        reference_b64 = reference.base64
        best: Candidate | None = None
        best_score = -1.0
        for candidate in pool:
            if not candidate.has_image:
                continue
            score = byte_similarity_score(candidate.image.base64, reference_b64)  # type: ignore[union-attr]
            if score > best_score:
                best_score = score
                best = candidate
        return best
