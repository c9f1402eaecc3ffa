"""
Sequential illustration pipeline and end-to-end orchestration for Gehon.
"""

from .candidates import CandidateGenerator, Selection, select_winner
from .hashing import DecodeCapability, average_hash, decode_capability, hash_image
from .orchestrator import GehonOrchestrator, StoryBook, build_illustration_pipeline
from .pipeline import IllustrationPipeline, PageResult, SinglePageRequest
from .similarity import Candidate, SimilarityRanker, hamming_distance

__all__ = [
    "CandidateGenerator",
    "Selection",
    "select_winner",
    "DecodeCapability",
    "average_hash",
    "decode_capability",
    "hash_image",
    "GehonOrchestrator",
    "StoryBook",
    "build_illustration_pipeline",
    "IllustrationPipeline",
    "PageResult",
    "SinglePageRequest",
    "Candidate",
    "SimilarityRanker",
    "hamming_distance",
]
