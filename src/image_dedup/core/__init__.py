"""Core functionality for image duplicate detection and management."""

from image_dedup.core.grouper import DuplicateGroup, DuplicateGrouper
from image_dedup.core.scanner import ImageScanner
from image_dedup.core.similarity import SimilarityScorer
from image_dedup.core.store import DuplicateStore

__all__ = [
    "DuplicateGroup",
    "DuplicateGrouper",
    "DuplicateStore",
    "ImageScanner",
    "SimilarityScorer",
]
