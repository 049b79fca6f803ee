"""Pixel-level similarity between two images."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np

from image_dedup.core.codec import PillowCodec
from image_dedup.core.errors import DecodeError
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)

MIN_THRESHOLD = 0.1
MAX_THRESHOLD = 1.0
DEFAULT_THRESHOLD = 0.9


def clamp_threshold(value: float) -> float:
    """Clamp a similarity threshold into [0.1, 1.0]."""
    return min(max(value, MIN_THRESHOLD), MAX_THRESHOLD)


class MatchStatus(Enum):
    """How a pair comparison ended."""

    SCORED = "scored"
    SKIPPED = "skipped"  # Dimensions (or channel layouts) differ
    DECODE_FAILED = "decode_failed"


@dataclass(frozen=True)
class SimilarityResult:
    """Outcome of comparing two images."""

    status: MatchStatus
    score: float = 0.0
    detail: str = ""

    @classmethod
    def scored(cls, score: float) -> "SimilarityResult":
        return cls(MatchStatus.SCORED, score)

    @classmethod
    def skipped(cls, detail: str = "") -> "SimilarityResult":
        return cls(MatchStatus.SKIPPED, 0.0, detail)

    @classmethod
    def decode_failed(cls, detail: str = "") -> "SimilarityResult":
        return cls(MatchStatus.DECODE_FAILED, 0.0, detail)

    def meets(self, threshold: float) -> bool:
        """True if the pair counts as a duplicate at ``threshold``."""
        return self.status is MatchStatus.SCORED and self.score >= threshold


class SimilarityScorer:
    """
    Scores two images by the fraction of byte-identical samples.

    This is a strict comparison: re-encoded copies of the same picture
    (different JPEG quality, resized, recoloured) will usually score low.
    """

    def __init__(self, codec: Optional[PillowCodec] = None):
        self.codec = codec or PillowCodec()

    def score(self, path_a: Path, path_b: Path) -> SimilarityResult:
        """
        Compare two image files sample by sample.

        Args:
            path_a: First image
            path_b: Second image

        Returns:
            SimilarityResult; decode failures and size mismatches are
            reported through the result status, never raised.
        """
        try:
            image_a = self.codec.decode(path_a)
            image_b = self.codec.decode(path_b)
        except DecodeError as e:
            logger.debug(str(e))
            return SimilarityResult.decode_failed(str(e))

        if image_a.width != image_b.width or image_a.height != image_b.height:
            return SimilarityResult.skipped(
                f"{image_a.width}x{image_a.height} vs {image_b.width}x{image_b.height}"
            )

        if image_a.channels != image_b.channels:
            return SimilarityResult.skipped(
                f"{image_a.channels} vs {image_b.channels} channels"
            )

        total = image_a.sample_count
        if total == 0:
            return SimilarityResult.skipped("empty image")

        identical = np.count_nonzero(image_a.samples == image_b.samples)
        return SimilarityResult.scored(identical / total)
