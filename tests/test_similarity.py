"""Tests for pixel-level similarity scoring."""

import cv2
import numpy as np
import pytest
from PIL import Image

from image_dedup.core.codec import PillowCodec
from image_dedup.core.errors import DecodeError
from image_dedup.core.grouper import DuplicateGrouper
from image_dedup.core.similarity import (
    MatchStatus,
    SimilarityResult,
    SimilarityScorer,
    clamp_threshold,
)


class TestPillowCodec:
    """Test PillowCodec class."""

    def test_decode_rgb(self, make_image):
        path = make_image("a.png", size=(40, 30))

        image = PillowCodec().decode(path)

        assert image.width == 40
        assert image.height == 30
        assert image.channels == 3
        assert image.sample_count == 40 * 30 * 3

    def test_decode_grayscale(self, make_image):
        path = make_image("gray.png", size=(8, 6), color=128, mode="L")

        image = PillowCodec().decode(path)

        assert image.channels == 1
        assert image.samples.shape == (6, 8)

    def test_decode_invalid_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_text("not an image")

        with pytest.raises(DecodeError):
            PillowCodec().decode(path)

    def test_dimensions(self, make_image):
        path = make_image("wide.png", size=(120, 45))
        assert PillowCodec().dimensions(path) == (120, 45)

    def test_dimensions_missing_file(self, tmp_path):
        with pytest.raises(DecodeError):
            PillowCodec().dimensions(tmp_path / "missing.png")


class TestSimilarityScorer:
    """Test SimilarityScorer class."""

    def test_identical_images_score_one(self, make_image):
        a = make_image("a.png")
        b = make_image("b.png")

        result = SimilarityScorer().score(a, b)

        assert result.status is MatchStatus.SCORED
        assert result.score == 1.0
        assert result.meets(1.0)

    def test_partial_difference(self, make_image):
        a = make_image("a.png", size=(10, 10), color=(0, 0, 0))
        b_path = a.parent / "b.png"
        img = Image.new("RGB", (10, 10), (0, 0, 0))
        img.putpixel((3, 4), (255, 255, 255))
        img.save(b_path)

        result = SimilarityScorer().score(a, b_path)

        # One pixel out of 100 differs in all three channels
        assert result.score == pytest.approx(297 / 300)
        assert result.meets(0.9)
        assert not result.meets(1.0)

    def test_completely_different_images(self, make_image):
        a = make_image("a.png", color=(0, 0, 0))
        b = make_image("b.png", color=(255, 255, 255))

        result = SimilarityScorer().score(a, b)

        assert result.status is MatchStatus.SCORED
        assert result.score == 0.0

    def test_different_dimensions_skipped(self, make_image):
        a = make_image("a.png", size=(32, 24))
        b = make_image("b.png", size=(24, 32))

        result = SimilarityScorer().score(a, b)

        assert result.status is MatchStatus.SKIPPED
        assert result.score == 0.0
        assert not result.meets(0.1)

    def test_different_channel_counts_skipped(self, make_image):
        a = make_image("a.png", mode="RGB", color=(1, 2, 3))
        b = make_image("b.png", mode="RGBA", color=(1, 2, 3, 255))

        result = SimilarityScorer().score(a, b)

        assert result.status is MatchStatus.SKIPPED

    def test_decode_failure_is_reported(self, make_image, tmp_path):
        a = make_image("a.png")
        broken = tmp_path / "broken.jpg"
        broken.write_bytes(b"\x00\x01\x02")

        result = SimilarityScorer().score(a, broken)

        assert result.status is MatchStatus.DECODE_FAILED
        assert not result.meets(0.1)

    def test_missing_file_is_decode_failure(self, make_image, tmp_path):
        a = make_image("a.png")

        result = SimilarityScorer().score(tmp_path / "gone.png", a)

        assert result.status is MatchStatus.DECODE_FAILED

    def test_score_is_symmetric(self, make_image):
        a = make_image("a.png", size=(10, 10), color=(10, 20, 30))
        b = make_image("b.png", size=(10, 10), color=(10, 20, 31))

        scorer = SimilarityScorer()

        assert scorer.score(a, b) == scorer.score(b, a)
        assert scorer.score(a, b).score == pytest.approx(2 / 3)


def test_unscored_results_never_meet_threshold():
    assert SimilarityResult.scored(0.5).meets(0.5)
    assert not SimilarityResult.skipped().meets(0.1)
    assert not SimilarityResult.decode_failed().meets(0.1)


@pytest.mark.parametrize(
    "value,expected",
    [(0.05, 0.1), (0.1, 0.1), (0.5, 0.5), (1.0, 1.0), (3.0, 1.0), (-1.0, 0.1)],
)
def test_clamp_threshold(value, expected):
    assert clamp_threshold(value) == expected


def save_palette_image(path, color, size=(16, 16)):
    """Save a palette PNG whose every pixel uses index 0 mapped to ``color``."""
    img = Image.new("P", size, 0)
    img.putpalette(list(color) + [0] * (768 - 3))
    img.save(path)
    return path


def save_hdr(path, value, size=(8, 8)):
    """Write a Radiance HDR file (a format Pillow cannot open)."""
    cv2.imwrite(str(path), np.full((size[1], size[0], 3), value, dtype=np.float32))
    return path


class TestPaletteImages:
    """Palette images are compared by colour, not by palette index."""

    def test_palette_decoded_to_rgb(self, tmp_path):
        path = save_palette_image(tmp_path / "red.png", (255, 0, 0))

        image = PillowCodec().decode(path)

        assert image.channels == 3
        assert tuple(image.samples[0, 0]) == (255, 0, 0)

    def test_same_indices_different_palettes_differ(self, tmp_path):
        red = save_palette_image(tmp_path / "red.png", (255, 0, 0))
        blue = save_palette_image(tmp_path / "blue.png", (0, 0, 255))

        result = SimilarityScorer().score(red, blue)

        # Only the green channel (0 in both) matches
        assert result.score == pytest.approx(1 / 3)
        assert DuplicateGrouper().group([red, blue], 0.9) == []

    def test_identical_palette_images_match(self, tmp_path):
        a = save_palette_image(tmp_path / "a.png", (12, 34, 56))
        b = save_palette_image(tmp_path / "b.png", (12, 34, 56))

        assert SimilarityScorer().score(a, b).score == 1.0

    def test_transparent_palette_keeps_alpha(self, tmp_path):
        path = tmp_path / "clear.png"
        img = Image.new("P", (4, 4), 0)
        img.putpalette([9, 9, 9] + [0] * (768 - 3))
        img.save(path, transparency=0)

        image = PillowCodec().decode(path)

        assert image.channels == 4
        assert image.samples[0, 0, 3] == 0


class TestOpenCVFormats:
    """Allow-listed formats Pillow cannot identify are read through OpenCV."""

    def test_decode_hdr(self, tmp_path):
        path = save_hdr(tmp_path / "scene.hdr", 0.5)

        image = PillowCodec().decode(path)

        assert (image.width, image.height, image.channels) == (8, 8, 3)

    def test_hdr_dimensions(self, tmp_path):
        path = save_hdr(tmp_path / "wide.hdr", 0.5, size=(12, 5))
        assert PillowCodec().dimensions(path) == (12, 5)

    def test_identical_hdr_pair_matches(self, tmp_path):
        a = save_hdr(tmp_path / "a.hdr", 0.5)
        b = save_hdr(tmp_path / "b.hdr", 0.5)

        result = SimilarityScorer().score(a, b)

        assert result.status is MatchStatus.SCORED
        assert result.score == 1.0
        assert DuplicateGrouper().group([a, b], 0.9)[0].members == [a, b]

    def test_different_hdr_pair(self, tmp_path):
        a = save_hdr(tmp_path / "a.hdr", 0.5)
        b = save_hdr(tmp_path / "b.hdr", 0.125)

        assert SimilarityScorer().score(a, b).score < 1.0
