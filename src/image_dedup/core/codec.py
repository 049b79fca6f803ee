"""Image decoding backed by Pillow, with OpenCV for formats Pillow cannot read."""

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from image_dedup.core.errors import DecodeError
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)

# Palette images are compared by colour, not by palette index
PALETTE_MODES = {"P", "PA"}


@dataclass
class DecodedImage:
    """Raw pixel samples of one image."""

    path: Path
    width: int
    height: int
    channels: int
    samples: np.ndarray  # shape (height, width) or (height, width, channels)

    @property
    def sample_count(self) -> int:
        """Total number of samples across all pixels and channels."""
        return int(self.samples.size)


class PillowCodec:
    """Decodes image files into numpy sample buffers."""

    def decode(self, path: Path) -> DecodedImage:
        """
        Decode an image into its pixel samples.

        Samples keep their stored bit depth and channel layout, so two files
        only compare equal when they hold the same pixels. Palette images are
        expanded to RGB (RGBA when transparent). Multi-frame files use their
        first frame. Files Pillow does not recognise (Radiance HDR, OpenEXR,
        ...) are read with OpenCV instead, with channels reordered to RGB.

        Args:
            path: Image file to decode

        Returns:
            DecodedImage for the file

        Raises:
            DecodeError: If the file is missing or not a readable image
        """
        try:
            with Image.open(path) as img:
                img.load()
                if img.mode in PALETTE_MODES:
                    transparent = img.mode == "PA" or "transparency" in img.info
                    img = img.convert("RGBA" if transparent else "RGB")
                samples = np.asarray(img)
        except UnidentifiedImageError:
            samples = self._decode_with_opencv(path)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Could not decode {path}: {e}") from e

        height, width = samples.shape[:2]
        channels = 1 if samples.ndim == 2 else samples.shape[2]
        return DecodedImage(
            path=Path(path),
            width=width,
            height=height,
            channels=channels,
            samples=samples,
        )

    def dimensions(self, path: Path) -> Tuple[int, int]:
        """
        Read an image's (width, height).

        Only the header is read when Pillow knows the format.

        Raises:
            DecodeError: If the file is missing or not a readable image
        """
        try:
            with Image.open(path) as img:
                return img.size
        except UnidentifiedImageError:
            height, width = self._decode_with_opencv(path).shape[:2]
            return width, height
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Could not read {path}: {e}") from e

    def _decode_with_opencv(self, path: Path) -> np.ndarray:
        samples = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if samples is None:
            raise DecodeError(f"Could not decode {path}: unsupported image format")

        logger.debug(f"Decoded {path} with OpenCV")
        if samples.ndim == 3 and samples.shape[2] == 3:
            return cv2.cvtColor(samples, cv2.COLOR_BGR2RGB)
        if samples.ndim == 3 and samples.shape[2] == 4:
            return cv2.cvtColor(samples, cv2.COLOR_BGRA2RGBA)
        return samples
