"""Side-by-side display of images for manual comparison."""

from pathlib import Path
from typing import Sequence, Tuple

import cv2

from image_dedup.core.errors import ViewerError
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)

MIN_LARGEST_DIMENSION = 250
DEFAULT_LARGEST_DIMENSION = 1000


def compute_display_size(width: int, height: int, largest: int) -> Tuple[int, int]:
    """
    Scale (width, height) so the longer side equals ``largest``.

    Args:
        width: Native image width
        height: Native image height
        largest: Target size of the longer side

    Returns:
        (width, height) preserving the aspect ratio
    """
    ratio = width / height
    if height > width:
        return int(largest * ratio), largest
    if width > height:
        return largest, int(largest / ratio)
    return largest, largest


class Viewer:
    """Displays images and blocks until the user dismisses them."""

    def display(self, paths: Sequence[Path], size: Tuple[int, int]) -> None:
        raise NotImplementedError


class OpenCVViewer(Viewer):
    """Opens one resizable OpenCV window per image."""

    WINDOW_TITLE = "Compare {index} [Press any key to close]"

    def display(self, paths: Sequence[Path], size: Tuple[int, int]) -> None:
        """
        Show every image at ``size`` and wait for a key press.

        Raises:
            ViewerError: If an image cannot be read or no display is available
        """
        width, height = size
        names = [self.WINDOW_TITLE.format(index=i) for i in range(len(paths))]

        images = []
        for path in paths:
            image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
            if image is None:
                raise ViewerError(f"Could not read {path}")
            images.append(image)

        logger.debug(f"Displaying {len(images)} images at {width}x{height}")
        opened = []
        try:
            for name, image in zip(names, images):
                cv2.namedWindow(name, cv2.WINDOW_NORMAL)
                opened.append(name)
                cv2.resizeWindow(name, width, height)
                cv2.imshow(name, image)
            cv2.waitKey(0)
        except cv2.error as e:
            raise ViewerError(f"Could not display images: {e}") from e
        finally:
            self._close(opened)

    def _close(self, names: Sequence[str]) -> None:
        for name in names:
            try:
                cv2.destroyWindow(name)
            except cv2.error as e:
                logger.warning(f"Could not close window {name!r}: {e}")
