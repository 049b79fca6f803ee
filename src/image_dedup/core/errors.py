"""Exception types raised by image-dedup."""


class ImageDedupError(Exception):
    """Base class for image-dedup errors."""


class DecodeError(ImageDedupError):
    """An image file could not be read or decoded."""


class ScanCancelledError(ImageDedupError):
    """The pairwise scan was cancelled before it finished."""


class ViewerError(ImageDedupError):
    """Images could not be displayed for comparison."""
