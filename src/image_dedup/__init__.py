"""
Image Dedup - Find and review pixel-identical duplicate images.

Scans a directory, compares every pair of images sample by sample, groups the
matches and lets the user inspect, compare and delete duplicates from the
console.
"""

__version__ = "0.1.0"
__author__ = "Image Dedup Contributors"

from image_dedup.core.grouper import DuplicateGrouper
from image_dedup.core.scanner import ImageScanner
from image_dedup.core.store import DuplicateStore

__all__ = ["DuplicateGrouper", "DuplicateStore", "ImageScanner", "__version__"]
