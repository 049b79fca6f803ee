"""File scanner for building the candidate set of images."""

import os
from pathlib import Path
from typing import List, Set

from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)


class ImageScanner:
    """Scans directories for raster image files."""

    # Raster formats the codec can compare, matched case-insensitively
    IMAGE_EXTENSIONS = {
        ".bmp",
        ".dib",
        ".jpeg",
        ".jpg",
        ".jpe",
        ".jp2",
        ".png",
        ".webp",
        ".pbm",
        ".pgm",
        ".ppm",
        ".pxm",
        ".pnm",
        ".sr",
        ".ras",
        ".tiff",
        ".tif",
        ".exr",
        ".hdr",
        ".pic",
    }

    def scan_directory(
        self, directory: Path, recursive: bool = False, skip_hidden: bool = False
    ) -> List[Path]:
        """
        Scan a directory for image files.

        Args:
            directory: Directory path to scan
            recursive: Recursively scan subdirectories
            skip_hidden: Skip dot-files and dot-folders

        Returns:
            Sorted list of unique image file paths

        Raises:
            FileNotFoundError: If directory doesn't exist
            NotADirectoryError: If the path is not a directory
        """
        if not directory.exists():
            raise FileNotFoundError(f"Directory not found: {directory}")

        if not directory.is_dir():
            raise NotADirectoryError(f"Not a directory: {directory}")

        logger.info(f"Scanning directory: {directory}")

        candidates: Set[Path] = {
            path
            for path in self._discover_files(directory, recursive, skip_hidden)
            if self._is_image_file(path)
        }

        logger.info(f"Found {len(candidates)} image files")
        return sorted(candidates)

    def _discover_files(
        self, directory: Path, recursive: bool, skip_hidden: bool
    ) -> List[Path]:
        """
        Discover all regular files in a directory.

        Args:
            directory: Directory to scan
            recursive: Scan subdirectories
            skip_hidden: Skip hidden files/folders

        Returns:
            List of all file paths
        """
        files: List[Path] = []

        try:
            if recursive:
                for root, dirs, filenames in os.walk(directory):
                    root_path = Path(root)

                    if skip_hidden:
                        dirs[:] = [d for d in dirs if not d.startswith(".")]

                    # Skip symlinked directories to avoid loops
                    dirs[:] = [
                        d for d in dirs if not (root_path / d).is_symlink()
                    ]

                    for filename in filenames:
                        if skip_hidden and filename.startswith("."):
                            continue
                        file_path = root_path / filename
                        if file_path.is_symlink():
                            continue
                        files.append(file_path)
            else:
                for item in directory.iterdir():
                    if not item.is_file() or item.is_symlink():
                        continue
                    if skip_hidden and item.name.startswith("."):
                        continue
                    files.append(item)

        except PermissionError as e:
            logger.warning(f"Permission denied accessing directory: {e}")

        return files

    def _is_image_file(self, file_path: Path) -> bool:
        """Check if a file has an allowed image extension."""
        return file_path.suffix.lower() in self.IMAGE_EXTENSIONS
