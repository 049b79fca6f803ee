"""Removal of duplicate image files from disk."""

import json
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from send2trash import send2trash

from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)


class ImageDeleter:
    """Deletes files permanently or via the recycle bin, keeping an audit log."""

    def __init__(
        self,
        use_recycle_bin: bool = False,
        operations_log: Optional[Path] = None,
    ):
        """
        Initialize the deleter.

        Args:
            use_recycle_bin: Move files to the recycle bin instead of unlinking
            operations_log: Optional JSON-lines file recording every deletion
        """
        self.use_recycle_bin = use_recycle_bin
        self.operations_log = operations_log
        self.deleted: List[Path] = []

    def delete(self, file_path: Path) -> None:
        """
        Remove a single file.

        Raises:
            FileNotFoundError: If the file is already gone
            OSError: If the file cannot be removed
        """
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if self.use_recycle_bin:
            send2trash(str(file_path))
            logger.info(f"Moved to recycle bin: {file_path}")
        else:
            file_path.unlink()
            logger.info(f"Permanently deleted: {file_path}")

        self.deleted.append(file_path)
        self._log_operation(file_path)

    def _log_operation(self, file_path: Path) -> None:
        """Append a deletion record to the operations log."""
        if not self.operations_log:
            return

        try:
            self.operations_log.parent.mkdir(parents=True, exist_ok=True)
            with open(self.operations_log, "a", encoding="utf-8") as f:
                log_entry = {
                    "timestamp": datetime.now().isoformat(),
                    "path": str(file_path),
                    "method": "recycle_bin" if self.use_recycle_bin else "permanent",
                }
                f.write(json.dumps(log_entry) + "\n")
        except OSError as e:
            logger.warning(f"Failed to log operation: {e}")
