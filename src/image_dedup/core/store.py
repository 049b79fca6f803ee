"""Mutable collection of duplicate groups reviewed by the user."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Sequence

from image_dedup import __version__
from image_dedup.core.deleter import ImageDeleter
from image_dedup.core.grouper import DuplicateGroup
from image_dedup.utils.logger import setup_logger

logger = setup_logger(__name__)

REPORT_HEADER = f"=== Image Duplicate Detector v{__version__} ==="


class ErrorKind(Enum):
    """Why a store or session operation failed."""

    OUT_OF_RANGE = "out_of_range"
    IO_ERROR = "io_error"
    CONFLICT = "conflict"
    INVALID_COMMAND = "invalid_command"
    DISPLAY_ERROR = "display_error"


@dataclass(frozen=True)
class Outcome:
    """Result of an operation: success, or a tagged failure with a message."""

    ok: bool
    error: Optional[ErrorKind] = None
    message: str = ""
    collapsed: bool = False  # The touched group was dissolved
    value: Any = None

    @classmethod
    def success(
        cls, message: str = "", collapsed: bool = False, value: Any = None
    ) -> "Outcome":
        return cls(True, None, message, collapsed, value)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Outcome":
        return cls(False, error, message)


def render_report(groups: Sequence[DuplicateGroup]) -> str:
    """
    Render groups as the plain-text export format.

    One header line, then for each group a ``GROUP <index>`` line followed
    by one member path per line.
    """
    lines = [REPORT_HEADER]
    for index, group in enumerate(groups):
        lines.append(f"GROUP {index}")
        lines.extend(str(path) for path in group)
    return "\n".join(lines) + "\n"


class DuplicateStore:
    """
    Ordered duplicate groups plus the operations that shrink them.

    Groups are never added after construction. Any group reduced to a single
    member is dropped, and failed operations leave the store untouched.
    """

    def __init__(
        self,
        groups: Sequence[DuplicateGroup],
        deleter: Optional[ImageDeleter] = None,
    ):
        self._groups: List[DuplicateGroup] = [
            DuplicateGroup(list(group)) for group in groups if len(group) >= 2
        ]
        self.deleter = deleter or ImageDeleter()

    def __len__(self) -> int:
        return len(self._groups)

    @property
    def groups(self) -> List[DuplicateGroup]:
        """Copy of the current groups, in store order."""
        return list(self._groups)

    def group_count(self) -> int:
        return len(self._groups)

    def group(self, index: int) -> Outcome:
        """Fetch a group; its value is the DuplicateGroup on success."""
        if not self._valid_group(index):
            return self._group_out_of_range(index)
        return Outcome.success(value=self._groups[index])

    def delete_member(self, group_index: int, member_index: int) -> Outcome:
        """Delete one member's file from disk and drop it from its group."""
        check = self._check_member(group_index, member_index)
        if not check.ok:
            return check

        path = self._groups[group_index][member_index]
        try:
            self.deleter.delete(path)
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            return Outcome.failure(ErrorKind.IO_ERROR, f"Could not delete {path}: {e}")

        collapsed = self._remove_member(group_index, member_index)
        return Outcome.success(f"Deleted {path}", collapsed=collapsed)

    def delete_all_but_first(self, group_index: int) -> Outcome:
        """Delete every member except the first, then dissolve the group."""
        if not self._valid_group(group_index):
            return self._group_out_of_range(group_index)

        group = self._groups[group_index]
        targets = group.members[1:]
        missing = [path for path in targets if not path.exists()]
        if missing:
            return Outcome.failure(
                ErrorKind.IO_ERROR, f"File not found: {missing[0]}"
            )

        for path in targets:
            try:
                self.deleter.delete(path)
            except OSError as e:
                logger.error(f"Failed to delete {path}: {e}")
                # Files already gone from disk cannot stay listed
                deleted = targets[: targets.index(path)]
                group.members = [p for p in group.members if p not in deleted]
                collapsed = self._collapse_if_single(group_index)
                if deleted:
                    done = "Deleted " + ", ".join(str(p) for p in deleted)
                else:
                    done = "Deleted no files"
                return Outcome(
                    False,
                    ErrorKind.IO_ERROR,
                    f"{done}; could not delete {path}: {e}",
                    collapsed,
                )

        del self._groups[group_index]
        return Outcome.success(
            f"Deleted {len(targets)} duplicates of {group.first}", collapsed=True
        )

    def mark_non_duplicate(self, group_index: int, member_index: int) -> Outcome:
        """Drop a member from its group without touching the file."""
        check = self._check_member(group_index, member_index)
        if not check.ok:
            return check

        path = self._groups[group_index][member_index]
        collapsed = self._remove_member(group_index, member_index)
        logger.debug(f"Marked as non-duplicate: {path}")
        return Outcome.success(f"Marked {path} as non-duplicate", collapsed=collapsed)

    def export(self, destination: Path) -> Outcome:
        """Write the report to ``destination``, refusing to overwrite."""
        report = render_report(self._groups)
        try:
            with open(destination, "x", encoding="utf-8") as f:
                f.write(report)
        except FileExistsError:
            return Outcome.failure(ErrorKind.CONFLICT, "File already exists")
        except OSError as e:
            return Outcome.failure(ErrorKind.IO_ERROR, f"Could not write {destination}: {e}")

        logger.info(f"Exported {len(self._groups)} groups to {destination}")
        return Outcome.success("File written")

    def _valid_group(self, index: int) -> bool:
        return 0 <= index < len(self._groups)

    def _group_out_of_range(self, index: int) -> Outcome:
        return Outcome.failure(ErrorKind.OUT_OF_RANGE, f"Invalid group: {index}")

    def _check_member(self, group_index: int, member_index: int) -> Outcome:
        if not self._valid_group(group_index):
            return self._group_out_of_range(group_index)
        if not 0 <= member_index < len(self._groups[group_index]):
            return Outcome.failure(
                ErrorKind.OUT_OF_RANGE, f"Invalid selection: {member_index}"
            )
        return Outcome.success()

    def _remove_member(self, group_index: int, member_index: int) -> bool:
        del self._groups[group_index].members[member_index]
        return self._collapse_if_single(group_index)

    def _collapse_if_single(self, group_index: int) -> bool:
        if len(self._groups[group_index]) <= 1:
            del self._groups[group_index]
            return True
        return False
