"""Tests for the duplicate store and file deletion."""

import json
from unittest.mock import patch

import pytest

from image_dedup.core.deleter import ImageDeleter
from image_dedup.core.grouper import DuplicateGroup
from image_dedup.core.store import (
    REPORT_HEADER,
    DuplicateStore,
    ErrorKind,
    render_report,
)


@pytest.fixture
def files(tmp_path):
    """Create six empty files: a0..a3 and b0..b1."""
    paths = {}
    for name in ["a0", "a1", "a2", "a3", "b0", "b1"]:
        path = tmp_path / f"{name}.png"
        path.write_bytes(b"img")
        paths[name] = path
    return paths


@pytest.fixture
def store(files):
    groups = [
        DuplicateGroup([files["a0"], files["a1"], files["a2"], files["a3"]]),
        DuplicateGroup([files["b0"], files["b1"]]),
    ]
    return DuplicateStore(groups, ImageDeleter())


class FailingDeleter(ImageDeleter):
    """Deleter that refuses to remove one specific file."""

    def __init__(self, refuse):
        super().__init__()
        self.refuse = refuse

    def delete(self, file_path):
        if file_path == self.refuse:
            raise PermissionError(f"Permission denied: {file_path}")
        super().delete(file_path)


class TestDuplicateStore:
    """Test DuplicateStore class."""

    def test_groups_below_two_are_dropped(self, files):
        store = DuplicateStore(
            [DuplicateGroup([files["a0"]]), DuplicateGroup([files["b0"], files["b1"]])]
        )

        assert store.group_count() == 1
        assert store.group(0).value.members == [files["b0"], files["b1"]]

    def test_group_out_of_range(self, store):
        for index in (-1, 2, 99):
            outcome = store.group(index)
            assert not outcome.ok
            assert outcome.error is ErrorKind.OUT_OF_RANGE

    def test_delete_member(self, store, files):
        outcome = store.delete_member(0, 2)

        assert outcome.ok
        assert not outcome.collapsed
        assert not files["a2"].exists()
        assert store.group(0).value.members == [files["a0"], files["a1"], files["a3"]]

    def test_delete_member_collapses_pair(self, store, files):
        outcome = store.delete_member(1, 0)

        assert outcome.ok
        assert outcome.collapsed
        assert not files["b0"].exists()
        assert files["b1"].exists()
        assert store.group_count() == 1

    def test_delete_member_out_of_range(self, store, files):
        outcome = store.delete_member(0, 4)

        assert outcome.error is ErrorKind.OUT_OF_RANGE
        assert len(store.group(0).value) == 4
        assert all(path.exists() for path in files.values())

    def test_delete_member_io_failure_leaves_group(self, store, files):
        files["a1"].unlink()

        outcome = store.delete_member(0, 1)

        assert outcome.error is ErrorKind.IO_ERROR
        assert files["a1"] in store.group(0).value

    def test_delete_member_permission_failure(self, files):
        store = DuplicateStore(
            [DuplicateGroup([files["b0"], files["b1"]])],
            FailingDeleter(files["b1"]),
        )

        outcome = store.delete_member(0, 1)

        assert outcome.error is ErrorKind.IO_ERROR
        assert "Permission denied" in outcome.message
        assert store.group_count() == 1

    def test_delete_all_but_first(self, store, files):
        outcome = store.delete_all_but_first(0)

        assert outcome.ok
        assert outcome.collapsed
        assert files["a0"].exists()
        assert not any(files[name].exists() for name in ("a1", "a2", "a3"))
        assert store.group_count() == 1
        assert store.group(0).value.first == files["b0"]

    def test_delete_all_but_first_missing_file(self, store, files):
        files["a3"].unlink()

        outcome = store.delete_all_but_first(0)

        assert outcome.error is ErrorKind.IO_ERROR
        assert files["a1"].exists()
        assert files["a2"].exists()
        assert store.group_count() == 2

    def test_delete_all_but_first_partial_failure(self, files):
        group = DuplicateGroup([files["a0"], files["a1"], files["a2"], files["a3"]])
        store = DuplicateStore([group], FailingDeleter(files["a2"]))

        outcome = store.delete_all_but_first(0)

        assert not outcome.ok
        assert outcome.error is ErrorKind.IO_ERROR
        assert not outcome.collapsed
        assert not files["a1"].exists()
        assert store.group(0).value.members == [files["a0"], files["a2"], files["a3"]]

    def test_partial_failure_names_deleted_files(self, files):
        group = DuplicateGroup([files["a0"], files["a1"], files["a2"], files["a3"]])
        store = DuplicateStore([group], FailingDeleter(files["a3"]))

        outcome = store.delete_all_but_first(0)

        assert outcome.message.startswith(f"Deleted {files['a1']}, {files['a2']};")
        assert f"could not delete {files['a3']}" in outcome.message

    def test_partial_failure_on_first_target(self, files):
        group = DuplicateGroup([files["a0"], files["a1"], files["a2"]])
        store = DuplicateStore([group], FailingDeleter(files["a1"]))

        outcome = store.delete_all_but_first(0)

        assert outcome.message.startswith("Deleted no files;")
        assert store.group(0).value.members == [files["a0"], files["a1"], files["a2"]]

    def test_delete_all_but_first_out_of_range(self, store):
        assert store.delete_all_but_first(5).error is ErrorKind.OUT_OF_RANGE
        assert store.group_count() == 2

    def test_mark_non_duplicate_keeps_file(self, store, files):
        outcome = store.mark_non_duplicate(0, 0)

        assert outcome.ok
        assert files["a0"].exists()
        assert store.group(0).value.members == [files["a1"], files["a2"], files["a3"]]

    def test_mark_non_duplicate_collapses_pair(self, store, files):
        outcome = store.mark_non_duplicate(1, 1)

        assert outcome.collapsed
        assert files["b0"].exists() and files["b1"].exists()
        assert store.group_count() == 1

    def test_mark_non_duplicate_out_of_range(self, store):
        assert store.mark_non_duplicate(1, 2).error is ErrorKind.OUT_OF_RANGE
        assert store.mark_non_duplicate(3, 0).error is ErrorKind.OUT_OF_RANGE
        assert len(store.group(1).value) == 2


class TestExport:
    """Test the text export."""

    def test_render_report_format(self, files):
        groups = [
            DuplicateGroup([files["a0"], files["a1"]]),
            DuplicateGroup([files["b0"], files["b1"]]),
        ]

        lines = render_report(groups).splitlines()

        assert lines == [
            REPORT_HEADER,
            "GROUP 0",
            str(files["a0"]),
            str(files["a1"]),
            "GROUP 1",
            str(files["b0"]),
            str(files["b1"]),
        ]

    def test_render_report_empty(self):
        assert render_report([]) == REPORT_HEADER + "\n"

    def test_export_round_trips(self, store, tmp_path):
        destination = tmp_path / "report.txt"

        outcome = store.export(destination)

        assert outcome.ok
        lines = destination.read_text(encoding="utf-8").splitlines()
        parsed = []
        for line in lines[1:]:
            if line.startswith("GROUP "):
                parsed.append([])
            else:
                parsed[-1].append(line)
        assert parsed == [[str(p) for p in g] for g in store.groups]

    def test_export_refuses_existing_file(self, store, tmp_path):
        destination = tmp_path / "report.txt"
        destination.write_text("keep me")

        outcome = store.export(destination)

        assert outcome.error is ErrorKind.CONFLICT
        assert destination.read_text() == "keep me"

    def test_export_missing_directory(self, store, tmp_path):
        outcome = store.export(tmp_path / "nope" / "report.txt")
        assert outcome.error is ErrorKind.IO_ERROR


class TestImageDeleter:
    """Test ImageDeleter class."""

    def test_permanent_delete_logs_operation(self, files, tmp_path):
        log = tmp_path / "logs" / "operations.log"
        deleter = ImageDeleter(operations_log=log)

        deleter.delete(files["a0"])

        assert not files["a0"].exists()
        assert deleter.deleted == [files["a0"]]
        entry = json.loads(log.read_text().splitlines()[0])
        assert entry["path"] == str(files["a0"])
        assert entry["method"] == "permanent"

    @patch("image_dedup.core.deleter.send2trash")
    def test_recycle_bin(self, mock_send2trash, files):
        deleter = ImageDeleter(use_recycle_bin=True)

        deleter.delete(files["a1"])

        mock_send2trash.assert_called_once_with(str(files["a1"]))
        assert deleter.deleted == [files["a1"]]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ImageDeleter().delete(tmp_path / "missing.png")
