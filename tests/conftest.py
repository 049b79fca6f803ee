"""Shared fixtures for image-dedup tests."""

from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a solid-colour PNG into tmp_path."""

    def _make(
        name: str,
        size=(32, 24),
        color=(255, 0, 0),
        mode: str = "RGB",
        directory: Path = None,
    ) -> Path:
        path = (directory or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color).save(path)
        return path

    return _make
