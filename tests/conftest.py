"""Shared test fixtures."""

import os
import tempfile
from pathlib import Path

import pytest

from photo_merger.cache import FingerprintCache
from photo_merger.models import CacheEntry

# 2023-11-14T22:13:20 UTC
BASE_TIME = 1700000000


def write_file(path: Path, data: bytes | int, mtime: float | None = None) -> Path:
    """Create a file (and its parents). An int writes that many bytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, int):
        data = b"x" * data
    path.write_bytes(data)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_exif(monkeypatch):
    """
    Replace exifread with a lookup table keyed by file name.

    Files not in the table have no EXIF data.
    """
    tables: dict[str, dict] = {}

    def process_file(f, details=True):
        return dict(tables.get(Path(f.name).name, {}))

    monkeypatch.setattr("exifread.process_file", process_file)
    return tables


@pytest.fixture
def merge_folders_pair(temp_dir):
    """Source and target folders for merge tests."""
    source = temp_dir / "source"
    target = temp_dir / "target"
    source.mkdir()
    target.mkdir()
    return source, target


@pytest.fixture
def cache(temp_dir):
    """An empty FingerprintCache rooted in the temp dir."""
    return FingerprintCache(temp_dir)


@pytest.fixture
def sample_entries():
    return [
        CacheEntry("2023/01/2023-01-15_001.jpg", "100-abc", 1700000000000),
        CacheEntry("2023/01/2023-01-15_002.jpg", "200-def", 1700000001000),
        CacheEntry("2023/02/clip.mp4", "300-video-2023-02-01", 1700000002000),
    ]
