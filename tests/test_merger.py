"""Tests for photo_merger.merger module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from photo_merger.cache import FingerprintCache, clear_cache
from photo_merger.exceptions import RootDirectoryError
from photo_merger.fingerprint import fingerprint as real_fingerprint
from photo_merger.merger import (
    CopyError,
    apply_actions,
    copy_file,
    final_path,
    merge_folders,
    safe_copy_file,
)
from photo_merger.models import Copy, CopyRenamed, Skip
from photo_merger.scanner import HashDatabase

from .conftest import BASE_TIME, write_file


class TestCopyFile:
    """Tests for copy_file function."""

    def test_copy_file_basic(self, temp_dir):
        src = temp_dir / "source.jpg"
        dst = temp_dir / "dest.jpg"
        src.write_bytes(b"content")

        copy_file(src, dst)

        assert dst.read_bytes() == b"content"

    def test_copy_file_creates_parent_dirs(self, temp_dir):
        src = write_file(temp_dir / "source.jpg", b"content")
        dst = temp_dir / "2023" / "01" / "dest.jpg"

        copy_file(src, dst)

        assert dst.read_bytes() == b"content"

    def test_copy_file_preserves_mtime(self, temp_dir):
        src = write_file(temp_dir / "source.jpg", b"content", mtime=BASE_TIME)
        dst = temp_dir / "dest.jpg"

        copy_file(src, dst)

        assert os.stat(dst).st_mtime == BASE_TIME

    def test_copy_file_never_overwrites(self, temp_dir):
        src = write_file(temp_dir / "source.jpg", b"new")
        dst = write_file(temp_dir / "dest.jpg", b"old")

        with pytest.raises(FileExistsError):
            copy_file(src, dst)

        assert dst.read_bytes() == b"old"


class TestSafeCopyFile:
    """Tests for safe_copy_file function."""

    def test_safe_copy_success(self, temp_dir):
        src = write_file(temp_dir / "source.jpg", b"content")

        result = safe_copy_file(src, temp_dir / "dest.jpg", "source.jpg")

        assert result is None

    def test_safe_copy_missing_source(self, temp_dir):
        result = safe_copy_file(temp_dir / "missing.jpg", temp_dir / "dest.jpg", "missing.jpg")

        assert isinstance(result, CopyError)
        assert result.relative_path == "missing.jpg"
        assert result.src_path == str(temp_dir / "missing.jpg")


class TestApplyActions:
    """Tests for apply_actions function."""

    def test_only_copies_executed(self, merge_folders_pair):
        source, target = merge_folders_pair
        write_file(source / "a.jpg", b"aaa")
        write_file(source / "b.jpg", b"bbbb")
        write_file(source / "c.jpg", b"ccccc")
        db = HashDatabase(root=source, files=["a.jpg", "b.jpg", "c.jpg"],
                          fingerprints={"a.jpg": "3-no-exif", "b.jpg": "4-no-exif", "c.jpg": "5-no-exif"})
        actions = [
            Copy(str(source / "a.jpg"), str(target / "a.jpg")),
            Skip(str(source / "b.jpg")),
            CopyRenamed(str(source / "c.jpg"), str(target / "c.jpg"), str(target / "c_001.jpg")),
        ]

        entries, errors = apply_actions(actions, db, target, progress=False)

        assert errors == []
        assert [e.path for e in entries] == ["a.jpg", "c_001.jpg"]
        assert entries[1].fingerprint == "5-no-exif"
        assert not (target / "b.jpg").exists()
        assert not (target / "c.jpg").exists()

    def test_final_path(self):
        assert final_path(Copy("/s/a.jpg", "/t/a.jpg")) == "/t/a.jpg"
        assert final_path(CopyRenamed("/s/a.jpg", "/t/a.jpg", "/t/a_001.jpg")) == "/t/a_001.jpg"


@pytest.fixture
def ten_photos(merge_folders_pair):
    """Ten distinct source images, two of which already exist in the target."""
    source, target = merge_folders_pair
    for i in range(10):
        write_file(source / "2023" / "01" / f"photo_{i}.jpg", 100 + i, mtime=BASE_TIME)
    # Same content, different names and folders
    write_file(target / "old" / "a.jpg", 103, mtime=BASE_TIME)
    write_file(target / "old" / "b.jpg", 107, mtime=BASE_TIME)
    return source, target


class TestMergeFolders:
    """Tests for merge_folders function."""

    def test_skips_content_already_in_target(self, ten_photos):
        source, target = ten_photos

        report = merge_folders(source, target, progress=False)

        assert report.source_files == 10
        assert report.copied == 8
        assert report.skipped_duplicates == 2
        assert report.renamed == 0
        assert report.error_count == 0
        assert not (target / "2023" / "01" / "photo_3.jpg").exists()
        assert (target / "2023" / "01" / "photo_4.jpg").exists()

    def test_second_run_copies_nothing(self, ten_photos):
        source, target = ten_photos
        merge_folders(source, target, progress=False)

        report = merge_folders(source, target, progress=False)

        assert report.copied == 0
        assert report.skipped_duplicates == 10

    def test_cache_records_copies(self, ten_photos):
        source, target = ten_photos

        report = merge_folders(source, target, progress=False)

        stored = FingerprintCache(target).load()
        assert report.cache_saved
        assert len(stored) == 10
        assert stored["2023/01/photo_0.jpg"].fingerprint == "100-no-exif"

    def test_warm_cache_does_not_rehash_target(self, ten_photos):
        source, target = ten_photos
        merge_folders(source, target, progress=False)
        hashed = []

        def record(path):
            hashed.append(Path(path))
            return real_fingerprint(path)

        with patch("photo_merger.scanner.fingerprint", side_effect=record):
            merge_folders(source, target, progress=False)

        assert all(target not in p.parents for p in hashed)

    def test_cold_cache_same_outcome(self, ten_photos):
        source, target = ten_photos
        merge_folders(source, target, progress=False)
        clear_cache(target)

        report = merge_folders(source, target, progress=False)

        assert report.copied == 0

    def test_rename_on_collision(self, merge_folders_pair):
        source, target = merge_folders_pair
        write_file(source / "a.jpg", 6)
        write_file(target / "a.jpg", 5)

        report = merge_folders(source, target, progress=False)

        assert report.copied == 1
        assert report.renamed == 1
        assert (target / "a.jpg").stat().st_size == 5
        assert (target / "a_001.jpg").stat().st_size == 6

    def test_unfingerprintable_left_out(self, merge_folders_pair):
        source, target = merge_folders_pair
        write_file(source / "notes.txt", 10)
        write_file(source / "holiday.mp4", 10)
        write_file(source / "VID_20230115_1.mp4", 10)

        report = merge_folders(source, target, progress=False)

        assert report.unfingerprintable == 2
        assert report.copied == 1
        assert sorted(p.name for p in target.iterdir() if not p.name.startswith(".")) == [
            "VID_20230115_1.mp4"
        ]

    def test_source_duplicates_excluded(self, merge_folders_pair):
        source, target = merge_folders_pair
        write_file(source / "IMG_1.jpg", b"orig", mtime=BASE_TIME)
        write_file(source / "IMG_1-edited.jpg", b"edited!", mtime=BASE_TIME + 5)
        write_file(source / "copy" / "IMG_1-edited.jpg", b"edited!", mtime=BASE_TIME + 9)

        report = merge_folders(source, target, preferred_suffix="-edited", progress=False)

        assert report.copied == 1
        assert report.source_duplicates == 2
        assert (target / "IMG_1-edited.jpg").exists()
        assert not (target / "IMG_1.jpg").exists()
        # Source files are never deleted
        assert (source / "IMG_1.jpg").exists()

    def test_extension_case_variants_both_copied(self, merge_folders_pair):
        source, target = merge_folders_pair
        write_file(source / "IMG_1.JPG", 100, mtime=BASE_TIME)
        write_file(source / "IMG_1.jpg", 250, mtime=BASE_TIME)
        if len(list(source.iterdir())) < 2:
            pytest.skip("case-insensitive filesystem")

        report = merge_folders(source, target, progress=False)

        assert report.copied == 2
        assert report.source_duplicates == 0

    def test_copy_failure_does_not_stop_merge(self, ten_photos):
        source, target = ten_photos
        real_copy = copy_file

        def flaky_copy(src, dst):
            if src.name == "photo_5.jpg":
                raise PermissionError("denied")
            real_copy(src, dst)

        with patch("photo_merger.merger.copy_file", side_effect=flaky_copy):
            report = merge_folders(source, target, progress=False)

        assert report.copied == 7
        assert len(report.copy_errors) == 1
        assert report.copy_errors[0].relative_path == "2023/01/photo_5.jpg"
        assert "2023/01/photo_5.jpg" not in FingerprintCache(target).load()

    def test_cache_write_failure_reported(self, ten_photos):
        source, target = ten_photos

        with patch.object(FingerprintCache, "persist", return_value=False):
            report = merge_folders(source, target, progress=False)

        assert report.copied == 8
        assert report.cache_saved is False

    def test_dry_run_changes_nothing(self, temp_dir, ten_photos):
        source, _ = ten_photos
        target = temp_dir / "new_target"

        report = merge_folders(source, target, dry_run=True, progress=False)

        assert report.copied == 10
        assert not target.exists()

    def test_dry_run_does_not_write_cache(self, ten_photos):
        source, target = ten_photos

        merge_folders(source, target, dry_run=True, progress=False)

        assert not FingerprintCache(target).db_path.exists()
        assert not (target / "2023").exists()

    def test_creates_missing_target(self, temp_dir, ten_photos):
        source, _ = ten_photos
        target = temp_dir / "fresh" / "library"

        report = merge_folders(source, target, progress=False)

        assert report.copied == 10
        assert (target / "2023" / "01" / "photo_9.jpg").exists()

    def test_missing_source(self, temp_dir):
        with pytest.raises(RootDirectoryError):
            merge_folders(temp_dir / "nope", temp_dir / "target", progress=False)

    def test_target_is_file(self, temp_dir, ten_photos):
        source, _ = ten_photos
        target = write_file(temp_dir / "file.jpg", 1)
        with pytest.raises(RootDirectoryError):
            merge_folders(source, target, progress=False)
