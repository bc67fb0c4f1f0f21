"""Tests for photo_merger.organizer module."""

from datetime import datetime
from pathlib import Path

import pytest

from photo_merger.exceptions import RootDirectoryError
from photo_merger.organizer import organize_folder, organized_path, prune_empty_dirs

from .conftest import BASE_TIME, write_file


class TestOrganizedPath:
    """Tests for organized_path function."""

    def test_first_free_name(self, temp_dir):
        result = organized_path(temp_dir, temp_dir / "in" / "IMG_1.JPG", datetime(2023, 1, 15), lambda p: False)
        assert result == temp_dir / "2023" / "01" / "2023-01-15_001.JPG"

    def test_next_free_name(self, temp_dir):
        taken = {temp_dir / "2023" / "01" / f"2023-01-15_{i:03d}.jpg" for i in (1, 2)}
        result = organized_path(temp_dir, temp_dir / "x.jpg", datetime(2023, 1, 15), taken.__contains__)
        assert result.name == "2023-01-15_003.jpg"

    def test_already_organized_stays(self, temp_dir):
        path = temp_dir / "2023" / "01" / "2023-01-15_004.jpg"
        assert organized_path(temp_dir, path, datetime(2023, 1, 15), lambda p: True) == path

    def test_wrong_folder_moves(self, temp_dir):
        path = temp_dir / "2022" / "12" / "2023-01-15_004.jpg"
        result = organized_path(temp_dir, path, datetime(2023, 1, 15), lambda p: False)
        assert result == temp_dir / "2023" / "01" / "2023-01-15_001.jpg"


class TestPruneEmptyDirs:
    """Tests for prune_empty_dirs function."""

    def test_nested_empty_dirs(self, temp_dir):
        (temp_dir / "a" / "b" / "c").mkdir(parents=True)
        write_file(temp_dir / "keep" / "file.jpg", 1)

        assert prune_empty_dirs(temp_dir) == 3
        assert not (temp_dir / "a").exists()
        assert (temp_dir / "keep").exists()
        assert temp_dir.exists()

    def test_dry_run(self, temp_dir):
        (temp_dir / "a" / "b").mkdir(parents=True)

        assert prune_empty_dirs(temp_dir, dry_run=True) == 2
        assert (temp_dir / "a" / "b").exists()


class TestOrganizeFolder:
    """Tests for organize_folder function."""

    @pytest.fixture
    def takeout(self, temp_dir):
        base = temp_dir / "Google Photos"
        write_file(base / "Trip" / "VID_20230115_100000.mp4", 10)
        write_file(base / "Trip" / "VID_20230115_100000.mp4.json", b"{}")
        write_file(base / "Trip" / "PXL_20230115_120000.mp4", 20)
        write_file(base / "Photos from 2021" / "IMG_1.jpg", 30, mtime=BASE_TIME)
        write_file(base / "Photos from 2021" / "metadata.json", b"{}")
        write_file(base / "readme.txt", 5)
        return base

    def test_moves_into_dated_folders(self, takeout, fake_exif):
        fake_exif["IMG_1.jpg"] = {"EXIF DateTimeOriginal": "2021:07:04 12:00:00"}

        report = organize_folder(takeout, progress=False)

        day = takeout / "2023" / "01"
        assert sorted(p.name for p in day.iterdir()) == ["2023-01-15_001.mp4", "2023-01-15_002.mp4"]
        assert (takeout / "2021" / "07" / "2021-07-04_001.jpg").exists()
        assert report.videos_processed == 2
        assert report.images_processed == 1
        assert report.files_moved == 3

    def test_sidecars_and_empty_dirs_removed(self, takeout, fake_exif):
        report = organize_folder(takeout, progress=False)

        assert report.sidecars_removed == 2
        assert report.empty_dirs_removed == 2
        assert not (takeout / "Trip").exists()
        assert not list(takeout.rglob("*.json"))

    def test_non_media_left_alone(self, takeout, fake_exif):
        organize_folder(takeout, progress=False)
        assert (takeout / "readme.txt").exists()

    def test_image_without_exif_uses_mtime(self, takeout, fake_exif):
        organize_folder(takeout, progress=False)

        created = datetime.fromtimestamp(BASE_TIME)
        expected = takeout / f"{created:%Y}" / f"{created:%m}" / f"{created:%Y-%m-%d}_001.jpg"
        assert expected.exists()

    def test_second_run_is_a_no_op(self, takeout, fake_exif):
        organize_folder(takeout, progress=False)

        report = organize_folder(takeout, progress=False)

        assert report.files_moved == 0
        assert report.sidecars_removed == 0

    def test_gif_counted_as_image(self, temp_dir):
        write_file(temp_dir / "anim_20200301.gif", 3)

        report = organize_folder(temp_dir, progress=False)

        assert report.images_processed == 1
        assert (temp_dir / "2020" / "03" / "2020-03-01_001.gif").exists()

    def test_dry_run_changes_nothing(self, takeout, fake_exif):
        before = sorted(p.relative_to(takeout) for p in takeout.rglob("*"))

        report = organize_folder(takeout, dry_run=True, progress=False)

        assert report.files_moved == 3
        assert report.sidecars_removed == 2
        assert sorted(p.relative_to(takeout) for p in takeout.rglob("*")) == before

    def test_dry_run_claims_names(self, temp_dir):
        write_file(temp_dir / "a" / "VID_20230115_1.mp4", 1)
        write_file(temp_dir / "b" / "VID_20230115_2.mp4", 2)

        organize_folder(temp_dir, dry_run=True, progress=False)
        report = organize_folder(temp_dir, progress=False)

        assert report.files_moved == 2
        assert (temp_dir / "2023" / "01" / "2023-01-15_002.mp4").exists()

    def test_missing_directory(self, temp_dir):
        with pytest.raises(RootDirectoryError):
            organize_folder(temp_dir / "missing", progress=False)
