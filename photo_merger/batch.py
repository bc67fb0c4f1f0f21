"""Batch import of Google Takeout archives into a target collection."""

import logging
import os
import shutil
import zipfile
from pathlib import Path
from typing import Optional

from . import config
from .exceptions import PhotoMergerError
from .merger import merge_folders
from .models import BatchReport
from .organizer import organize_folder
from .scanner import require_directory

TEMP_DIR_NAME = ".temp-extraction"
PHOTOS_FOLDER_NAME = "Google Photos"


def find_archives(source_dir: Path) -> list[Path]:
    """Zip files directly inside source_dir, sorted by name."""
    return sorted(
        p for p in source_dir.iterdir()
        if p.is_file() and p.suffix.lower() == ".zip"
    )


def extract_archive(archive: Path, extract_path: Path) -> None:
    extract_path.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(extract_path)


def is_photos_folder(name: str) -> bool:
    lower = name.lower()
    return "google" in lower and "photos" in lower


def _find_in_takeout(takeout: Path) -> Optional[Path]:
    exact = takeout / PHOTOS_FOLDER_NAME
    if exact.is_dir():
        return exact
    for child in sorted(takeout.iterdir()):
        if child.is_dir() and is_photos_folder(child.name):
            return child
    return None


def _search_photos_folder(root: Path) -> Optional[Path]:
    for dirpath, dirnames, _ in os.walk(root):
        dirnames.sort()
        if PHOTOS_FOLDER_NAME in dirnames:
            return Path(dirpath) / PHOTOS_FOLDER_NAME
    return None


def find_photos_folder(extract_path: Path) -> Optional[Path]:
    """
    Locate the photo folder inside an extracted Takeout archive.

    Tries, in order: <root>/Takeout, a single wrapping folder (itself named
    Takeout or containing one), then a search for a "Google Photos" folder
    anywhere below the root.
    """
    takeout = extract_path / "Takeout"
    if takeout.is_dir():
        found = _find_in_takeout(takeout)
        if found:
            return found

    contents = list(extract_path.iterdir())
    if len(contents) == 1 and contents[0].is_dir():
        single = contents[0]
        if single.name == "Takeout":
            found = _find_in_takeout(single)
        elif (single / "Takeout").is_dir():
            found = _find_in_takeout(single / "Takeout")
        else:
            found = None
        if found:
            return found

    return _search_photos_folder(extract_path)


def process_archive(
    archive: Path,
    temp_root: Path,
    target: Path,
    report: BatchReport,
    preferred_suffix: Optional[str] = None,
    workers: int = config.DEFAULT_WORKERS,
    progress: bool = True
) -> None:
    """Extract, organize and merge one archive. The extraction is always removed."""
    extract_path = temp_root / archive.stem
    try:
        extract_archive(archive, extract_path)
        photos = find_photos_folder(extract_path)
        if photos is None:
            raise PhotoMergerError("Google Photos folder not found in extracted content")

        organized = organize_folder(photos, progress=progress)
        merged = merge_folders(
            photos, target,
            preferred_suffix=preferred_suffix, workers=workers, progress=progress
        )
        report.files_organized += organized.files_moved
        report.files_copied += merged.copied
        print(f"{archive.name}: organized {organized.files_moved} files, "
              f"copied {merged.copied} to target")
    finally:
        shutil.rmtree(extract_path, ignore_errors=True)


def process_batch(
    source_dir: Path,
    target: Path,
    preferred_suffix: Optional[str] = None,
    workers: int = config.DEFAULT_WORKERS,
    delete_archives: bool = False,
    dry_run: bool = False,
    progress: bool = True
) -> BatchReport:
    """
    Import every zip archive of source_dir into target.

    A failing archive is recorded and the next one is processed.
    """
    require_directory(source_dir, "Source")

    report = BatchReport()
    archives = find_archives(source_dir)
    report.archives_found = len(archives)
    if not archives:
        logging.warning(f"No zip files found in {source_dir}")
        return report

    if dry_run:
        for archive in archives:
            print(f"{archive.name}: would extract, organize and copy files to target")
        return report

    target.mkdir(parents=True, exist_ok=True)
    temp_root = source_dir / TEMP_DIR_NAME

    for i, archive in enumerate(archives, start=1):
        print(f"\n[{i}/{len(archives)}] Processing: {archive.name}")
        try:
            process_archive(
                archive, temp_root, target, report,
                preferred_suffix=preferred_suffix, workers=workers, progress=progress
            )
            report.archives_processed += 1
            if delete_archives:
                archive.unlink()
        except (OSError, zipfile.BadZipFile, PhotoMergerError) as e:
            logging.error(f"Error processing {archive.name}: {e}")
            report.failures.append((archive.name, str(e)))

    if temp_root.exists() and not any(temp_root.iterdir()):
        temp_root.rmdir()

    return report
