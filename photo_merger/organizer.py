"""Date-based organization of a media tree into YYYY/MM folders."""

import logging
import os
import shutil
from datetime import datetime
from pathlib import Path

from tqdm import tqdm

from . import config
from .dates import resolve_date
from .exceptions import TooManyConflictsError
from .fingerprint import classify
from .models import MediaKind, OrganizeReport
from .planner import DATED_NAME_RE, unique_target_path
from .scanner import iter_files, require_directory


def organized_path(base: Path, path: Path, created: datetime, is_taken) -> Path:
    """
    Destination of a file: base/YYYY/MM/YYYY-MM-DD_NNN.ext, first free NNN.

    A file that already sits under the right name is left where it is.
    """
    folder = base / f"{created.year:04d}" / f"{created.month:02d}"
    day = created.strftime("%Y-%m-%d")

    match = DATED_NAME_RE.match(path.stem)
    if path.parent == folder and match and match.group(1) == day:
        return path

    first = folder / f"{day}_001{path.suffix}"
    if not is_taken(first):
        return first
    return unique_target_path(first, is_taken)


def prune_empty_dirs(base: Path, dry_run: bool = False) -> int:
    """Remove empty directories below base (never base itself), bottom-up."""
    removed: set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(base, topdown=False):
        current = Path(dirpath)
        if current == base or filenames:
            continue
        if all(current / name in removed for name in dirnames):
            if not dry_run:
                try:
                    current.rmdir()
                except OSError as e:
                    logging.debug(f"Could not remove directory {current}: {e}")
                    continue
            logging.debug(f"Removed empty directory: {current.relative_to(base)}")
            removed.add(current)
    return len(removed)


def organize_folder(base: Path, dry_run: bool = False, progress: bool = True) -> OrganizeReport:
    """
    Rename and move every media file under base into base/YYYY/MM/.

    Takeout JSON sidecars are deleted and emptied directories pruned. A file
    that fails is counted in the report and the rest carry on.
    """
    require_directory(base, "Directory")

    report = OrganizeReport()
    claimed: set[Path] = set()

    def is_taken(path: Path) -> bool:
        return path in claimed or os.path.lexists(path)

    for rel_path in tqdm(list(iter_files(base)), desc="Organizing", unit="file", disable=not progress):
        path = base / rel_path
        ext = path.suffix.lower()
        try:
            if ext in config.SIDECAR_EXTS:
                if not dry_run:
                    path.unlink()
                report.sidecars_removed += 1
                continue

            kind = classify(path)
            if kind is MediaKind.UNRECOGNIZED:
                continue
            if kind is MediaKind.VIDEO and ext != '.gif':
                report.videos_processed += 1
            else:
                report.images_processed += 1

            destination = organized_path(base, path, resolve_date(path, kind), is_taken)
            if destination == path:
                continue

            if dry_run:
                logging.info(f"[DRY RUN] Move {rel_path} -> {destination.relative_to(base)}")
            else:
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(path), str(destination))
            claimed.add(destination)
            report.files_moved += 1
        except (OSError, TooManyConflictsError) as e:
            logging.error(f"Error processing {rel_path}: {e}")
            report.errors.append((rel_path, str(e)))

    report.empty_dirs_removed = prune_empty_dirs(base, dry_run)
    return report
