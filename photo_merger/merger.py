"""Core merge logic."""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from . import config
from .cache import FingerprintCache
from .dedup import select_duplicates
from .models import Action, CacheEntry, Copy, CopyRenamed, MergeReport, Skip, SkipReason
from .planner import plan
from .scanner import HashDatabase, build_hash_database, mod_time_ms, require_directory


class CopyError:
    """Record of a file that failed to copy."""

    def __init__(self, relative_path: str, src_path: str, dst_path: str, error: str):
        self.relative_path = relative_path
        self.src_path = src_path
        self.dst_path = dst_path
        self.error = error


def _long_path(path: Path) -> str:
    """Convert path to long path format on Windows to handle paths > 260 chars."""
    path_str = str(path.resolve())
    if os.name == 'nt' and not path_str.startswith('\\\\?\\'):
        return '\\\\?\\' + path_str
    return path_str


def copy_file(src: Path, dst: Path) -> None:
    """Copy a file, creating parent directories. Never overwrites."""
    dst_long = _long_path(dst)
    os.makedirs(os.path.dirname(dst_long), exist_ok=True)
    if os.path.lexists(dst_long):
        raise FileExistsError(f"Destination already exists: {dst}")
    shutil.copy2(_long_path(src), dst_long)


def safe_copy_file(src: Path, dst: Path, relative_path: str) -> CopyError | None:
    """
    Copy a file safely, returning a CopyError if the copy fails.
    Returns None on success.
    """
    try:
        copy_file(src, dst)
        return None
    except (OSError, shutil.Error) as e:
        return CopyError(relative_path, str(src), str(dst), str(e))


def final_path(action: Copy | CopyRenamed) -> str:
    if isinstance(action, CopyRenamed):
        return action.final_path
    return action.target_path


def apply_actions(
    actions: list[Action],
    source: HashDatabase,
    target_root: Path,
    progress: bool = True
) -> tuple[list[CacheEntry], list[CopyError]]:
    """
    Execute the copy actions of a plan, one after the other.

    Returns cache entries for the files now present in the target and the
    copies that failed.
    """
    copies = [a for a in actions if isinstance(a, (Copy, CopyRenamed))]
    new_entries = []
    errors = []

    for action in tqdm(copies, desc="Copying", unit="file", disable=not progress):
        src = Path(action.source_path)
        dst = Path(final_path(action))
        rel_source = src.relative_to(source.root).as_posix()

        error = safe_copy_file(src, dst, rel_source)
        if error:
            logging.warning(f"Could not copy {rel_source}: {error.error}")
            errors.append(error)
            continue

        try:
            new_entries.append(CacheEntry(
                path=dst.relative_to(target_root).as_posix(),
                fingerprint=source.fingerprints[rel_source],
                mod_time_ms=mod_time_ms(os.stat(dst))
            ))
        except OSError as e:
            # The copy itself succeeded; the next run re-hashes it.
            logging.warning(f"Could not stat copied file {dst}: {e}")

    return new_entries, errors


def merge_folders(
    source: Path,
    target: Path,
    preferred_suffix: Optional[str] = None,
    workers: int = config.DEFAULT_WORKERS,
    dry_run: bool = False,
    progress: bool = True
) -> MergeReport:
    """
    Merge a source tree into a target tree without duplicating content.

    Relative paths are mirrored under the target. Files whose fingerprint is
    already in the target are skipped; name collisions get a fresh name.
    Runs in distinct stages, each finished before the next starts:

    Phase 1: Fingerprint the source, then the target (through its cache)
    Phase 2: Plan every file against the complete target index
    Phase 3: Copy, then record the copies in the target cache
    """
    require_directory(source, "Source")
    if target.exists():
        require_directory(target, "Target")
    elif not dry_run:
        target.mkdir(parents=True, exist_ok=True)

    report = MergeReport()

    # =========================================================================
    # PHASE 1: Build fingerprint indexes
    # =========================================================================
    print("\n" + "=" * 60)
    print("PHASE 1: Fingerprinting")
    print("=" * 60)

    print(f"\nSource: {source}")
    source_db = build_hash_database(
        source, workers=workers, desc="Fingerprinting source", progress=progress
    )
    report.source_files = len(source_db.files)
    report.scan_errors.extend(source_db.errors)

    resolutions = select_duplicates(source_db, preferred_suffix)
    excluded = {path for r in resolutions for path in r.remove}

    print(f"Target: {target}")
    cache = FingerprintCache(target)
    if target.exists():
        target_db = build_hash_database(
            target, cache=cache, workers=workers, desc="Fingerprinting target",
            progress=progress, update_cache=not dry_run
        )
        report.scan_errors.extend(target_db.errors)
    else:
        target_db = HashDatabase(root=target)

    print(f"\n--- Scan Summary ---")
    print(f"Source files: {len(source_db.files)}")
    print(f"Source duplicates: {len(excluded)}")
    print(f"Target files: {len(target_db.files)} ({target_db.rehashed} fingerprinted)")
    print("-" * 20)

    # =========================================================================
    # PHASE 2: Plan
    # =========================================================================
    print("\n" + "=" * 60)
    print("PHASE 2: Planning")
    print("=" * 60)

    actions = plan(
        source_db.files,
        source_db.fingerprints,
        target_db.index(),
        source,
        target,
        excluded=excluded
    )

    for action in actions:
        if isinstance(action, Skip):
            if action.reason is SkipReason.UNFINGERPRINTABLE:
                report.unfingerprintable += 1
            elif action.reason is SkipReason.CONFLICTS_EXHAUSTED:
                report.conflicts_exhausted.append(action.path)
            elif Path(action.path).relative_to(source).as_posix() in excluded:
                report.source_duplicates += 1
            else:
                report.skipped_duplicates += 1

    if dry_run:
        for action in actions:
            if isinstance(action, (Copy, CopyRenamed)):
                logging.info(f"[DRY RUN] Copy {action.source_path} -> {final_path(action)}")
                report.copied += 1
                if isinstance(action, CopyRenamed):
                    report.renamed += 1
        return report

    # =========================================================================
    # PHASE 3: Copy and update the cache
    # =========================================================================
    print("\n" + "=" * 60)
    print("PHASE 3: Copying")
    print("=" * 60)

    new_entries, copy_errors = apply_actions(actions, source_db, target, progress)
    report.copy_errors.extend(copy_errors)

    failed = {e.src_path for e in copy_errors}
    for action in actions:
        if isinstance(action, (Copy, CopyRenamed)) and action.source_path not in failed:
            report.copied += 1
            if isinstance(action, CopyRenamed):
                report.renamed += 1

    report.cache_saved = cache.merge(
        new_entries, target_db.files + [entry.path for entry in new_entries]
    )
    return report
