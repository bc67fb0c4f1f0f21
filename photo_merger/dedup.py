"""Duplicate group resolution and standalone duplicate removal."""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional, Sequence

from . import config
from .cache import FingerprintCache
from .fingerprint import classify
from .models import DedupeReport, DuplicateCandidate, MediaKind, Resolution
from .scanner import HashDatabase, build_hash_database, require_directory


def has_suffix(path: str, suffix: Optional[str]) -> bool:
    """True if the file's base name (without extension) ends with suffix."""
    return bool(suffix) and PurePosixPath(path).stem.endswith(suffix)


def resolve(group: Sequence[DuplicateCandidate], preferred_suffix: Optional[str] = None) -> Resolution:
    """
    Pick the one file of a duplicate group to keep.

    If some members carry the preferred suffix (e.g. "-edited"), the oldest
    of those survives; otherwise the oldest member overall. Equal mtimes are
    broken by path.
    """
    if not group:
        raise ValueError("Cannot resolve an empty duplicate group")

    pool = [c for c in group if has_suffix(c.path, preferred_suffix)] or list(group)
    keep = min(pool, key=lambda c: (c.mod_time_ms, c.path))
    return Resolution(
        keep=keep.path,
        remove=[c.path for c in group if c.path != keep.path]
    )


def filename_key(path: str, preferred_suffix: Optional[str] = None) -> tuple[str, str, str]:
    """Grouping key: directory, base name without the preferred suffix, extension as written."""
    p = PurePosixPath(path)
    stem = p.stem
    if has_suffix(path, preferred_suffix) and len(stem) > len(preferred_suffix):
        stem = stem[:-len(preferred_suffix)]
    return str(p.parent), stem, p.suffix


def filename_groups(paths: Iterable[str], preferred_suffix: Optional[str] = None) -> list[list[str]]:
    """Groups of media files that differ only by the preferred suffix."""
    if not preferred_suffix:
        return []
    groups: dict[tuple[str, str, str], list[str]] = {}
    for path in paths:
        if classify(Path(path)) is MediaKind.UNRECOGNIZED:
            continue
        groups.setdefault(filename_key(path, preferred_suffix), []).append(path)
    return [group for group in groups.values() if len(group) > 1]


def fingerprint_groups(paths: Iterable[str], fingerprints: dict[str, str]) -> list[list[str]]:
    """Groups of files sharing a fingerprint; unfingerprinted files are ignored."""
    groups: dict[str, list[str]] = {}
    for path in paths:
        fp = fingerprints.get(path)
        if fp is not None:
            groups.setdefault(fp, []).append(path)
    return [group for group in groups.values() if len(group) > 1]


def select_duplicates(db: HashDatabase, preferred_suffix: Optional[str] = None) -> list[Resolution]:
    """
    Resolve all duplicate groups of a scanned tree.

    The filename pass runs first; the content pass then only sees the files
    that survived it.
    """
    def candidates(group: list[str]) -> list[DuplicateCandidate]:
        return [DuplicateCandidate(path, db.mtimes[path]) for path in group]

    resolutions = [
        resolve(candidates(group), preferred_suffix)
        for group in filename_groups(db.files, preferred_suffix)
    ]
    removed = {path for r in resolutions for path in r.remove}
    survivors = [path for path in db.files if path not in removed]

    resolutions.extend(
        resolve(candidates(group), preferred_suffix)
        for group in fingerprint_groups(survivors, db.fingerprints)
    )
    return resolutions


def dedupe_folder(
    root: Path,
    preferred_suffix: Optional[str] = None,
    dry_run: bool = False,
    use_cache: bool = True,
    workers: int = config.DEFAULT_WORKERS,
    progress: bool = True
) -> DedupeReport:
    """
    Remove duplicate media files from a directory tree.

    With dry_run the files that would be removed are reported but left alone.
    """
    require_directory(root, "Directory")

    cache = FingerprintCache(root) if use_cache else None
    db = build_hash_database(
        root, cache=cache, workers=workers, desc="Fingerprinting",
        progress=progress, update_cache=not dry_run
    )
    resolutions = select_duplicates(db, preferred_suffix)

    report = DedupeReport(files=len(db.files), groups=len(resolutions))
    for resolution in resolutions:
        logging.info(f"Keeping {resolution.keep}")
        for rel_path in resolution.remove:
            if dry_run:
                logging.info(f"[DRY RUN] Remove {rel_path}")
                report.removed.append(rel_path)
                continue
            try:
                os.remove(root / rel_path)
                report.removed.append(rel_path)
            except OSError as e:
                logging.warning(f"Could not remove {rel_path}: {e}")
                report.errors.append((rel_path, str(e)))

    if cache is not None and report.removed and not dry_run:
        removed = set(report.removed)
        cache.merge([], [path for path in db.files if path not in removed])

    return report
