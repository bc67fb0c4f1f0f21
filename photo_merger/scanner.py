"""Folder walking and fingerprint database building."""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from tqdm import tqdm

from . import config
from .cache import FingerprintCache
from .exceptions import RootDirectoryError
from .fingerprint import fingerprint
from .models import CacheEntry, FingerprintResult, MediaKind


class ScanError:
    """Record of a file that failed to scan."""

    def __init__(self, relative_path: str, absolute_path: str, error: str):
        self.relative_path = relative_path
        self.absolute_path = absolute_path
        self.error = error


@dataclass
class HashDatabase:
    """
    Fingerprints of every regular file under a root.

    Paths are POSIX-style and relative to `root`; `files` keeps discovery
    order, which decides the representative of each fingerprint.
    """
    root: Path
    files: list[str] = field(default_factory=list)
    fingerprints: dict[str, str] = field(default_factory=dict)
    mtimes: dict[str, int] = field(default_factory=dict)
    unfingerprintable: list[str] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)
    rehashed: int = 0

    def index(self) -> dict[str, str]:
        """Map each fingerprint to its first-seen path."""
        index = {}
        for path in self.files:
            fp = self.fingerprints.get(path)
            if fp is not None and fp not in index:
                index[fp] = path
        return index

    def groups(self) -> dict[str, list[str]]:
        """Map each fingerprint to all paths carrying it, in discovery order."""
        groups: dict[str, list[str]] = {}
        for path in self.files:
            fp = self.fingerprints.get(path)
            if fp is not None:
                groups.setdefault(fp, []).append(path)
        return groups


def require_directory(path: Path, label: str) -> None:
    """Raise RootDirectoryError unless `path` is an existing directory."""
    if not path.exists():
        raise RootDirectoryError(f"{label} does not exist: {path}")
    if not path.is_dir():
        raise RootDirectoryError(f"{label} is not a directory: {path}")


def mod_time_ms(stat_result: os.stat_result) -> int:
    return stat_result.st_mtime_ns // 1_000_000


def is_internal_file(name: str) -> bool:
    """True for the cache snapshot and its temporary/journal files."""
    return name.startswith(config.CACHE_FILENAME)


def _sorted_entries(directory) -> list[os.DirEntry]:
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)
    except OSError as e:
        logging.warning(f"Cannot read directory {directory}: {e}")
        return []


def iter_files(root: Path) -> Iterator[str]:
    """
    Yield relative POSIX paths of all regular files under root.

    Pre-order depth-first with an explicit stack: the entries of a directory
    are visited by name, and a subdirectory is fully walked before the next
    sibling. Symlinks are neither followed nor yielded.
    """
    # Reversed so that "a" is popped before "b"
    stack = list(reversed(_sorted_entries(root)))
    while stack:
        entry = stack.pop()
        if entry.is_dir(follow_symlinks=False):
            stack.extend(reversed(_sorted_entries(entry.path)))
        elif entry.is_file(follow_symlinks=False) and not is_internal_file(entry.name):
            yield Path(entry.path).relative_to(root).as_posix()


def hash_files(
    paths: list[Path],
    workers: int = config.DEFAULT_WORKERS,
    desc: str = "Hashing",
    progress: bool = True
) -> list[FingerprintResult]:
    """
    Fingerprint files on a bounded thread pool.

    Results come back in input order and are collected by the calling
    thread only.
    """
    results = []
    with tqdm(total=len(paths), desc=desc, unit="file", disable=not progress) as pbar:
        with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
            for result in executor.map(fingerprint, paths):
                results.append(result)
                pbar.update(1)
    return results


def build_hash_database(
    root: Path,
    cache: Optional[FingerprintCache] = None,
    workers: int = config.DEFAULT_WORKERS,
    desc: str = "Hashing",
    progress: bool = True,
    update_cache: bool = True
) -> HashDatabase:
    """
    Fingerprint every regular file under root.

    Args:
        root: Directory to scan
        cache: Fingerprint cache of the tree; only files whose mtime differs
               from the cached one are fingerprinted again
        workers: Size of the hashing thread pool
        desc: Description for the progress bar
        progress: Show a progress bar
        update_cache: Write fresh fingerprints back to the cache

    Returns:
        HashDatabase for the tree. Files that cannot be fingerprinted are
        listed in `unfingerprintable`, files that cannot be read in `errors`.
    """
    db = HashDatabase(root=root)

    for rel_path in iter_files(root):
        abs_path = root / rel_path
        try:
            stat = os.stat(abs_path)
        except OSError as e:
            logging.warning(f"Cannot stat {abs_path}: {e}")
            db.errors.append(ScanError(rel_path, str(abs_path), str(e)))
            continue
        db.files.append(rel_path)
        db.mtimes[rel_path] = mod_time_ms(stat)

    if cache is not None:
        reconciliation = cache.reconcile(db.mtimes)
        db.fingerprints.update(reconciliation.valid)
        to_hash = reconciliation.stale
        logging.debug(
            f"Cache for {root}: {len(reconciliation.valid)} valid, {len(to_hash)} stale"
        )
    else:
        to_hash = list(db.files)

    results = hash_files([root / p for p in to_hash], workers, desc, progress)
    db.rehashed = len(to_hash)

    new_entries = []
    for rel_path, result in zip(to_hash, results):
        if result.ok:
            db.fingerprints[rel_path] = result.fingerprint
            new_entries.append(CacheEntry(rel_path, result.fingerprint, db.mtimes[rel_path]))
            continue

        db.unfingerprintable.append(rel_path)
        if result.kind is MediaKind.UNRECOGNIZED:
            logging.debug(f"Not fingerprinted: {rel_path} ({result.reason})")
        else:
            logging.warning(f"Not fingerprinted: {rel_path} ({result.reason})")

    if cache is not None and update_cache:
        cache.merge(new_entries, db.files)

    return db
