"""Merge planning: decide for each source file whether and where to copy it."""

import logging
import os
import re
from pathlib import Path
from typing import Callable, Iterable

from . import config
from .exceptions import TooManyConflictsError
from .models import Action, Copy, CopyRenamed, Skip, SkipReason

# Stem of an organized file: 2023-01-15_007
DATED_NAME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})_(\d{3})$")


def unique_target_path(
    path: Path,
    is_taken: Callable[[Path], bool],
    max_attempts: int = config.MAX_RENAME_ATTEMPTS
) -> Path:
    """
    Find a free sibling name for a colliding path.

    `2023-01-15_004.jpg` becomes `2023-01-15_005.jpg`, `2023-01-15_006.jpg`, ...
    Any other name gets a counter appended: `photo.jpg` -> `photo_001.jpg`.
    """
    match = DATED_NAME_RE.match(path.stem)
    if match:
        prefix, counter = match.group(1), int(match.group(2))
    else:
        prefix, counter = path.stem, 0

    for _ in range(max_attempts):
        counter += 1
        candidate = path.with_name(f"{prefix}_{counter:03d}{path.suffix}")
        if not is_taken(candidate):
            return candidate

    raise TooManyConflictsError(
        f"Too many conflicts for {path.name}: no free name after {max_attempts} attempts"
    )


def plan(
    source_files: Iterable[str],
    source_fingerprints: dict[str, str],
    target_index: dict[str, str],
    source_root: Path,
    target_root: Path,
    excluded: Iterable[str] = (),
    max_attempts: int = config.MAX_RENAME_ATTEMPTS
) -> list[Action]:
    """
    Plan the copy of source files into the target tree.

    Args:
        source_files: Relative source paths, in discovery order
        source_fingerprints: Relative source path -> fingerprint
        target_index: Fingerprints already present in the target
        source_root: Root the source paths are relative to
        target_root: Root the relative paths are mirrored under
        excluded: Source paths dropped by source-side deduplication
        max_attempts: Renames tried per colliding file before giving up

    Nothing is written. The only filesystem access is the existence check
    used to pick free names; paths chosen earlier in the plan count as taken.
    """
    present = set(target_index)
    excluded = set(excluded)
    claimed: set[Path] = set()

    def is_taken(path: Path) -> bool:
        return path in claimed or os.path.lexists(path)

    actions: list[Action] = []
    for rel_path in source_files:
        source_path = source_root / rel_path
        fp = source_fingerprints.get(rel_path)

        if fp is None:
            actions.append(Skip(str(source_path), SkipReason.UNFINGERPRINTABLE))
            continue
        if rel_path in excluded or fp in present:
            actions.append(Skip(str(source_path), SkipReason.DUPLICATE))
            continue

        target_path = target_root / rel_path
        if not is_taken(target_path):
            final_path = target_path
            action: Action = Copy(str(source_path), str(target_path))
        else:
            try:
                final_path = unique_target_path(target_path, is_taken, max_attempts)
            except TooManyConflictsError as e:
                logging.error(str(e))
                actions.append(Skip(str(source_path), SkipReason.CONFLICTS_EXHAUSTED))
                continue
            action = CopyRenamed(str(source_path), str(target_path), str(final_path))

        present.add(fp)
        claimed.add(final_path)
        actions.append(action)

    return actions
