"""
Content fingerprints used as file identity for deduplication.

A fingerprint is cheap to compute: it never reads the full file. Images are
identified by byte size plus a hash of a fixed set of capture attributes,
videos by byte size plus the date in their filename:

    4821337-3f2a9c0d51b7e6a4      image with readable EXIF
    4821337-no-exif               image without usable EXIF
    90210443-video-2023-01-15     video dated by filename

Two unreadable images of equal size therefore share a fingerprint, and so do
two videos of equal size carrying the same filename date. Both are accepted
imprecisions. Videos without a filename date cannot be fingerprinted and are
left out of deduplication entirely.
"""

import logging
import os
from pathlib import Path

import exifread
import xxhash

from . import config
from .dates import date_from_filename
from .models import FingerprintResult, MediaKind


def classify(path: Path) -> MediaKind:
    """Resolve the media kind of a file from its extension."""
    ext = path.suffix.lower()
    if ext in config.FILENAME_DATED_EXTS:
        return MediaKind.VIDEO
    if ext in config.IMAGE_EXTS:
        return MediaKind.IMAGE
    return MediaKind.UNRECOGNIZED


def normalize_metadata(tags) -> str:
    """Serialize the fingerprint tags present in `tags`, in a fixed order."""
    parts = []
    for name, tag in config.FINGERPRINT_TAGS:
        value = tags.get(tag)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            parts.append(f"{name}={text}")
    return "|".join(parts)


def metadata_digest(tags) -> str:
    normalized = normalize_metadata(tags)
    if not normalized:
        return config.NO_EXIF_SENTINEL
    return xxhash.xxh64(normalized.encode("utf-8")).hexdigest()


def read_metadata(path: Path) -> dict:
    with open(path, 'rb') as f:
        return exifread.process_file(f, details=False)


def fingerprint(path: Path) -> FingerprintResult:
    """
    Compute the fingerprint of a single file.

    Never raises: metadata failures degrade to the no-exif sentinel, and
    files that cannot be identified come back with `fingerprint=None` and a
    reason.
    """
    kind = classify(path)
    if kind is MediaKind.UNRECOGNIZED:
        return FingerprintResult(kind, reason="unrecognized file type")

    try:
        size = os.stat(path).st_size
    except OSError as e:
        return FingerprintResult(kind, reason=f"cannot stat file: {e}")

    if kind is MediaKind.VIDEO:
        day = date_from_filename(path.name)
        if day is None:
            return FingerprintResult(kind, reason="no date in filename")
        return FingerprintResult(kind, f"{size}-video-{day.isoformat()}")

    try:
        tags = read_metadata(path)
    except Exception as e:
        logging.debug(f"Metadata extraction failed for {path}: {e}")
        tags = {}
    return FingerprintResult(kind, f"{size}-{metadata_digest(tags)}")
