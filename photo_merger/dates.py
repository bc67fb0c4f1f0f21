"""
Creation date resolution for media files.

Images are dated from their EXIF tags, videos and GIFs from a date embedded
in the filename (their container metadata usually holds the encoding date,
not the recording date). File modification time is the last resort.
"""

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import exifread

from . import config
from .models import MediaKind

# YYYYMMDD, optionally separated: IMG_20230115_..., VID-20230115, 2023-01-15_001
FILENAME_DATE_RE = re.compile(
    r"(20\d{2})[-_]?(0[1-9]|1[0-2])[-_]?(0[1-9]|[12][0-9]|3[01])"
)


def date_from_filename(filename: str) -> Optional[date]:
    """Return the first valid calendar date found in a filename, if any."""
    stem = Path(filename).stem
    for match in FILENAME_DATE_RE.finditer(stem):
        year, month, day = (int(part) for part in match.groups())
        if not config.FILENAME_MIN_YEAR <= year <= config.FILENAME_MAX_YEAR:
            continue
        try:
            return date(year, month, day)
        except ValueError:
            # 2023-02-30 and friends
            continue
    return None


def parse_exif_date(tags) -> Optional[datetime]:
    """Parse the highest priority EXIF date tag ("YYYY:MM:DD HH:MM:SS")."""
    for tag in config.DATE_TAGS:
        if tag in tags:
            try:
                dt_str = str(tags[tag]).strip().replace(':', '-', 2)
                return datetime.strptime(dt_str, "%Y-%m-%d %H:%M:%S")
            except ValueError:
                continue
    return None


def exif_date(path: Path) -> Optional[datetime]:
    try:
        with path.open('rb') as f:
            tags = exifread.process_file(f, details=False)
    except Exception as e:
        logging.debug(f"ExifRead failed for {path}: {e}")
        return None
    return parse_exif_date(tags)


def resolve_date(path: Path, kind: MediaKind) -> datetime:
    """
    Resolve the creation date of a file.

    Order: EXIF (images) or filename pattern (videos/GIFs), then the file's
    modification time.
    """
    created = None
    if kind is MediaKind.IMAGE:
        created = exif_date(path)
    elif kind is MediaKind.VIDEO:
        day = date_from_filename(path.name)
        if day is not None:
            created = datetime(day.year, day.month, day.day)

    if created is None:
        logging.debug(f"No embedded date for {path.name}, using file mtime")
        created = datetime.fromtimestamp(path.stat().st_mtime)
    return created
