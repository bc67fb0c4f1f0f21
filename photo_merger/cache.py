"""SQLite-backed fingerprint cache for a target directory."""

import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from . import config
from .exceptions import CacheError
from .models import CacheEntry

SCHEMA = """
    CREATE TABLE IF NOT EXISTS metadata (
        key TEXT PRIMARY KEY,
        value TEXT
    );

    CREATE TABLE IF NOT EXISTS entries (
        position INTEGER PRIMARY KEY,
        path TEXT NOT NULL UNIQUE,
        fingerprint TEXT NOT NULL,
        mod_time_ms INTEGER NOT NULL
    );
"""


@dataclass
class Reconciliation:
    """Cached fingerprints still usable, and paths that must be re-hashed."""
    valid: dict[str, str]
    stale: list[str]


class FingerprintCache:
    """
    Persistent map of relative path -> (fingerprint, mtime) for one target tree.

    The snapshot lives in the tree root and is rewritten as a whole: a new
    database is built next to it and swapped in with os.replace, so an
    interrupted write leaves the previous snapshot intact. A missing,
    corrupt or unknown-version snapshot loads as an empty cache.
    """

    def __init__(self, root: Path, filename: str = config.CACHE_FILENAME):
        self.root = root
        self.db_path = root / filename
        self.entries: dict[str, CacheEntry] = {}
        self.loaded = False

    @property
    def tmp_path(self) -> Path:
        return self.db_path.with_name(self.db_path.name + ".tmp")

    def load(self) -> dict[str, CacheEntry]:
        """Load the snapshot, falling back to an empty cache."""
        self.entries = {}
        self.loaded = True
        if not self.db_path.exists():
            return self.entries
        try:
            self.entries = self._read_snapshot(self.db_path)
        except CacheError as e:
            logging.warning(f"Ignoring fingerprint cache {self.db_path}: {e}")
        return self.entries

    def reconcile(self, current_files: dict[str, int]) -> Reconciliation:
        """Split files ({path: mtime in ms}) into cache hits and stale paths."""
        if not self.loaded:
            self.load()

        valid = {}
        stale = []
        for path, mod_time_ms in current_files.items():
            entry = self.entries.get(path)
            if entry is not None and entry.mod_time_ms == mod_time_ms:
                valid[path] = entry.fingerprint
            else:
                stale.append(path)
        return Reconciliation(valid=valid, stale=stale)

    def merge(self, new_entries: Iterable[CacheEntry], current_files: Iterable[str]) -> bool:
        """
        Add new entries, forget paths that no longer exist, then persist.

        Returns False if the snapshot could not be written.
        """
        if not self.loaded:
            self.load()

        keep = set(current_files)
        for entry in new_entries:
            self.entries[entry.path] = entry
            keep.add(entry.path)

        for path in list(self.entries):
            if path not in keep:
                del self.entries[path]

        return self.persist()

    def persist(self) -> bool:
        """Write the snapshot atomically. Failures are logged, not raised."""
        tmp_path = self.tmp_path
        try:
            if tmp_path.exists():
                tmp_path.unlink()
            self._write_snapshot(tmp_path)
            os.replace(tmp_path, self.db_path)
        except (OSError, sqlite3.Error) as e:
            logging.warning(f"Could not save fingerprint cache {self.db_path}: {e}")
            self._discard(tmp_path)
            return False
        return True

    def invalidate(self) -> None:
        """Delete the snapshot, forcing a full rebuild on the next run."""
        self.entries = {}
        self.loaded = False
        for path in (self.db_path, self.tmp_path):
            if path.exists():
                path.unlink()

    def _read_snapshot(self, db_path: Path) -> dict[str, CacheEntry]:
        try:
            conn = sqlite3.connect(str(db_path))
        except sqlite3.Error as e:
            raise CacheError(str(e)) from e

        try:
            version = self._get_metadata(conn, "schema_version")
            if version != config.CACHE_SCHEMA_VERSION:
                raise CacheError(f"unsupported schema version {version!r}")

            cursor = conn.execute(
                "SELECT path, fingerprint, mod_time_ms FROM entries ORDER BY position"
            )
            entries = {}
            for row in cursor:
                entries[row[0]] = CacheEntry(
                    path=row[0],
                    fingerprint=row[1],
                    mod_time_ms=row[2]
                )
            return entries
        except sqlite3.Error as e:
            raise CacheError(str(e)) from e
        finally:
            conn.close()

    def _write_snapshot(self, db_path: Path) -> None:
        conn = sqlite3.connect(str(db_path), isolation_level=None)
        try:
            conn.executescript(SCHEMA)
            conn.execute("BEGIN")
            try:
                self._set_metadata(conn, "schema_version", config.CACHE_SCHEMA_VERSION)
                self._set_metadata(conn, "last_updated", datetime.now().isoformat())
                conn.executemany(
                    """INSERT INTO entries (position, path, fingerprint, mod_time_ms)
                       VALUES (?, ?, ?, ?)""",
                    (
                        (position, entry.path, entry.fingerprint, entry.mod_time_ms)
                        for position, entry in enumerate(
                            sorted(self.entries.values(), key=lambda e: e.path)
                        )
                    )
                )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    @staticmethod
    def _get_metadata(conn: sqlite3.Connection, key: str) -> Optional[str]:
        cursor = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None

    @staticmethod
    def _set_metadata(conn: sqlite3.Connection, key: str, value: str) -> None:
        conn.execute(
            "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
            (key, value)
        )

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            logging.debug(f"Could not remove {path}: {e}")


def clear_cache(root: Path) -> bool:
    """Delete the fingerprint cache of a target directory. Returns True if one existed."""
    cache = FingerprintCache(root)
    existed = cache.db_path.exists()
    cache.invalidate()
    return existed
