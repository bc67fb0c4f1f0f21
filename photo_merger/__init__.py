"""
Photo Merger - organize photo/video collections and merge them without duplicates.

Features:
- Content fingerprints from file size plus normalized EXIF metadata
- Persistent per-target fingerprint cache (SQLite snapshot, mtime invalidated)
- Incremental merge that never copies the same content twice
- Deterministic collision-free renaming (YYYY-MM-DD_NNN.ext)
- Duplicate removal with a preferred-suffix / oldest-wins policy
- Date-based YYYY/MM organization and batch import of Takeout archives
"""

__version__ = "1.0.0"
