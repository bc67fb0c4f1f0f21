"""Data models for photo merger."""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Optional, Union


class MediaKind(Enum):
    """How a file's identity is derived."""
    IMAGE = "image"
    VIDEO = "video"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class FingerprintResult:
    """Outcome of fingerprinting one file."""
    kind: MediaKind
    fingerprint: Optional[str] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fingerprint is not None


@dataclass
class CacheEntry:
    """A cached fingerprint, valid while the file's mtime is unchanged."""
    path: str
    fingerprint: str
    mod_time_ms: int

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(**data)


class SkipReason(Enum):
    """Why the planner decided not to copy a source file."""
    DUPLICATE = "duplicate"
    UNFINGERPRINTABLE = "unfingerprintable"
    CONFLICTS_EXHAUSTED = "conflicts_exhausted"


@dataclass(frozen=True)
class Skip:
    path: str
    reason: SkipReason = SkipReason.DUPLICATE


@dataclass(frozen=True)
class Copy:
    source_path: str
    target_path: str


@dataclass(frozen=True)
class CopyRenamed:
    source_path: str
    target_path: str
    final_path: str


Action = Union[Skip, Copy, CopyRenamed]


@dataclass(frozen=True)
class DuplicateCandidate:
    """A member of a duplicate group."""
    path: str
    mod_time_ms: int


@dataclass
class Resolution:
    """The single survivor of a duplicate group and the files to drop."""
    keep: str
    remove: list[str]


@dataclass
class MergeReport:
    """Counters and per-file failures of one merge run."""
    source_files: int = 0
    copied: int = 0
    renamed: int = 0
    skipped_duplicates: int = 0
    source_duplicates: int = 0
    unfingerprintable: int = 0
    conflicts_exhausted: list[str] = field(default_factory=list)
    scan_errors: list = field(default_factory=list)
    copy_errors: list = field(default_factory=list)
    cache_saved: bool = False

    @property
    def error_count(self) -> int:
        return len(self.scan_errors) + len(self.copy_errors) + len(self.conflicts_exhausted)


@dataclass
class DedupeReport:
    """Result of a standalone duplicate removal pass."""
    files: int = 0
    groups: int = 0
    removed: list[str] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class OrganizeReport:
    """Result of organizing a directory into YYYY/MM folders."""
    images_processed: int = 0
    videos_processed: int = 0
    files_moved: int = 0
    sidecars_removed: int = 0
    empty_dirs_removed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class BatchReport:
    """Result of importing a directory of archives."""
    archives_found: int = 0
    archives_processed: int = 0
    files_organized: int = 0
    files_copied: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
