"""
Exception hierarchy for photo merger.

Only configuration-level errors are fatal to a run; everything raised per
file is caught by the pipeline stage that owns that file and recorded in the
stage's report.
"""


class PhotoMergerError(Exception):
    """Base exception for all photo merger errors."""
    pass


class RootDirectoryError(PhotoMergerError):
    """Raised when a source or target root is missing or not a directory."""
    pass


class TooManyConflictsError(PhotoMergerError):
    """Raised when no free filename is found within the rename ceiling."""
    pass


class CacheError(PhotoMergerError):
    """Raised when the fingerprint cache snapshot cannot be read or written."""
    pass
