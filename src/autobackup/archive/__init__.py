"""Per-year ZIP archiving and its result values."""

from .models import BatchOutcome, DirectoryOutcome, FileOutcome, PassReport
from .writer import ArchiveWriter, ContainerError, archive_path_for

__all__ = [
    "ArchiveWriter",
    "BatchOutcome",
    "ContainerError",
    "DirectoryOutcome",
    "FileOutcome",
    "PassReport",
    "archive_path_for",
]
