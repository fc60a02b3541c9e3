"""Selection and grouping of files that are due for archiving."""

from .discovery import (
    ARCHIVE_EXTENSION,
    FileSelector,
    compute_threshold,
    qualifying_timestamp,
    subtract_months,
)
from .grouping import group_by_year
from .models import CandidateFile

__all__ = [
    "ARCHIVE_EXTENSION",
    "CandidateFile",
    "FileSelector",
    "compute_threshold",
    "group_by_year",
    "qualifying_timestamp",
    "subtract_months",
]
