"""Models describing files considered for archiving."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class CandidateFile(BaseModel):
    """A file whose qualifying timestamp is older than the scan threshold.

    Attributes:
        path: Absolute path of the file.
        name: Base name, used as the archive entry name.
        extension: Suffix including the leading dot (may be empty).
        timestamp: Qualifying timestamp as an aware local datetime.
        size_bytes: File size at selection time.
    """

    path: Path
    name: str
    extension: str
    timestamp: datetime
    size_bytes: int = 0

    @property
    def year(self) -> int:
        """Return the calendar year of the qualifying timestamp."""
        return self.timestamp.year


__all__ = ["CandidateFile"]
