"""File selection utilities."""

from __future__ import annotations

import calendar
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .models import CandidateFile

LOGGER = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".zip"


def subtract_months(moment: datetime, months: int) -> datetime:
    """Return ``moment`` shifted back by whole calendar months.

    The day is clamped to the length of the target month, so 31 March minus
    one month is the last day of February.
    """
    index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_threshold(months: int, *, now: datetime | None = None) -> datetime:
    """Return the age cutoff for a scan pass as an aware local datetime.

    The shift is applied to local wall-clock time, so the UTC offset of the
    result follows daylight saving rules for the target date.
    """
    current = now if now is not None else datetime.now()
    return subtract_months(current.astimezone().replace(tzinfo=None), months).astimezone()


def qualifying_timestamp(stat: os.stat_result, *, use_last_write_time: bool) -> datetime:
    """Pick the modification or creation time from a stat result.

    Creation time comes from ``st_birthtime`` where the platform records it
    and falls back to ``st_ctime`` elsewhere.
    """
    if use_last_write_time:
        raw = stat.st_mtime
    else:
        raw = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return datetime.fromtimestamp(raw).astimezone()


class FileSelector:
    """Select the immediate files of a directory that are old enough to archive."""

    def __init__(
        self,
        *,
        use_last_write_time: bool,
        archive_extension: str = ARCHIVE_EXTENSION,
    ) -> None:
        self.use_last_write_time = use_last_write_time
        self.archive_extension = archive_extension.lower()

    def select(self, directory: Path, threshold: datetime) -> list[CandidateFile]:
        """Return files strictly older than ``threshold`` in traversal order.

        Args:
            directory: Directory whose immediate children are inspected.
            threshold: Files whose qualifying timestamp is not earlier than
                this instant are left alone.

        Returns:
            list[CandidateFile]: Selected files; archives are never included.

        Raises:
            OSError: If the directory itself cannot be enumerated.
        """
        return [candidate for candidate in self._scan(directory) if candidate.timestamp < threshold]

    def _scan(self, directory: Path) -> Iterator[CandidateFile]:
        for path in directory.iterdir():
            if path.name.lower().endswith(self.archive_extension):
                continue
            try:
                if not path.is_file():
                    continue
                stat = path.stat()
            except OSError as exc:
                LOGGER.debug("Skipping %s: %s", path, exc)
                continue

            yield CandidateFile(
                path=path,
                name=path.name,
                extension=path.suffix,
                timestamp=qualifying_timestamp(stat, use_last_write_time=self.use_last_write_time),
                size_bytes=stat.st_size,
            )


__all__ = [
    "ARCHIVE_EXTENSION",
    "FileSelector",
    "compute_threshold",
    "qualifying_timestamp",
    "subtract_months",
]
