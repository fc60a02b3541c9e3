"""Result values produced while archiving a scan pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Optional

FileStatus = Literal["added", "already_archived", "skipped", "failed", "planned"]
DirectoryStatus = Literal["missing", "empty", "processed", "failed", "skipped"]


@dataclass(slots=True)
class FileOutcome:
    """Outcome of adding one file to its year archive.

    Attributes:
        source: Path of the original file.
        status: What happened to the file.
        entry_name: Name of the archive entry written or matched.
        deleted: Whether the original was removed afterwards.
        error: Reason the add failed or was skipped.
        delete_error: Reason removing the original failed.
    """

    source: Path
    status: FileStatus
    entry_name: Optional[str] = None
    deleted: bool = False
    error: Optional[str] = None
    delete_error: Optional[str] = None

    @property
    def archived(self) -> bool:
        """Return whether the file is present in the archive after this pass."""
        return self.status in ("added", "already_archived")

    def to_payload(self) -> dict[str, Any]:
        return {
            "source": self.source.as_posix(),
            "status": self.status,
            "entry_name": self.entry_name,
            "deleted": self.deleted,
            "error": self.error,
            "delete_error": self.delete_error,
        }


@dataclass(slots=True)
class BatchOutcome:
    """Outcome of archiving one (directory, year) batch.

    Attributes:
        directory: Directory that holds both the originals and the archive.
        year: Year bucket the batch was built from.
        archive_path: Path of ``<year>.zip``.
        files: Per-file outcomes in processing order.
        error: Container-level failure that abandoned the whole batch.
    """

    directory: Path
    year: int
    archive_path: Path
    files: list[FileOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def added_count(self) -> int:
        return sum(1 for outcome in self.files if outcome.status == "added")

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.files if outcome.status == "failed")

    @property
    def deleted_count(self) -> int:
        return sum(1 for outcome in self.files if outcome.deleted)

    def to_payload(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "archive_path": self.archive_path.as_posix(),
            "error": self.error,
            "files": [outcome.to_payload() for outcome in self.files],
        }


@dataclass(slots=True)
class DirectoryOutcome:
    """Outcome of processing one watched directory during a pass."""

    path: Path
    status: DirectoryStatus
    candidates: int = 0
    batches: list[BatchOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "path": self.path.as_posix(),
            "status": self.status,
            "candidates": self.candidates,
            "error": self.error,
            "batches": [batch.to_payload() for batch in self.batches],
        }


@dataclass(slots=True)
class PassReport:
    """Summary of one full pass over the configured directories.

    Attributes:
        started_at: Local time the pass began.
        threshold: Age cutoff computed for this pass.
        directories: Outcomes in configured order.
        finished_at: Local time the pass ended.
        cancelled: Whether a stop request cut the pass short.
        dry_run: Whether archives were left untouched.
        error: Unexpected failure that ended the pass early.
    """

    started_at: datetime
    threshold: datetime
    directories: list[DirectoryOutcome] = field(default_factory=list)
    finished_at: Optional[datetime] = None
    cancelled: bool = False
    dry_run: bool = False
    error: Optional[str] = None

    def counts(self) -> dict[str, int]:
        """Return aggregate metrics for summaries."""
        batches = [batch for directory in self.directories for batch in directory.batches]
        files = [outcome for batch in batches for outcome in batch.files]
        return {
            "directories": len(self.directories),
            "missing": sum(1 for directory in self.directories if directory.status == "missing"),
            "failed_directories": sum(
                1 for directory in self.directories if directory.status == "failed"
            ),
            "candidates": sum(directory.candidates for directory in self.directories),
            "archives": len(batches),
            "added": sum(1 for outcome in files if outcome.status == "added"),
            "already_archived": sum(1 for outcome in files if outcome.status == "already_archived"),
            "skipped": sum(1 for outcome in files if outcome.status == "skipped"),
            "failed": sum(1 for outcome in files if outcome.status == "failed")
            + sum(1 for batch in batches if batch.error),
            "deleted": sum(1 for outcome in files if outcome.deleted),
        }

    def to_payload(self) -> dict[str, Any]:
        return {
            "context": {
                "started_at": self.started_at.isoformat(),
                "finished_at": self.finished_at.isoformat() if self.finished_at else None,
                "threshold": self.threshold.isoformat(),
                "cancelled": self.cancelled,
                "dry_run": self.dry_run,
                "error": self.error,
            },
            "counts": self.counts(),
            "directories": [directory.to_payload() for directory in self.directories],
        }


__all__ = [
    "BatchOutcome",
    "DirectoryOutcome",
    "DirectoryStatus",
    "FileOutcome",
    "FileStatus",
    "PassReport",
]
