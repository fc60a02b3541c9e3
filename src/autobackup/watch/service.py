"""Scan pass orchestration over the configured directories."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from autobackup.archive.models import BatchOutcome, DirectoryOutcome, FileOutcome, PassReport
from autobackup.archive.writer import ArchiveWriter, archive_path_for
from autobackup.config import AutoBackupConfig
from autobackup.scanning import FileSelector, compute_threshold, group_by_year
from autobackup.scanning.models import CandidateFile

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class ArchiveService:
    """Run scan passes: select old files, bucket them by year, and archive each bucket."""

    def __init__(
        self,
        config: AutoBackupConfig,
        *,
        roots: Optional[Iterable[Path]] = None,
        dry_run: bool = False,
        selector: Optional[FileSelector] = None,
        writer: Optional[ArchiveWriter] = None,
        clock: Clock = _local_now,
    ) -> None:
        """Initialize the service from a resolved configuration snapshot.

        Args:
            config: Immutable configuration used for every pass.
            roots: Directories to process; defaults to ``worker.folders_to_monitor``.
            dry_run: Select and group files without touching any archive.
            selector: Optional selector override.
            writer: Optional archive writer override.
            clock: Source of the current local time.
        """
        worker = config.worker
        self._config = config
        self._months = worker.file_age_months
        self._dry_run = dry_run
        self._clock = clock
        source = roots if roots is not None else (Path(folder) for folder in worker.folders_to_monitor)
        self._roots = [Path(root).expanduser() for root in source]
        self._selector = selector or FileSelector(use_last_write_time=worker.uses_last_write_time)
        self._writer = writer or ArchiveWriter(
            delete_originals=worker.delete_original_file_after_zip,
            conflict_resolution=config.archive.conflict_resolution,
        )

    @property
    def roots(self) -> list[Path]:
        """Return the directories processed on each pass, in order."""
        return list(self._roots)

    def run_pass(self, stop_event: Optional[threading.Event] = None) -> PassReport:
        """Process every configured directory once.

        The pass never raises. Cancellation is honoured between directories;
        directories that were not reached are reported as ``skipped``.

        Args:
            stop_event: Cooperative cancellation signal.

        Returns:
            PassReport: Outcomes for each directory in configured order.
        """
        started_at = self._clock()
        threshold = compute_threshold(self._months, now=started_at)
        report = PassReport(started_at=started_at, threshold=threshold, dry_run=self._dry_run)

        LOGGER.info("Starting folder check at %s", started_at.isoformat(timespec="seconds"))
        LOGGER.info("Files older than %s will be compressed.", threshold.isoformat(timespec="seconds"))

        try:
            for root in self._roots:
                if stop_event is not None and stop_event.is_set():
                    report.cancelled = True
                    report.directories.append(DirectoryOutcome(path=root, status="skipped"))
                    continue
                report.directories.append(self._process_directory(root, threshold))
        except Exception as exc:
            LOGGER.exception("Folder check aborted by an unexpected error.")
            report.error = str(exc)

        if report.cancelled:
            LOGGER.info("Stop requested; remaining folders skipped for this pass.")
        report.finished_at = self._clock()
        LOGGER.info("Folder check finished.")
        return report

    def _process_directory(self, root: Path, threshold: datetime) -> DirectoryOutcome:
        if not root.is_dir():
            LOGGER.warning("The configured folder \"%s\" does not exist.", root)
            return DirectoryOutcome(path=root, status="missing")

        LOGGER.info("Processing folder \"%s\"", root)
        outcome = DirectoryOutcome(path=root, status="processed")
        try:
            candidates = self._selector.select(root, threshold)
            outcome.candidates = len(candidates)
            if not candidates:
                LOGGER.info("No old files found in folder \"%s\".", root)
                outcome.status = "empty"
                return outcome

            LOGGER.info("Found %d files to archive in \"%s\".", len(candidates), root)
            for year, files in group_by_year(candidates).items():
                LOGGER.info("Found %d files created/modified in %d.", len(files), year)
                outcome.batches.append(self._archive_batch(root, year, files))
        except Exception as exc:
            LOGGER.exception("Error while processing folder \"%s\"", root)
            outcome.status = "failed"
            outcome.error = str(exc)
        return outcome

    def _archive_batch(self, root: Path, year: int, files: list[CandidateFile]) -> BatchOutcome:
        if not self._dry_run:
            return self._writer.archive(root, year, files)

        archive_path = archive_path_for(root, year)
        LOGGER.info("Dry run: %d files would be compressed into \"%s\"", len(files), archive_path)
        return BatchOutcome(
            directory=root,
            year=year,
            archive_path=archive_path,
            files=[
                FileOutcome(source=candidate.path, status="planned", entry_name=candidate.name)
                for candidate in files
            ],
        )


__all__ = ["ArchiveService"]
