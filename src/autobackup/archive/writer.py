"""Per-year ZIP archive construction."""

from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path
from typing import IO, Literal, Sequence

from autobackup.scanning.discovery import ARCHIVE_EXTENSION
from autobackup.scanning.models import CandidateFile

from .models import BatchOutcome, FileOutcome

LOGGER = logging.getLogger(__name__)

COMPRESSION = zipfile.ZIP_DEFLATED
COMPRESSION_LEVEL = 9
_CHUNK_SIZE = 1024 * 1024
_SPOOL_MAX_BYTES = 64 * 1024 * 1024

ConflictStrategy = Literal["skip", "append_number", "duplicate"]


class ContainerError(Exception):
    """Raised when an existing archive is not a readable ZIP container."""


def archive_path_for(directory: Path, year: int) -> Path:
    """Return the location of the archive holding ``year`` inside ``directory``."""
    return directory / f"{year}{ARCHIVE_EXTENSION}"


def _crc32(path: Path) -> int:
    checksum = 0
    with path.open("rb") as handle:
        while chunk := handle.read(_CHUNK_SIZE):
            checksum = zlib.crc32(chunk, checksum)
    return checksum


def _same_content(info: zipfile.ZipInfo, candidate: CandidateFile) -> bool:
    if info.file_size != candidate.path.stat().st_size:
        return False
    return info.CRC == _crc32(candidate.path)


def _unreadable_container(path: Path) -> bool:
    """Return whether ``path`` holds bytes that are not a ZIP archive.

    Append mode would otherwise write a fresh archive after the foreign bytes.
    A missing or empty file is fine to open.
    """
    if not path.is_file() or path.stat().st_size == 0:
        return False
    return not zipfile.is_zipfile(path)


def _spool(path: Path) -> IO[bytes]:
    """Copy ``path`` into a temporary buffer, rewound and ready to read.

    Large files overflow to disk. The source is read completely here, so a read
    error surfaces before any bytes reach the archive.
    """
    spool = tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_BYTES)
    try:
        with path.open("rb") as source:
            shutil.copyfileobj(source, spool, _CHUNK_SIZE)
    except BaseException:
        spool.close()
        raise
    spool.seek(0)
    return spool  # type: ignore[return-value]


def _entry_info(candidate: CandidateFile, entry_name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo.from_file(candidate.path, arcname=entry_name, strict_timestamps=False)
    info.compress_type = COMPRESSION
    # Entries opened from a ZipInfo do not inherit the container's level.
    info._compresslevel = COMPRESSION_LEVEL  # type: ignore[attr-defined]
    return info


class ArchiveWriter:
    """Append files to ``<year>.zip`` containers and optionally remove the originals.

    Entries are always deflated at the highest level. Originals are only
    deleted once the archive has been closed successfully, so a container
    that fails to finalize never costs the source files.
    """

    def __init__(
        self,
        *,
        delete_originals: bool,
        conflict_resolution: ConflictStrategy = "skip",
    ) -> None:
        self.delete_originals = delete_originals
        self.conflict_resolution = conflict_resolution

    def archive(self, directory: Path, year: int, files: Sequence[CandidateFile]) -> BatchOutcome:
        """Add ``files`` to the archive for ``year`` in ``directory``.

        Args:
            directory: Directory that contains the files and receives the archive.
            year: Year bucket; names the archive.
            files: Files to add, in order.

        Returns:
            BatchOutcome: Per-file results, or a container-level error when the
            archive could not be opened, created or finalized.
        """
        archive_path = archive_path_for(directory, year)
        outcome = BatchOutcome(directory=directory, year=year, archive_path=archive_path)
        LOGGER.info("Compressing %d files into \"%s\"", len(files), archive_path)

        try:
            if _unreadable_container(archive_path):
                raise ContainerError("existing file is not a valid zip archive")
            with zipfile.ZipFile(
                archive_path,
                mode="a",
                compression=COMPRESSION,
                compresslevel=COMPRESSION_LEVEL,
                strict_timestamps=False,
            ) as archive:
                entries = {info.filename: info for info in archive.infolist()}
                total = len(files)
                for index, candidate in enumerate(files, start=1):
                    outcome.files.append(
                        self._add(archive, entries, candidate, f"[{index}/{total}]", archive_path.name)
                    )
        except (OSError, ContainerError, zipfile.BadZipFile, zipfile.LargeZipFile) as exc:
            LOGGER.error("Failed to create or update the zip file \"%s\": %s", archive_path, exc)
            outcome.error = str(exc)
            for file_outcome in outcome.files:
                if file_outcome.archived:
                    file_outcome.status = "failed"
                    file_outcome.error = str(exc)
            return outcome

        if self.delete_originals:
            self._delete_archived(outcome)
        return outcome

    def _add(
        self,
        archive: zipfile.ZipFile,
        entries: dict[str, zipfile.ZipInfo],
        candidate: CandidateFile,
        progress: str,
        archive_name: str,
    ) -> FileOutcome:
        try:
            entry_name = candidate.name
            existing = entries.get(entry_name)
            if existing is not None and self.conflict_resolution != "duplicate":
                if _same_content(existing, candidate):
                    LOGGER.info(
                        "%s File \"%s\" is already stored in %s.", progress, candidate.name, archive_name
                    )
                    return FileOutcome(
                        source=candidate.path, status="already_archived", entry_name=entry_name
                    )
                if self.conflict_resolution == "skip":
                    LOGGER.warning(
                        "%s %s already holds a different \"%s\"; file left in place.",
                        progress,
                        archive_name,
                        candidate.name,
                    )
                    return FileOutcome(
                        source=candidate.path,
                        status="skipped",
                        entry_name=entry_name,
                        error="entry name already used by different content",
                    )
                entry_name = self._free_name(entries, candidate)

            info = _entry_info(candidate, entry_name)
            spool = _spool(candidate.path)
        except Exception as exc:
            LOGGER.error("%s Failed to process file \"%s\": %s", progress, candidate.name, exc)
            return FileOutcome(source=candidate.path, status="failed", error=str(exc))

        # A failure past this point is a container failure and abandons the batch.
        with spool, archive.open(info, mode="w") as entry:
            shutil.copyfileobj(spool, entry, _CHUNK_SIZE)
        entries[entry_name] = info

        LOGGER.info("%s File \"%s\" added to %s.", progress, candidate.name, archive_name)
        return FileOutcome(source=candidate.path, status="added", entry_name=entry_name)

    def _free_name(self, entries: dict[str, zipfile.ZipInfo], candidate: CandidateFile) -> str:
        stem = candidate.path.stem
        counter = 1
        name = f"{stem}-{counter}{candidate.extension}"
        while name in entries:
            counter += 1
            name = f"{stem}-{counter}{candidate.extension}"
        return name

    def _delete_archived(self, batch: BatchOutcome) -> None:
        for outcome in batch.files:
            if not outcome.archived:
                continue
            try:
                outcome.source.unlink()
            except OSError as exc:
                outcome.delete_error = str(exc)
                LOGGER.error("Failed to delete original file \"%s\": %s", outcome.source.name, exc)
                continue
            outcome.deleted = True
            LOGGER.info("Original file \"%s\" deleted.", outcome.source.name)


__all__ = [
    "ArchiveWriter",
    "COMPRESSION",
    "COMPRESSION_LEVEL",
    "ContainerError",
    "archive_path_for",
]
