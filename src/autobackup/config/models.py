"""Configuration models describing AutoBackup settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

LAST_WRITE_TIME = "LastWriteTime"
CREATION_TIME = "CreationTime"


class AutoBackupBaseModel(BaseModel):
    """Shared configuration for AutoBackup Pydantic models."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class WorkerSettings(AutoBackupBaseModel):
    """Options governing which files are archived and how often.

    Attributes:
        folders_to_monitor: Directories scanned on every pass, in order.
        file_age_months: Files older than this many months are archived.
        date_to_check: ``LastWriteTime`` selects the modification time; any
            other value selects the creation time.
        run_interval_hours: Hours between the start of consecutive passes.
        delete_original_file_after_zip: Whether originals are removed once
            they were added to their archive.
    """

    folders_to_monitor: List[str] = Field(default_factory=list)
    file_age_months: int = Field(default=12, ge=0)
    date_to_check: str = CREATION_TIME
    run_interval_hours: int = Field(default=24, gt=0)
    delete_original_file_after_zip: bool = False

    @property
    def uses_last_write_time(self) -> bool:
        """Return whether the modification time is the qualifying timestamp."""
        return self.date_to_check.lower() == LAST_WRITE_TIME.lower()


class ArchiveOptions(AutoBackupBaseModel):
    """Settings for the per-year ZIP containers.

    Attributes:
        conflict_resolution: Strategy applied when an entry with the same name
            already exists in the target archive.
    """

    conflict_resolution: Literal["skip", "append_number", "duplicate"] = Field(default="skip")


class LoggingSettings(AutoBackupBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; console-only logging when unset.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "INFO"
    file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(AutoBackupBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class AutoBackupConfig(AutoBackupBaseModel):
    """Top-level configuration struct for AutoBackup.

    Attributes:
        worker: Scan and archive scheduling settings.
        archive: Archive container settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    worker: WorkerSettings = Field(default_factory=WorkerSettings)
    archive: ArchiveOptions = Field(default_factory=ArchiveOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "AutoBackupBaseModel",
    "WorkerSettings",
    "ArchiveOptions",
    "LoggingSettings",
    "CLIOptions",
    "AutoBackupConfig",
    "LAST_WRITE_TIME",
    "CREATION_TIME",
]
