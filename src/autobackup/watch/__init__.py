"""Scheduled archive passes over watched directories."""

from .scheduler import PeriodicScheduler
from .service import ArchiveService

__all__ = ["ArchiveService", "PeriodicScheduler"]
