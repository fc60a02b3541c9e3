"""Partition selected files into per-year buckets."""

from __future__ import annotations

from typing import Callable, Iterable

from .models import CandidateFile


def group_by_year(
    candidates: Iterable[CandidateFile],
    key: Callable[[CandidateFile], int] | None = None,
) -> dict[int, list[CandidateFile]]:
    """Group candidates by year, keeping first-seen bucket order and file order."""
    year_of = key or (lambda candidate: candidate.year)
    buckets: dict[int, list[CandidateFile]] = {}
    for candidate in candidates:
        buckets.setdefault(year_of(candidate), []).append(candidate)
    return buckets


__all__ = ["group_by_year"]
