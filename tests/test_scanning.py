"""Tests covering file selection, threshold arithmetic, and year grouping."""

from __future__ import annotations

import os
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from autobackup.config import WorkerSettings
from autobackup.scanning import (
    CandidateFile,
    FileSelector,
    compute_threshold,
    group_by_year,
    subtract_months,
)


def _write(path: Path, modified: datetime, content: str = "data") -> Path:
    path.write_text(content, encoding="utf-8")
    stamp = modified.timestamp()
    os.utime(path, (stamp, stamp))
    return path


def _local(*args: int) -> datetime:
    return datetime(*args).astimezone()


@pytest.mark.parametrize(
    ("moment", "months", "expected"),
    [
        (datetime(2024, 3, 31), 1, datetime(2024, 2, 29)),
        (datetime(2023, 3, 31), 1, datetime(2023, 2, 28)),
        (datetime(2024, 1, 15), 1, datetime(2023, 12, 15)),
        (datetime(2024, 5, 10), 12, datetime(2023, 5, 10)),
        (datetime(2024, 5, 10), 0, datetime(2024, 5, 10)),
        (datetime(2024, 5, 10), 29, datetime(2021, 12, 10)),
    ],
)
def test_subtract_months_clamps_day(moment: datetime, months: int, expected: datetime) -> None:
    assert subtract_months(moment, months) == expected


def test_compute_threshold_uses_supplied_clock() -> None:
    now = _local(2026, 10, 18, 9, 30)

    assert compute_threshold(12, now=now) == _local(2025, 10, 18, 9, 30)


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
def test_compute_threshold_converts_foreign_offsets_to_local(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("TZ", "EST+05EDT,M3.2.0,M11.1.0")
    time.tzset()
    try:
        instant = datetime(2026, 4, 18, 7, 30, tzinfo=timezone.utc)

        from_utc = compute_threshold(12, now=instant)
        from_local = compute_threshold(12, now=instant.astimezone())
    finally:
        monkeypatch.undo()
        time.tzset()

    assert from_utc == from_local
    assert from_utc.utcoffset() == from_local.utcoffset()
    assert (from_utc.hour, from_utc.minute) == (3, 30)


def test_compute_threshold_defaults_to_aware_now() -> None:
    threshold = compute_threshold(1)

    assert threshold.tzinfo is not None
    assert threshold < datetime.now().astimezone()


def test_selector_excludes_timestamp_equal_to_threshold(tmp_path: Path) -> None:
    threshold = datetime.fromtimestamp(1_600_000_000).astimezone()
    _write(tmp_path / "equal.txt", threshold)
    _write(tmp_path / "older.txt", threshold - timedelta(seconds=1))
    _write(tmp_path / "newer.txt", threshold + timedelta(seconds=1))

    selector = FileSelector(use_last_write_time=True)
    names = [candidate.name for candidate in selector.select(tmp_path, threshold)]

    assert names == ["older.txt"]


def test_selector_never_selects_archives(tmp_path: Path) -> None:
    ancient = _local(2001, 1, 1)
    _write(tmp_path / "2001.zip", ancient)
    _write(tmp_path / "UPPER.ZIP", ancient)
    _write(tmp_path / ".zip", ancient)
    _write(tmp_path / "report.pdf", ancient)

    selector = FileSelector(use_last_write_time=True)
    found = selector.select(tmp_path, _local(2020, 1, 1))

    assert [candidate.name for candidate in found] == ["report.pdf"]
    assert found[0].extension == ".pdf"
    assert found[0].year == 2001
    assert found[0].size_bytes == 4


def test_selector_ignores_subdirectories(tmp_path: Path) -> None:
    nested = tmp_path / "nested"
    nested.mkdir()
    _write(nested / "deep.txt", _local(2010, 1, 1))
    os.utime(nested, (0, 0))

    selector = FileSelector(use_last_write_time=True)

    assert selector.select(tmp_path, _local(2020, 1, 1)) == []


def test_selector_creation_time_ignores_modification_time(tmp_path: Path) -> None:
    # The file was just created, so backdating its mtime must not make it eligible.
    _write(tmp_path / "fresh.txt", _local(2005, 1, 1))

    selector = FileSelector(use_last_write_time=False)
    yesterday = datetime.now().astimezone() - timedelta(days=1)
    tomorrow = datetime.now().astimezone() + timedelta(days=1)

    assert selector.select(tmp_path, yesterday) == []
    assert [candidate.name for candidate in selector.select(tmp_path, tomorrow)] == ["fresh.txt"]


def test_selector_raises_for_unreadable_directory(tmp_path: Path) -> None:
    selector = FileSelector(use_last_write_time=True)

    with pytest.raises(OSError):
        selector.select(tmp_path / "missing", _local(2020, 1, 1))


@pytest.mark.parametrize(
    ("value", "expected"),
    [("LastWriteTime", True), ("lastwritetime", True), ("CreationTime", False), ("", False)],
)
def test_date_to_check_is_case_insensitive(value: str, expected: bool) -> None:
    assert WorkerSettings(date_to_check=value).uses_last_write_time is expected


def _candidate(name: str, when: datetime) -> CandidateFile:
    return CandidateFile(
        path=Path("/data") / name,
        name=name,
        extension=Path(name).suffix,
        timestamp=when,
    )


def test_group_by_year_keeps_first_seen_order() -> None:
    files = [
        _candidate("a.txt", _local(2022, 3, 1)),
        _candidate("b.txt", _local(2021, 7, 1)),
        _candidate("c.txt", _local(2022, 1, 1)),
        _candidate("d.txt", _local(2021, 2, 1)),
    ]

    buckets = group_by_year(files)

    assert list(buckets) == [2022, 2021]
    assert [item.name for item in buckets[2022]] == ["a.txt", "c.txt"]
    assert [item.name for item in buckets[2021]] == ["b.txt", "d.txt"]


def test_group_by_year_partitions_completely() -> None:
    files = [_candidate(f"f{index}.txt", _local(2015 + index % 4, 6, 1)) for index in range(11)]

    buckets = group_by_year(files)

    flattened = [item for bucket in buckets.values() for item in bucket]
    assert sorted(item.name for item in flattened) == sorted(item.name for item in files)
    for year, bucket in buckets.items():
        assert bucket
        assert all(item.timestamp.year == year for item in bucket)


def test_group_by_year_empty_input() -> None:
    assert group_by_year([]) == {}
