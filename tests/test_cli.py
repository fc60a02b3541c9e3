"""CLI integration tests for `autobackup run` and `autobackup config`."""

from __future__ import annotations

import json
import logging
import os
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

import pytest
from click.testing import CliRunner

from autobackup.cli import cli
from autobackup.config import ConfigManager


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger("autobackup")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def _env_with_home(tmp_path: Path, **extra: str) -> dict[str, str]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("AUTOBACKUP__")}
    env["HOME"] = str(tmp_path / "home")
    env.update(extra)
    return env


def _config_path(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".autobackup" / "config.yaml"


def _old_file(path: Path, year: int = 2020) -> Path:
    path.write_text("archive me", encoding="utf-8")
    stamp = datetime(year, 8, 1, 12).timestamp()
    os.utime(path, (stamp, stamp))
    return path


def test_run_once_archives_folder(tmp_path: Path) -> None:
    folder = tmp_path / "scans"
    folder.mkdir()
    _old_file(folder / "invoice.txt")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["run", "--once", "--folder", str(folder)],
        env=_env_with_home(tmp_path, AUTOBACKUP__WORKER__DATE_TO_CHECK="LastWriteTime"),
    )

    assert result.exit_code == 0, result.output
    with zipfile.ZipFile(folder / "2020.zip") as handle:
        assert handle.namelist() == ["invoice.txt"]
    assert (folder / "invoice.txt").exists()
    assert "Archive summary" in result.output
    assert _config_path(tmp_path).exists()


def test_run_once_delete_flag_removes_originals(tmp_path: Path) -> None:
    folder = tmp_path / "scans"
    folder.mkdir()
    _old_file(folder / "invoice.txt")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["run", "--once", "--delete", "--folder", str(folder)],
        env=_env_with_home(tmp_path, AUTOBACKUP__WORKER__DATE_TO_CHECK="LastWriteTime"),
    )

    assert result.exit_code == 0, result.output
    assert not (folder / "invoice.txt").exists()
    assert (folder / "2020.zip").exists()


def test_run_once_json_dry_run(tmp_path: Path) -> None:
    folder = tmp_path / "json"
    folder.mkdir()
    _old_file(folder / "report.txt", year=2019)

    runner = CliRunner()
    env = _env_with_home(
        tmp_path,
        AUTOBACKUP__WORKER__DATE_TO_CHECK="LastWriteTime",
        AUTOBACKUP__LOGGING__LEVEL="ERROR",
    )
    result = runner.invoke(
        cli, ["run", "--once", "--dry-run", "--json", "--folder", str(folder)], env=env
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["context"]["dry_run"] is True
    assert payload["counts"]["candidates"] == 1
    directory = payload["directories"][0]
    assert directory["path"].endswith("json")
    assert directory["batches"][0]["year"] == 2019
    assert directory["batches"][0]["files"][0]["status"] == "planned"
    assert not (folder / "2019.zip").exists()


def test_run_reports_missing_folder(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["run", "--once", "--summary", "--folder", str(tmp_path / "absent")],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    assert "absent" in result.output
    assert "missing=1" in result.output


def test_run_with_invalid_config_fails(tmp_path: Path) -> None:
    config_path = _config_path(tmp_path)
    config_path.parent.mkdir(parents=True)
    config_path.write_text("worker: [unbalanced", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(cli, ["run", "--once"], env=_env_with_home(tmp_path))

    assert result.exit_code != 0
    assert "Failed to parse configuration file" in result.output


def test_run_rejects_json_with_quiet(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["run", "--once", "--json", "--quiet"], env=_env_with_home(tmp_path))

    assert result.exit_code != 0
    assert "--json cannot be combined" in result.output


def test_explicit_config_option(tmp_path: Path) -> None:
    custom = tmp_path / "custom.yaml"
    folder = tmp_path / "custom-folder"
    folder.mkdir()
    _old_file(folder / "a.txt", year=2018)
    ConfigManager(config_path=custom).save(
        {"worker": {"folders_to_monitor": [str(folder)], "date_to_check": "lastwritetime"}}
    )

    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(custom), "run", "--once"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert (folder / "2018.zip").exists()
    assert not _config_path(tmp_path).exists()


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "view"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "worker:" in result.output
    assert "file_age_months" in result.output


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["config", "set", "worker.file_age_months", "--value", "18"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0
    assert "18" in result.output
    config = ConfigManager(config_path=_config_path(tmp_path)).load(include_env=False)
    assert config.worker.file_age_months == 18


def test_config_set_rejects_invalid_value(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["config", "set", "worker.run_interval_hours", "--value", "0"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code != 0
    config = ConfigManager(config_path=_config_path(tmp_path)).load(include_env=False)
    assert config.worker.run_interval_hours == 24


def test_config_edit_applies_changes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    runner = CliRunner()
    manager = ConfigManager(config_path=_config_path(tmp_path))
    manager.ensure_exists()

    def _mock_edit(text: str, **_: Any) -> str:
        return text.replace("file_age_months: 12", "file_age_months: 30")

    monkeypatch.setattr("autobackup.cli.click.edit", _mock_edit)

    result = runner.invoke(cli, ["config", "edit"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "updated" in result.output.lower()
    assert manager.load(include_env=False).worker.file_age_months == 30
