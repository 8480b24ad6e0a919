"""Tests for timestamped backups."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from alph.storage import backup_path_for, cleanup_old_backups, create_backup, list_backups
from alph.storage.backup import format_timestamp, restore_backup


def test_backup_name_replaces_colons_and_periods() -> None:
    ts = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=UTC)
    path = backup_path_for(Path("/cfg/mcp.json"), ts)
    assert path == Path("/cfg/mcp.json.2024-05-06T07-08-09-123456Z.bak")
    assert ":" not in format_timestamp(ts)


def test_create_backup_requires_existing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        create_backup(tmp_path / "missing.json")


def test_create_and_restore_backup(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("original")

    record = create_backup(path)
    path.write_text("changed")
    restore_backup(record)

    assert path.read_text() == "original"
    assert record.size_bytes == len("original")
    assert re.search(r"\.bak$", record.backup_path.name)


def test_backups_in_quick_succession_do_not_collide(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("{}")

    first = create_backup(path)
    second = create_backup(path)

    assert first.backup_path != second.backup_path
    assert [r.backup_path for r in list_backups(path)] == [second.backup_path, first.backup_path]


def test_list_backups_ignores_other_files(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("{}")
    (tmp_path / "other.json.2024-01-01T00-00-00-000000Z.bak").write_text("{}")
    (tmp_path / "mcp.json.bak").write_text("{}")

    assert list_backups(path) == []


def test_cleanup_keeps_newest(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("{}")
    records = [create_backup(path) for _ in range(4)]

    removed = cleanup_old_backups(path, max_count=2)

    assert removed == 2
    remaining = [r.backup_path for r in list_backups(path)]
    assert remaining == [records[3].backup_path, records[2].backup_path]


def test_cleanup_removes_old_backups(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("{}")
    old = backup_path_for(path, datetime.now(UTC) - timedelta(days=40))
    old.write_text("{}")
    fresh = create_backup(path)

    assert cleanup_old_backups(path, max_age=timedelta(days=30)) == 1
    assert [r.backup_path for r in list_backups(path)] == [fresh.backup_path]
