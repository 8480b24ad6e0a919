"""Timestamped backups of configuration files.

Backups sit next to the original as ``<name>.<timestamp>.bak`` where the ISO
timestamp has ``:`` and ``.`` replaced by ``-``. They are kept as an audit trail
until ``cleanup_old_backups`` prunes them.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import UTC, datetime, timedelta
from pathlib import Path

from alph.models.server import BackupRecord
from alph.storage.atomic import atomic_write_bytes

logger = logging.getLogger(__name__)

_STAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 UTC timestamp with colons and periods replaced by hyphens."""
    iso = ts.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return iso.replace(":", "-").replace(".", "-")


def backup_path_for(path: Path, ts: datetime) -> Path:
    return path.with_name(f"{path.name}.{format_timestamp(ts)}.bak")


def _backup_pattern(path: Path) -> re.Pattern[str]:
    stamp = r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z"
    return re.compile(rf"^{re.escape(path.name)}\.({stamp})\.bak$")


def create_backup(path: Path) -> BackupRecord:
    """Copy ``path`` verbatim to a timestamped sibling.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Cannot back up non-existent file: {path}")

    timestamp = datetime.now(UTC)
    backup_path = backup_path_for(path, timestamp)
    # Two backups inside the same microsecond would collide; bump the clock instead.
    while backup_path.exists():
        timestamp += timedelta(microseconds=1)
        backup_path = backup_path_for(path, timestamp)

    shutil.copy2(path, backup_path)
    record = BackupRecord(
        original_path=path,
        backup_path=backup_path,
        timestamp=timestamp,
        size_bytes=backup_path.stat().st_size,
    )
    logger.debug("Backed up %s to %s (%d bytes)", path, backup_path, record.size_bytes)
    return record


def restore_backup(record: BackupRecord) -> None:
    """Atomically replace the original file with the backup's content."""
    if not record.backup_path.is_file():
        raise FileNotFoundError(f"Backup file not found: {record.backup_path}")
    atomic_write_bytes(record.original_path, record.backup_path.read_bytes())
    logger.info("Restored %s from %s", record.original_path, record.backup_path)


def list_backups(path: Path) -> list[BackupRecord]:
    """Return backups of ``path``, newest first."""
    if not path.parent.is_dir():
        return []

    pattern = _backup_pattern(path)
    records: list[BackupRecord] = []
    for candidate in path.parent.iterdir():
        match = pattern.match(candidate.name)
        if not match:
            continue
        try:
            timestamp = datetime.strptime(match.group(1), _STAMP_FORMAT).replace(tzinfo=UTC)
        except ValueError:
            continue
        records.append(
            BackupRecord(
                original_path=path,
                backup_path=candidate,
                timestamp=timestamp,
                size_bytes=candidate.stat().st_size,
            )
        )
    records.sort(key=lambda r: r.timestamp, reverse=True)
    return records


def cleanup_old_backups(
    path: Path, *, max_age: timedelta = timedelta(days=30), max_count: int = 10
) -> int:
    """Delete backups older than ``max_age`` or beyond the newest ``max_count``.

    Returns:
        Number of backups removed.
    """
    now = datetime.now(UTC)
    removed = 0
    for index, record in enumerate(list_backups(path)):
        if index < max_count and now - record.timestamp <= max_age:
            continue
        try:
            record.backup_path.unlink()
            removed += 1
        except OSError as exc:
            logger.warning("Failed to remove backup %s: %s", record.backup_path, exc)
    return removed
