"""Tests for the aggregate store lock file."""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Any

import pytest

from alph.errors import LockContentionError
from alph.storage import LockFile, lock_path_for


def test_lock_writes_pid_and_releases(tmp_path: Path) -> None:
    target = tmp_path / "alph.json"

    with LockFile(target) as lock:
        assert lock.held
        assert lock_path_for(target).read_text() == str(os.getpid())

    assert not lock_path_for(target).exists()


def test_held_lock_is_contention(tmp_path: Path) -> None:
    target = tmp_path / "alph.json"
    with LockFile(target):
        with pytest.raises(LockContentionError) as excinfo:
            LockFile(target).acquire()
    assert excinfo.value.holder == str(os.getpid())


def test_lock_released_when_body_raises(tmp_path: Path) -> None:
    target = tmp_path / "alph.json"
    with pytest.raises(RuntimeError):
        with LockFile(target):
            raise RuntimeError("boom")
    assert not lock_path_for(target).exists()


def test_old_lock_is_broken(tmp_path: Path) -> None:
    target = tmp_path / "alph.json"
    lock_file = lock_path_for(target)
    lock_file.write_text(str(os.getpid()))
    old = time.time() - 3600
    os.utime(lock_file, (old, old))

    with LockFile(target, stale_after=60) as lock:
        assert lock.held


def test_lock_of_dead_process_is_broken(tmp_path: Path, monkeypatch: Any) -> None:
    target = tmp_path / "alph.json"
    lock_path_for(target).write_text("999999")
    monkeypatch.setattr("alph.storage.lock._pid_alive", lambda pid: False)

    with LockFile(target) as lock:
        assert lock.held
        assert lock_path_for(target).read_text() == str(os.getpid())


def test_fresh_lock_of_live_process_is_not_stale(tmp_path: Path) -> None:
    target = tmp_path / "alph.json"
    lock_path_for(target).write_text(str(os.getpid()))

    assert not LockFile(target).is_stale()
    with pytest.raises(LockContentionError):
        LockFile(target).acquire()
