"""Sibling lock file guarding the aggregate store.

The lock is ``<path>.lock`` created with O_CREAT|O_EXCL and holding the owner's
pid. A lock is considered stale when its pid is no longer alive (POSIX only) or
when it is older than ``stale_after`` seconds; a stale lock is broken once and
acquisition retried once. Anything else is contention and fails immediately.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from contextlib import suppress
from pathlib import Path
from types import TracebackType

from alph.errors import LockContentionError

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = 300.0


def lock_path_for(path: Path) -> Path:
    return path.with_name(path.name + ".lock")


def _pid_alive(pid: int) -> bool:
    if sys.platform == "win32":
        # os.kill(pid, 0) terminates the process on Windows; rely on age instead.
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class LockFile:
    def __init__(self, path: Path, *, stale_after: float = DEFAULT_STALE_AFTER) -> None:
        self.target = path
        self.path = lock_path_for(path)
        self.stale_after = stale_after
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def _read_holder(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8").strip() or None
        except (OSError, UnicodeDecodeError):
            return None

    def is_stale(self) -> bool:
        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            return False
        if age > self.stale_after:
            return True
        holder = self._read_holder()
        if holder and holder.isdigit():
            return not _pid_alive(int(holder))
        return False

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(str(os.getpid()))
        return True

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self._try_create():
            self._held = True
            return

        if self.is_stale():
            logger.warning(
                "Breaking stale lock %s (holder %s)", self.path, self._read_holder() or "unknown"
            )
            with suppress(FileNotFoundError):
                self.path.unlink()
            if self._try_create():
                self._held = True
                return

        raise LockContentionError(self.target, self._read_holder())

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to release lock %s: %s", self.path, exc)

    def __enter__(self) -> LockFile:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
