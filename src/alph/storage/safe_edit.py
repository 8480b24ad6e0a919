"""Safe, format-agnostic mutation of a single configuration file.

Every mutating target call goes through ``safe_edit``:

    backup -> read/parse -> mutate -> pre-write check -> atomic write
    -> re-read/re-parse/check -> done | restore previous content

A failed post-write check restores the file to its exact pre-call bytes (from
the backup when one was taken, else from an in-memory snapshot). If that
restore fails too, a ``RollbackError`` naming both failures is raised.
Calls against the same path from this process are serialized.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from alph.errors import ParseError, RollbackError, ValidationError
from alph.models.server import BackupRecord
from alph.storage.atomic import atomic_write_bytes, atomic_write_text, ensure_directory
from alph.storage.backup import create_backup, restore_backup
from alph.storage.formats import DocumentFormat

logger = logging.getLogger(__name__)

Document = MutableMapping[str, Any]
Mutator = Callable[[Document], None]
# Returns None when the document is acceptable, else a reason string.
ShapeCheck = Callable[[Document], str | None]


class EditState(str, Enum):
    idle = "idle"
    backing_up = "backing_up"
    reading = "reading"
    mutating = "mutating"
    writing = "writing"
    validating = "validating"
    rolling_back = "rolling_back"
    done = "done"
    fatal = "fatal"


@dataclass(frozen=True)
class EditResult:
    """What a completed edit changed, enough to undo it later."""

    path: Path
    backup: BackupRecord | None
    existed: bool
    previous_content: bytes | None
    state: EditState = EditState.done

    @property
    def backup_path(self) -> Path | None:
        return self.backup.backup_path if self.backup else None


_locks_guard = threading.Lock()
_path_locks: dict[Path, threading.Lock] = {}


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _path_locks[key] = lock
        return lock


def read_document(path: Path, fmt: DocumentFormat) -> Document | None:
    """Parse ``path`` with ``fmt``.

    Returns None when the file does not exist. Raises ParseError when the file
    has non-empty content that ``fmt`` rejects.
    """
    if not path.is_file():
        return None
    data = path.read_bytes()
    try:
        # UnicodeDecodeError is a ValueError too
        return fmt.parse(data.decode("utf-8"))
    except ValueError as exc:
        raise ParseError(path, str(exc)) from exc


def restore_previous(result: EditResult) -> None:
    """Put the file back exactly as it was before ``result``'s edit."""
    if result.backup is not None:
        restore_backup(result.backup)
    elif result.existed and result.previous_content is not None:
        atomic_write_bytes(result.path, result.previous_content)
    elif not result.existed:
        result.path.unlink(missing_ok=True)


def safe_edit(
    path: Path,
    fmt: DocumentFormat,
    mutate: Mutator,
    *,
    backup: bool = True,
    check: ShapeCheck | None = None,
    strict_parse: bool = False,
) -> EditResult:
    """Apply ``mutate`` to the document stored at ``path``.

    Args:
        path: Destination file, already resolved by the caller.
        fmt: Document format used to parse and serialize the file.
        mutate: In-place single-entry mutation. Errors it raises abort the edit
            with the file untouched.
        backup: Create a timestamped backup first when the file exists.
        check: Shape check run before writing and again on the re-read file.
        strict_parse: Raise ParseError for unparsable non-empty content instead
            of starting from an empty document.

    Returns:
        EditResult describing the backup and the previous content.

    Raises:
        ParseError: Unparsable content with ``strict_parse``.
        ValidationError: The shape check failed; the file is unchanged.
        RollbackError: The post-write check failed and restoring failed too.
    """
    with _lock_for(path):
        state = EditState.idle
        existed = path.is_file()
        previous = path.read_bytes() if existed else None

        record: BackupRecord | None = None
        if backup and existed:
            state = EditState.backing_up
            record = create_backup(path)

        state = EditState.reading
        try:
            document = read_document(path, fmt)
        except ParseError:
            if strict_parse:
                raise
            logger.warning("Existing %s is not valid %s; starting from empty", path, fmt.name)
            document = None
        if document is None:
            document = fmt.new_document()

        state = EditState.mutating
        mutate(document)
        if check is not None:
            reason = check(document)
            if reason:
                raise ValidationError(f"Refusing to write {path}: {reason}")

        state = EditState.writing
        ensure_directory(path.parent)
        atomic_write_text(path, fmt.dump(document))

        result = EditResult(
            path=path, backup=record, existed=existed, previous_content=previous, state=state
        )

        state = EditState.validating
        try:
            written = read_document(path, fmt)
            if written is None:
                raise ValidationError(f"{path} is missing after write")
            if check is not None:
                reason = check(written)
                if reason:
                    raise ValidationError(f"Post-write validation failed for {path}: {reason}")
        except (ParseError, ValidationError) as exc:
            state = EditState.rolling_back
            logger.warning("Validation of %s failed, restoring previous content: %s", path, exc)
            try:
                restore_previous(result)
            except OSError as rollback_exc:
                state = EditState.fatal
                logger.error("Restoring %s failed: %s", path, rollback_exc)
                raise RollbackError(exc, rollback_exc) from exc
            if isinstance(exc, ValidationError):
                raise
            raise ValidationError(f"Post-write validation failed for {path}: {exc}") from exc

        logger.debug("Edited %s (backup=%s)", path, record.backup_path if record else None)
        return EditResult(path=path, backup=record, existed=existed, previous_content=previous)
