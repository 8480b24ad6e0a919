from alph.storage.atomic import atomic_write_bytes, atomic_write_text, ensure_directory
from alph.storage.backup import (
    backup_path_for,
    cleanup_old_backups,
    create_backup,
    list_backups,
    restore_backup,
)
from alph.storage.formats import JSON, TOML, DocumentFormat, JsonFormat, TomlFormat
from alph.storage.lock import LockFile, lock_path_for
from alph.storage.safe_edit import EditResult, EditState, read_document, restore_previous, safe_edit

__all__ = [
    "JSON",
    "TOML",
    "DocumentFormat",
    "EditResult",
    "EditState",
    "JsonFormat",
    "LockFile",
    "TomlFormat",
    "atomic_write_bytes",
    "atomic_write_text",
    "backup_path_for",
    "cleanup_old_backups",
    "create_backup",
    "ensure_directory",
    "list_backups",
    "lock_path_for",
    "read_document",
    "restore_backup",
    "restore_previous",
    "safe_edit",
]
