"""Error taxonomy shared by targets, the edit engine and the registry.

Target-local errors (precondition, not-found, parse, validation) are raised by
targets and converted into per-target outcome records by the registry. Timeouts
are synthesized by the registry itself.
"""

from __future__ import annotations


class AlphError(Exception):
    """Base class for all errors raised by alph."""


class PreconditionError(AlphError, ValueError):
    """The transport/command/endpoint combination is invalid for a target."""


class ServerNotFoundError(AlphError, LookupError):
    """A server id is absent from a target's configuration."""

    def __init__(self, server_id: str, path: object | None = None) -> None:
        self.server_id = server_id
        self.path = path
        where = f" in {path}" if path is not None else ""
        super().__init__(f"MCP server '{server_id}' not found{where}")


class ParseError(AlphError, ValueError):
    """An existing configuration file could not be parsed in its declared format."""

    def __init__(self, path: object, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {path}: {reason}")


class ValidationError(AlphError):
    """The configuration document failed its shape check."""


class RollbackError(ValidationError):
    """Validation failed and restoring the previous content failed as well."""

    def __init__(self, original: BaseException, rollback: BaseException) -> None:
        self.original = original
        self.rollback = rollback
        super().__init__(f"{original}; rollback also failed: {rollback}")


class TargetTimeoutError(AlphError, TimeoutError):
    """A target call exceeded the registry's per-call budget."""

    def __init__(self, operation: str, target_id: str, timeout: float) -> None:
        self.operation = operation
        self.target_id = target_id
        self.timeout = timeout
        super().__init__(f"{operation} timed out after {timeout:g}s for '{target_id}'")


class LockContentionError(AlphError):
    """The aggregate store lock is held by another writer."""

    def __init__(self, lock_path: object, holder: str | None = None) -> None:
        self.lock_path = lock_path
        self.holder = holder
        held_by = f" (held by pid {holder})" if holder else ""
        super().__init__(f"{lock_path} is currently locked by another process{held_by}")
