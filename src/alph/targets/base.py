"""Target interface and the shared file-backed implementation.

A target is one agent's configuration file. Targets translate between
``ServerSpec`` and the agent's native entry shape and delegate every write to
``safe_edit``. A target only ever touches its own file.
"""

from __future__ import annotations

import functools
import logging
import os
from collections.abc import Callable, Mapping, MutableMapping
from pathlib import Path
from typing import Any, ClassVar, Protocol, TypeVar

from alph.errors import AlphError, ParseError, ServerNotFoundError, ValidationError
from alph.models.server import (
    Authentication,
    ServerSpec,
    TargetDescriptor,
    Transport,
    parse_bearer,
)
from alph.storage.backup import list_backups, restore_backup
from alph.storage.formats import JSON, DocumentFormat
from alph.storage.safe_edit import EditResult, read_document, restore_previous, safe_edit
from alph.targets.paths import MAX_CONFIG_BYTES, env_override

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Native numeric fields that must never be negative.
_NUMERIC_FIELDS = ("timeout", "startup_timeout_ms", "tool_timeout_sec", "timeout_ms")
_REMOTE_TYPES: dict[str, Transport] = {
    "sse": "sse",
    "http": "http",
    "streamable-http": "http",
    "streamablehttp": "http",
    "stdio": "stdio",
}


class Target(Protocol):
    """Capabilities every agent configuration target provides."""

    stdio_only: bool

    @property
    def id(self) -> str: ...

    @property
    def display_name(self) -> str: ...

    @property
    def descriptor(self) -> TargetDescriptor: ...

    def detect(self, config_dir: Path | None = None) -> Path | None:
        """Best-known config location; never raises."""
        ...

    def configure(
        self, spec: ServerSpec, backup: bool = True, *, config_dir: Path | None = None
    ) -> Path | None:
        """Upsert ``spec``. Returns the backup path when one was taken."""
        ...

    def remove(
        self, server_id: str, backup: bool = True, *, config_dir: Path | None = None
    ) -> Path | None:
        """Delete ``server_id``. Raises ServerNotFoundError when absent."""
        ...

    def list_servers(self, config_dir: Path | None = None) -> list[str]: ...

    def read_servers(self, config_dir: Path | None = None) -> list[ServerSpec]: ...

    def has_server(self, server_id: str, config_dir: Path | None = None) -> bool: ...

    def validate(self) -> bool: ...

    def rollback(self) -> Path | None: ...

    @property
    def last_written(self) -> Path | None:
        """File changed by the most recent configure or remove, if any."""
        ...


def degrade_to_empty(func: Callable[..., list[T]]) -> Callable[..., list[T]]:
    """Read-only listing calls return ``[]`` instead of raising.

    Missing, unreadable or unparsable files are an expected state for a target
    the user has never configured.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> list[T]:
        try:
            return func(*args, **kwargs)
        except (OSError, ValueError, AlphError) as exc:
            logger.debug("%s degraded to empty: %s", func.__qualname__, exc)
            return []

    return wrapper


def native_headers(spec: ServerSpec) -> dict[str, str]:
    """Headers as written to disk, with the bearer credential as Authorization."""
    headers = spec.headers_without_bearer()
    token = spec.bearer_token()
    if token:
        headers = {k: v for k, v in headers.items() if k.lower() != "authorization"}
        headers["Authorization"] = f"Bearer {token}"
    return headers


def split_headers(
    headers: Mapping[str, Any] | None,
) -> tuple[dict[str, str], Authentication | None]:
    """Split native headers into plain headers and a bearer credential."""
    plain: dict[str, str] = {}
    auth: Authentication | None = None
    for key, value in (headers or {}).items():
        value = str(value)
        if str(key).lower() == "authorization":
            token = parse_bearer(value)
            if token:
                auth = Authentication(strategy="bearer", token=token)
                continue
        plain[str(key)] = value
    return plain, auth


def _is_str_map(value: Any) -> bool:
    return isinstance(value, Mapping) and all(isinstance(k, str) for k in value)


class FileTarget:
    """Shared implementation for targets backed by a single config file.

    Subclasses set the class attributes and, where the agent's shape differs
    from the common ``{command, args, env}`` / ``{url, headers}`` layout, override
    ``render_remote`` / ``render_stdio`` / ``parse_transport``.
    """

    target_id: ClassVar[str]
    name: ClassVar[str]
    fmt: ClassVar[DocumentFormat] = JSON
    container_key: ClassVar[str] = "mcpServers"
    stdio_only: ClassVar[bool] = False
    # Path segments below an override directory.
    override_parts: ClassVar[tuple[str, ...]] = ()
    # Native keys that hold a remote endpoint, in lookup order.
    url_keys: ClassVar[tuple[str, ...]] = ("url", "serverUrl", "httpUrl")

    def __init__(self, *, config_path: Path | None = None, system: str | None = None) -> None:
        self._config_path = config_path
        self._system = system
        self._last_edit: EditResult | None = None
        self._last_path: Path | None = None

    @property
    def id(self) -> str:
        return self.target_id

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def descriptor(self) -> TargetDescriptor:
        return TargetDescriptor(id=self.target_id, display_name=self.name)

    @property
    def last_written(self) -> Path | None:
        return self._last_edit.path if self._last_edit is not None else None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.target_id!r})"

    # Paths

    def candidates(self) -> list[Path]:
        raise NotImplementedError

    def default_path(self) -> Path:
        return self.candidates()[0]

    def override_path(self, config_dir: Path) -> Path:
        return Path(config_dir).expanduser().joinpath(*self.override_parts)

    def _usable(self, path: Path) -> bool:
        try:
            if not path.is_file() or path.stat().st_size > MAX_CONFIG_BYTES:
                return False
            if not os.access(path, os.R_OK):
                return False
            read_document(path, self.fmt)
        except (OSError, ParseError):
            return False
        return True

    def resolve_path(self, config_dir: Path | None = None) -> Path:
        """Override dir, then explicit path, then ``ALPH_<ID>_CONFIG``, then candidates."""
        if config_dir is not None:
            return self.override_path(config_dir)
        if self._config_path is not None:
            return Path(self._config_path).expanduser()
        env_path = env_override(self.target_id)
        if env_path is not None:
            return env_path
        for candidate in self.candidates():
            if self._usable(candidate):
                return candidate
        return self.default_path()

    def write_path(self, config_dir: Path | None = None) -> Path:
        """File that configure and remove edit. Defaults to the resolved path."""
        return self.resolve_path(config_dir)

    def detect(self, config_dir: Path | None = None) -> Path | None:
        try:
            return self.resolve_path(config_dir)
        except (OSError, RuntimeError) as exc:
            logger.debug("Detection failed for %s: %s", self.target_id, exc)
            return None

    # Translation

    def render_stdio(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry: dict[str, Any] = {"command": spec.command}
        if spec.args:
            entry["args"] = list(spec.args)
        if spec.env:
            entry["env"] = dict(spec.env)
        return entry

    def render_remote(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry: dict[str, Any] = {"url": spec.endpoint}
        headers = native_headers(spec)
        if headers:
            entry["headers"] = headers
        return entry

    def render_entry(
        self, spec: ServerSpec, existing: Mapping[str, Any] | None = None
    ) -> MutableMapping[str, Any]:
        if spec.transport == "stdio":
            return self.render_stdio(spec, existing)
        return self.render_remote(spec, existing)

    def parse_transport(self, entry: Mapping[str, Any]) -> Transport:
        if entry.get("command"):
            return "stdio"
        declared = str(entry.get("type") or entry.get("transport") or "").lower()
        return _REMOTE_TYPES.get(declared, "http")

    def headers_of(self, entry: Mapping[str, Any]) -> Mapping[str, Any] | None:
        headers = entry.get("headers")
        return headers if isinstance(headers, Mapping) else None

    def parse_entry(self, server_id: str, entry: Mapping[str, Any]) -> ServerSpec:
        entry = self.fmt.to_plain(entry)
        transport = self.parse_transport(entry)
        headers, auth = split_headers(self.headers_of(entry))
        timeout = next(
            (entry[k] for k in _NUMERIC_FIELDS if isinstance(entry.get(k), int)), None
        )
        endpoint = next((entry[k] for k in self.url_keys if entry.get(k)), None)
        return ServerSpec(
            id=server_id,
            transport=transport,
            endpoint=None if transport == "stdio" else endpoint,
            command=entry.get("command"),
            args=[str(a) for a in entry.get("args") or []],
            cwd=entry.get("cwd"),
            env={str(k): str(v) for k, v in (entry.get("env") or {}).items()},
            headers=headers,
            timeout_ms=timeout,
            authentication=auth,
            enabled=not bool(entry.get("disabled", False)),
        )

    # Shape check

    def check_entry(self, server_id: str, entry: Any) -> str | None:
        if not isinstance(entry, Mapping):
            return f"entry '{server_id}' is not an object"
        command = entry.get("command")
        if command is not None and not isinstance(command, str):
            return f"entry '{server_id}': command must be a string"
        args = entry.get("args")
        if args is not None and (
            not isinstance(args, list) or not all(isinstance(a, str) for a in args)
        ):
            return f"entry '{server_id}': args must be a list of strings"
        for key in ("env", "headers"):
            if key in entry and not _is_str_map(entry[key]):
                return f"entry '{server_id}': {key} must be a string-keyed object"
        for key in self.url_keys:
            if key in entry and not isinstance(entry[key], str):
                return f"entry '{server_id}': {key} must be a string"
        for key in _NUMERIC_FIELDS:
            value = entry.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
                return f"entry '{server_id}': {key} must be a non-negative number"
        return None

    def check_document(
        self, document: Mapping[str, Any], server_id: str | None = None, *, present: bool = True
    ) -> str | None:
        """Return None when ``document`` is well-formed, else a reason."""
        container = document.get(self.container_key)
        if container is None:
            if server_id is not None and present:
                return f"'{self.container_key}' is missing"
            return None
        if not isinstance(container, Mapping):
            return f"'{self.container_key}' is not an object"
        for entry_id, entry in container.items():
            reason = self.check_entry(str(entry_id), entry)
            if reason:
                return reason
        if server_id is not None:
            if present and server_id not in container:
                return f"entry '{server_id}' is missing after write"
            if not present and server_id in container:
                return f"entry '{server_id}' is still present after removal"
        return None

    # Reads

    def _container(self, document: Mapping[str, Any] | None) -> Mapping[str, Any]:
        if document is None:
            return {}
        container = document.get(self.container_key)
        if container is None:
            return {}
        if not isinstance(container, Mapping):
            raise ValidationError(f"'{self.container_key}' is not an object")
        return container

    def _read(self, config_dir: Path | None) -> tuple[Path, Mapping[str, Any]]:
        path = self.resolve_path(config_dir)
        return path, self._container(read_document(path, self.fmt))

    @degrade_to_empty
    def list_servers(self, config_dir: Path | None = None) -> list[str]:
        _, container = self._read(config_dir)
        return [str(key) for key in container]

    @degrade_to_empty
    def read_servers(self, config_dir: Path | None = None) -> list[ServerSpec]:
        _, container = self._read(config_dir)
        specs: list[ServerSpec] = []
        for server_id, entry in container.items():
            if not isinstance(entry, Mapping):
                continue
            try:
                specs.append(self.parse_entry(str(server_id), entry))
            except ValueError as exc:
                logger.debug("Skipping unreadable %s entry %r: %s", self.target_id, server_id, exc)
        return specs

    def has_server(self, server_id: str, config_dir: Path | None = None) -> bool:
        """Looks at the file remove would edit. Raises ParseError when it is unparsable."""
        container = self._container(read_document(self.write_path(config_dir), self.fmt))
        return server_id in container

    # Mutations

    def check_spec(self, spec: ServerSpec) -> None:
        spec.check_transport()

    def configure(
        self, spec: ServerSpec, backup: bool = True, *, config_dir: Path | None = None
    ) -> Path | None:
        self.check_spec(spec)
        path = self.write_path(config_dir)

        def mutate(document: MutableMapping[str, Any]) -> None:
            container = document.get(self.container_key)
            if not isinstance(container, MutableMapping):
                if container is not None:
                    logger.warning("Replacing malformed '%s' in %s", self.container_key, path)
                document[self.container_key] = self.fmt.new_table()
                container = document[self.container_key]
            existing = container.get(spec.id)
            container[spec.id] = self.render_entry(
                spec, existing if isinstance(existing, Mapping) else None
            )

        result = safe_edit(
            path,
            self.fmt,
            mutate,
            backup=backup,
            check=lambda doc: self.check_document(doc, spec.id, present=True),
        )
        self._last_edit = result
        self._last_path = path
        logger.info("Configured '%s' in %s (%s)", spec.id, self.name, path)
        return result.backup_path

    def remove(
        self, server_id: str, backup: bool = True, *, config_dir: Path | None = None
    ) -> Path | None:
        path = self.write_path(config_dir)
        existing = read_document(path, self.fmt)
        # A missing id must not leave a backup behind.
        current = existing.get(self.container_key) if existing is not None else None
        if not isinstance(current, Mapping) or server_id not in current:
            raise ServerNotFoundError(server_id, path)

        def mutate(document: MutableMapping[str, Any]) -> None:
            container = document.get(self.container_key)
            if not isinstance(container, MutableMapping) or server_id not in container:
                raise ServerNotFoundError(server_id, path)
            del container[server_id]

        result = safe_edit(
            path,
            self.fmt,
            mutate,
            backup=backup,
            check=lambda doc: self.check_document(doc, server_id, present=False),
            strict_parse=True,
        )
        self._last_edit = result
        self._last_path = path
        logger.info("Removed '%s' from %s (%s)", server_id, self.name, path)
        return result.backup_path

    def validate(self) -> bool:
        """True when the current config file is absent or well-formed."""
        try:
            path = self._last_path or self.resolve_path()
            document = read_document(path, self.fmt)
        except (OSError, ParseError) as exc:
            logger.debug("Validation failed for %s: %s", self.target_id, exc)
            return False
        if document is None:
            return True
        return self.check_document(document) is None

    def rollback(self) -> Path | None:
        """Undo this instance's last edit, else restore the newest on-disk backup.

        Returns the backup path used, or None when there was nothing to restore.
        """
        if self._last_edit is not None:
            edit = self._last_edit
            restore_previous(edit)
            self._last_edit = None
            logger.info("Rolled back %s (%s)", self.name, edit.path)
            return edit.backup_path

        path = self._last_path or self.write_path()
        backups = list_backups(path)
        if not backups:
            return None
        restore_backup(backups[0])
        return backups[0].backup_path
