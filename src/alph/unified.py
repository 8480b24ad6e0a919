"""The aggregate store: ``alph.json``, one place listing servers for every agent.

A project store lives at ``<cwd>/alph.json`` and a user store in the platform
config directory. Loading merges both by id (project wins). Writes are
serialized across processes with a sibling lock file and validated against a
JSON schema before they reach disk.
"""

from __future__ import annotations

import json
import logging
import shutil
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal

import jsonschema
from pydantic import BaseModel, Field

from alph.config.loader import get_platform_config_dir
from alph.errors import ParseError, ServerNotFoundError, ValidationError
from alph.models.server import ServerSpec
from alph.storage.atomic import atomic_write_text, ensure_directory
from alph.storage.backup import format_timestamp
from alph.storage.lock import DEFAULT_STALE_AFTER, LockFile

logger = logging.getLogger(__name__)

Scope = Literal["project", "user"]

STORE_FILENAME = "alph.json"
STORE_VERSION = "1"

_TRANSPORTS = ["stdio", "http", "sse"]

STORE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["mcpServers"],
    "properties": {
        "version": {"type": "string"},
        "mcpServers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id", "transport"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "displayName": {"type": "string"},
                    "enabled": {"type": "boolean"},
                    "transport": {"enum": _TRANSPORTS},
                    "endpoint": {"type": "string"},
                    "command": {"type": "string"},
                    "cwd": {"type": "string"},
                    "args": {"type": "array", "items": {"type": "string"}},
                    "env": {"type": "object", "additionalProperties": {"type": "string"}},
                    "headers": {"type": "object", "additionalProperties": {"type": "string"}},
                    "authentication": {
                        "type": "object",
                        "required": ["strategy"],
                        "properties": {
                            "strategy": {"type": "string"},
                            "token": {"type": "string"},
                            "username": {"type": "string"},
                            "password": {"type": "string"},
                        },
                    },
                    "timeout": {"type": "integer", "minimum": 0},
                },
                "allOf": [
                    {
                        "if": {"properties": {"transport": {"const": "stdio"}}},
                        "then": {"required": ["command"]},
                        "else": {"required": ["endpoint"]},
                    }
                ],
            },
        },
    },
}

# ServerSpec field -> alph.json key
_FIELD_KEYS = {
    "id": "id",
    "display_name": "displayName",
    "enabled": "enabled",
    "transport": "transport",
    "endpoint": "endpoint",
    "command": "command",
    "cwd": "cwd",
    "args": "args",
    "env": "env",
    "headers": "headers",
    "authentication": "authentication",
    "timeout_ms": "timeout",
}


def spec_to_entry(spec: ServerSpec) -> dict[str, Any]:
    data = spec.model_dump(exclude_none=True)
    entry: dict[str, Any] = {}
    for field_name, key in _FIELD_KEYS.items():
        value = data.get(field_name)
        if value is None or value == [] or value == {}:
            continue
        entry[key] = value
    return entry


def entry_to_spec(entry: dict[str, Any]) -> ServerSpec:
    data = {field_name: entry[key] for field_name, key in _FIELD_KEYS.items() if key in entry}
    return ServerSpec.model_validate(data)


class UnifiedConfig(BaseModel):
    version: str | None = STORE_VERSION
    servers: list[ServerSpec] = Field(default_factory=list)

    def get(self, server_id: str) -> ServerSpec | None:
        return next((s for s in self.servers if s.id == server_id), None)

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {}
        if self.version:
            document["version"] = self.version
        document["mcpServers"] = [spec_to_entry(s) for s in self.servers]
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> UnifiedConfig:
        return cls(
            version=document.get("version"),
            servers=[entry_to_spec(e) for e in document.get("mcpServers", [])],
        )


def validate_document(document: Any, path: Path | None = None) -> None:
    """Raise ValidationError unless ``document`` matches the store schema."""
    try:
        jsonschema.validate(instance=document, schema=STORE_SCHEMA)
    except jsonschema.ValidationError as exc:
        where = f" in {path}" if path else ""
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ValidationError(f"Invalid alph.json{where} at {location}: {exc.message}") from exc


class UnifiedStore:
    def __init__(
        self, config_dir: Path | None = None, *, stale_after: float = DEFAULT_STALE_AFTER
    ) -> None:
        self.config_dir = config_dir or get_platform_config_dir()
        self.stale_after = stale_after

    def project_path(self, cwd: Path | None = None) -> Path:
        return (cwd or Path.cwd()).resolve() / STORE_FILENAME

    def user_path(self) -> Path:
        return self.config_dir / STORE_FILENAME

    def path_for(self, scope: Scope, cwd: Path | None = None) -> Path:
        return self.user_path() if scope == "user" else self.project_path(cwd)

    def read(self, path: Path) -> UnifiedConfig | None:
        """Load one store file; None when it does not exist.

        Raises:
            ParseError: The file is not valid JSON.
            ValidationError: The file does not match the store schema.
        """
        if not path.is_file():
            return None
        try:
            text = path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(path, str(exc)) from exc
        if not text.strip():
            return UnifiedConfig()
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ParseError(path, str(exc)) from exc
        validate_document(document, path)
        return UnifiedConfig.from_document(document)

    def load(self, cwd: Path | None = None) -> tuple[UnifiedConfig, list[Path]]:
        """Merge the user store with the project store; project entries win by id."""
        merged: dict[str, ServerSpec] = {}
        sources: list[Path] = []
        version: str | None = STORE_VERSION
        for path in (self.user_path(), self.project_path(cwd)):
            config = self.read(path)
            if config is None:
                continue
            sources.append(path)
            version = config.version or version
            for spec in config.servers:
                merged[spec.id] = spec
        return UnifiedConfig(version=version, servers=list(merged.values())), sources

    def save(
        self,
        update: Callable[[UnifiedConfig], UnifiedConfig],
        *,
        scope: Scope = "project",
        cwd: Path | None = None,
        backup: bool = False,
    ) -> Path:
        """Read, update and rewrite one store file under its lock.

        Raises:
            LockContentionError: Another writer holds the lock.
            ValidationError: The updated document does not match the schema.
        """
        path = self.path_for(scope, cwd)
        ensure_directory(path.parent)
        with LockFile(path, stale_after=self.stale_after):
            current = self.read(path) or UnifiedConfig()
            updated = update(current)
            document = updated.to_document()
            validate_document(document, path)

            if backup and path.is_file():
                stamp = format_timestamp(datetime.now(UTC))
                backup_path = path.with_name(f"{path.name}.bak.{stamp}")
                try:
                    shutil.copy2(path, backup_path)
                except OSError as exc:
                    logger.warning("Failed to back up %s: %s", path, exc)

            atomic_write_text(path, json.dumps(document, indent=2, ensure_ascii=False) + "\n")
        logger.info("Saved %d server(s) to %s", len(updated.servers), path)
        return path

    def upsert(
        self,
        spec: ServerSpec,
        *,
        scope: Scope = "project",
        cwd: Path | None = None,
        backup: bool = False,
    ) -> Path:
        spec.check_transport()

        def update(config: UnifiedConfig) -> UnifiedConfig:
            servers = [s for s in config.servers if s.id != spec.id]
            index = next((i for i, s in enumerate(config.servers) if s.id == spec.id), None)
            if index is None:
                servers.append(spec)
            else:
                servers.insert(index, spec)
            return config.model_copy(update={"servers": servers})

        return self.save(update, scope=scope, cwd=cwd, backup=backup)

    def delete(
        self,
        server_id: str,
        *,
        scope: Scope = "project",
        cwd: Path | None = None,
        backup: bool = False,
    ) -> Path:
        path = self.path_for(scope, cwd)

        def update(config: UnifiedConfig) -> UnifiedConfig:
            if config.get(server_id) is None:
                raise ServerNotFoundError(server_id, path)
            servers = [s for s in config.servers if s.id != server_id]
            return config.model_copy(update={"servers": servers})

        return self.save(update, scope=scope, cwd=cwd, backup=backup)

    def import_servers(
        self,
        specs: Iterable[ServerSpec],
        *,
        scope: Scope = "project",
        cwd: Path | None = None,
        overwrite: bool = False,
        backup: bool = True,
    ) -> list[str]:
        """Copy native entries into the store. Returns the ids actually imported.

        Existing ids are kept unless ``overwrite``; entries with invalid transport
        fields are skipped.
        """
        imported: list[str] = []
        incoming: dict[str, ServerSpec] = {}
        for spec in specs:
            try:
                spec.check_transport()
            except ValueError as exc:
                logger.warning("Skipping '%s': %s", spec.id, exc)
                continue
            incoming.setdefault(spec.id, spec)

        def update(config: UnifiedConfig) -> UnifiedConfig:
            servers = list(config.servers)
            existing = {s.id: i for i, s in enumerate(servers)}
            for server_id, spec in incoming.items():
                if server_id in existing:
                    if not overwrite:
                        continue
                    servers[existing[server_id]] = spec
                else:
                    servers.append(spec)
                imported.append(server_id)
            return config.model_copy(update={"servers": servers})

        self.save(update, scope=scope, cwd=cwd, backup=backup)
        return imported
