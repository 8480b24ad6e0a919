"""Server and target descriptions passed into the registry."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from alph.errors import PreconditionError

Transport = Literal["stdio", "http", "sse"]
WriteMode = Literal["file", "external-process"]
AuthStrategy = Literal["bearer", "basic", "none"]

REMOTE_TRANSPORTS: frozenset[str] = frozenset({"http", "sse"})

_BEARER_RE = re.compile(r"^\s*Bearer\s+(\S.*?)\s*$", re.IGNORECASE)


def parse_bearer(value: str) -> str | None:
    """Return the token from a ``Bearer <token>`` header value, if any."""
    match = _BEARER_RE.match(value)
    return match.group(1) if match else None


@dataclass(frozen=True)
class TargetDescriptor:
    id: str
    display_name: str
    write_mode: WriteMode = "file"


@dataclass(frozen=True)
class BackupRecord:
    """A verbatim copy of a file taken immediately before it was rewritten."""

    original_path: Path
    backup_path: Path
    timestamp: datetime
    size_bytes: int


class Authentication(BaseModel):
    model_config = ConfigDict(frozen=True)

    strategy: AuthStrategy = "bearer"
    token: str | None = None
    username: str | None = None
    password: str | None = None


class ServerSpec(BaseModel):
    """A caller-supplied MCP server entry to add to (or remove from) targets."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique id within a target's server set")
    transport: Transport = "http"
    endpoint: str | None = Field(default=None, description="URL for http/sse transports")
    command: str | None = Field(default=None, description="Executable for stdio transport")
    args: list[str] = Field(default_factory=list)
    cwd: str | None = None
    env: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_ms: int | None = Field(default=None, ge=0)
    authentication: Authentication | None = None
    display_name: str | None = None
    enabled: bool = True

    @property
    def is_remote(self) -> bool:
        return self.transport in REMOTE_TRANSPORTS

    def check_transport(self) -> None:
        """Raise PreconditionError unless the fields required by the transport are present.

        stdio needs a non-empty command; http and sse need a well-formed http(s) URL.
        """
        if self.transport == "stdio":
            if not self.command or not self.command.strip():
                raise PreconditionError(
                    f"Server '{self.id}': stdio transport requires a command (e.g. npx, uvx, node)"
                )
            return

        if not self.endpoint:
            raise PreconditionError(
                f"Server '{self.id}': {self.transport} transport requires an endpoint URL"
            )
        parts = urlsplit(self.endpoint)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise PreconditionError(
                f"Server '{self.id}': endpoint must be an http(s) URL, got {self.endpoint!r}"
            )

    def bearer_token(self) -> str | None:
        """Explicit bearer credential, else one parsed from an Authorization header."""
        auth = self.authentication
        if auth is not None and auth.strategy == "bearer" and auth.token:
            return auth.token
        for key, value in self.headers.items():
            if key.lower() == "authorization":
                token = parse_bearer(value)
                if token:
                    return token
        return None

    def headers_without_bearer(self) -> dict[str, str]:
        """Headers minus any ``Authorization: Bearer`` value; other schemes are kept."""
        return {
            k: v
            for k, v in self.headers.items()
            if not (k.lower() == "authorization" and parse_bearer(v))
        }
