"""Codex CLI: ``$CODEX_HOME/config.toml`` (default ``~/.codex/config.toml``).

Codex only launches local stdio servers, so remote specs must be bridged by
the caller first. The file is TOML and shared with unrelated Codex settings;
tomlkit keeps those untouched.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any, ClassVar

import tomlkit

from alph.bridge.gateway import apply_startup_timeout, normalize_command
from alph.errors import PreconditionError
from alph.models.server import ServerSpec
from alph.storage.formats import TOML, DocumentFormat
from alph.targets.base import FileTarget
from alph.targets.paths import codex_candidates


class CodexTarget(FileTarget):
    target_id: ClassVar[str] = "codex"
    name: ClassVar[str] = "Codex CLI"
    fmt: ClassVar[DocumentFormat] = TOML
    container_key: ClassVar[str] = "mcp_servers"
    stdio_only: ClassVar[bool] = True
    override_parts: ClassVar[tuple[str, ...]] = (".codex", "config.toml")

    def candidates(self) -> list[Path]:
        return codex_candidates(self._system)

    def check_spec(self, spec: ServerSpec) -> None:
        if spec.transport != "stdio":
            raise PreconditionError(
                "Codex CLI only supports local MCP servers via stdio; "
                f"bridge the {spec.transport} endpoint for '{spec.id}' first"
            )
        super().check_spec(spec)

    def render_entry(
        self, spec: ServerSpec, existing: Mapping[str, Any] | None = None
    ) -> MutableMapping[str, Any]:
        command = normalize_command(spec.command or "", system=self._system)
        spec = apply_startup_timeout(spec.model_copy(update={"command": command}))
        entry = tomlkit.table()
        entry["command"] = spec.command
        if spec.args:
            entry["args"] = list(spec.args)
        if spec.env:
            env = tomlkit.inline_table()
            env.update(spec.env)
            entry["env"] = env
        if spec.timeout_ms:
            entry["startup_timeout_ms"] = spec.timeout_ms
        return entry
