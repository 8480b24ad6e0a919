"""Claude Code: ``~/.claude.json`` (user) or ``<dir>/.mcp.json`` (project)."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from alph.models.server import ServerSpec
from alph.targets.base import FileTarget, native_headers
from alph.targets.paths import claude_candidates, claude_default


class ClaudeTarget(FileTarget):
    target_id: ClassVar[str] = "claude"
    name: ClassVar[str] = "Claude Code"
    override_parts: ClassVar[tuple[str, ...]] = (".mcp.json",)

    def candidates(self) -> list[Path]:
        return claude_candidates(self._system)

    def default_path(self) -> Path:
        return claude_default(self._system)

    def render_stdio(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        return {"type": "stdio", **super().render_stdio(spec, existing)}

    def render_remote(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry: dict[str, Any] = {"type": spec.transport, "url": spec.endpoint}
        headers = native_headers(spec)
        if headers:
            entry["headers"] = headers
        return entry
