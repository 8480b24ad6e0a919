"""Cursor: ``~/.cursor/mcp.json``, project override ``<dir>/.cursor/mcp.json``."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from alph.models.server import ServerSpec
from alph.targets.base import FileTarget, native_headers
from alph.targets.paths import cursor_candidates, env_override


class CursorTarget(FileTarget):
    target_id: ClassVar[str] = "cursor"
    name: ClassVar[str] = "Cursor"
    override_parts: ClassVar[tuple[str, ...]] = (".cursor", "mcp.json")

    def candidates(self) -> list[Path]:
        return cursor_candidates(self._system)

    def write_path(self, config_dir: Path | None = None) -> Path:
        """Legacy editor settings.json files are read but never written; edits go to mcp.json."""
        path = self.resolve_path(config_dir)
        explicit = config_dir is not None or self._config_path is not None
        if explicit or env_override(self.target_id) is not None:
            return path
        return self.default_path() if path in self.candidates()[1:] else path

    def render_remote(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        # Cursor infers streamable HTTP from a bare url; SSE must be declared.
        if spec.transport == "sse":
            entry["type"] = "sse"
        entry["url"] = spec.endpoint
        entry["headers"] = native_headers(spec)
        return entry
