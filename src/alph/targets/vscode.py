"""VS Code: workspace ``.vscode/mcp.json`` with a ``servers`` container."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from alph.models.server import ServerSpec
from alph.targets.base import FileTarget, native_headers
from alph.targets.paths import vscode_candidates


class VSCodeTarget(FileTarget):
    target_id: ClassVar[str] = "vscode"
    name: ClassVar[str] = "VS Code"
    container_key: ClassVar[str] = "servers"
    override_parts: ClassVar[tuple[str, ...]] = (".vscode", "mcp.json")

    def candidates(self) -> list[Path]:
        return vscode_candidates(self._system)

    def render_stdio(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        return {"type": "stdio", **super().render_stdio(spec, existing)}

    def render_remote(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry: dict[str, Any] = {"type": spec.transport, "url": spec.endpoint}
        headers = native_headers(spec)
        if headers:
            entry["headers"] = headers
        return entry
