"""Windsurf: ``~/.codeium/windsurf/mcp_config.json`` with ``serverUrl`` entries."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from alph.models.server import ServerSpec
from alph.targets.base import FileTarget, native_headers
from alph.targets.paths import windsurf_candidates


class WindsurfTarget(FileTarget):
    target_id: ClassVar[str] = "windsurf"
    name: ClassVar[str] = "Windsurf"
    override_parts: ClassVar[tuple[str, ...]] = (".codeium", "windsurf", "mcp_config.json")
    url_keys: ClassVar[tuple[str, ...]] = ("serverUrl", "url")

    def candidates(self) -> list[Path]:
        return windsurf_candidates(self._system)

    def render_remote(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry: dict[str, Any] = {"serverUrl": spec.endpoint}
        headers = native_headers(spec)
        if headers:
            entry["headers"] = headers
        return entry
