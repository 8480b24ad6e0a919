"""Gemini CLI: ``~/.gemini/settings.json``.

Gemini distinguishes transports by key: ``httpUrl`` for streamable HTTP and
``url`` for SSE. Entries may carry ``timeout`` (ms) and stdio entries ``cwd``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, ClassVar

from alph.models.server import ServerSpec, Transport
from alph.targets.base import FileTarget, native_headers
from alph.targets.paths import gemini_candidates


class GeminiTarget(FileTarget):
    target_id: ClassVar[str] = "gemini"
    name: ClassVar[str] = "Gemini CLI"
    override_parts: ClassVar[tuple[str, ...]] = (".gemini", "settings.json")
    url_keys: ClassVar[tuple[str, ...]] = ("httpUrl", "url")

    def candidates(self) -> list[Path]:
        return gemini_candidates(self._system)

    def render_stdio(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        entry = super().render_stdio(spec, existing)
        if spec.cwd:
            entry["cwd"] = spec.cwd
        if spec.timeout_ms is not None:
            entry["timeout"] = spec.timeout_ms
        return entry

    def render_remote(self, spec: ServerSpec, existing: Mapping[str, Any] | None) -> dict[str, Any]:
        key = "httpUrl" if spec.transport == "http" else "url"
        entry: dict[str, Any] = {key: spec.endpoint}
        headers = native_headers(spec)
        if headers:
            entry["headers"] = headers
        if spec.timeout_ms is not None:
            entry["timeout"] = spec.timeout_ms
        return entry

    def parse_transport(self, entry: Mapping[str, Any]) -> Transport:
        if entry.get("command"):
            return "stdio"
        if entry.get("httpUrl"):
            return "http"
        return "sse"
