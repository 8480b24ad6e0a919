"""Kiro: ``~/.kiro/settings/mcp.json``; entries carry ``disabled`` and ``autoApprove``."""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from pathlib import Path
from typing import Any, ClassVar

from alph.models.server import ServerSpec
from alph.targets.base import FileTarget
from alph.targets.paths import kiro_candidates


class KiroTarget(FileTarget):
    target_id: ClassVar[str] = "kiro"
    name: ClassVar[str] = "Kiro"
    override_parts: ClassVar[tuple[str, ...]] = (".kiro", "settings", "mcp.json")

    def candidates(self) -> list[Path]:
        return kiro_candidates(self._system)

    def render_entry(
        self, spec: ServerSpec, existing: Mapping[str, Any] | None = None
    ) -> MutableMapping[str, Any]:
        entry = dict(super().render_entry(spec, existing))
        entry["disabled"] = not spec.enabled
        # The user's per-tool approvals survive a reconfigure.
        approvals = (existing or {}).get("autoApprove")
        entry["autoApprove"] = list(approvals) if isinstance(approvals, list) else []
        return entry

    def check_entry(self, server_id: str, entry: Any) -> str | None:
        reason = super().check_entry(server_id, entry)
        if reason:
            return reason
        if "disabled" in entry and not isinstance(entry["disabled"], bool):
            return f"entry '{server_id}': disabled must be a boolean"
        if "autoApprove" in entry and not isinstance(entry["autoApprove"], list):
            return f"entry '{server_id}': autoApprove must be a list"
        return None
