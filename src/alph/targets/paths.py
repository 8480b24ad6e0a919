"""Per-platform configuration locations for the built-in targets.

Each target has a default path (where a new config is written when nothing is
detected) and an ordered list of detection candidates. The first candidate that
exists, is readable, is at most ``MAX_CONFIG_BYTES`` and parses wins.
"""

from __future__ import annotations

import os
import platform
from pathlib import Path

MAX_CONFIG_BYTES = 5 * 1024 * 1024


def current_system(system: str | None = None) -> str:
    return (system or platform.system()).lower()


def home() -> Path:
    return Path.home()


def env_override(target_id: str) -> Path | None:
    """``ALPH_<ID>_CONFIG`` points a target at an explicit config file."""
    value = os.environ.get(f"ALPH_{target_id.upper()}_CONFIG", "").strip()
    return Path(value).expanduser() if value else None


def _appdata() -> Path:
    return Path(os.environ.get("APPDATA") or home() / "AppData" / "Roaming")


def _xdg_config() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME") or home() / ".config")


def cursor_candidates(system: str | None = None) -> list[Path]:
    primary = home() / ".cursor" / "mcp.json"
    sys_name = current_system(system)
    if sys_name == "windows":
        local = Path(os.environ.get("LOCALAPPDATA") or home() / "AppData" / "Local")
        legacy = [
            _appdata() / "Cursor" / "User" / "settings.json",
            local / "Cursor" / "User" / "settings.json",
        ]
    elif sys_name == "darwin":
        legacy = [home() / "Library" / "Application Support" / "Cursor" / "User" / "settings.json"]
    else:
        legacy = [
            _xdg_config() / "Cursor" / "User" / "settings.json",
            home() / ".cursor" / "settings.json",
        ]
    return [primary, *legacy]


def claude_default(system: str | None = None) -> Path:
    if current_system(system) == "windows":
        return home() / ".claude" / ".claude.json"
    return home() / ".claude.json"


def claude_candidates(system: str | None = None) -> list[Path]:
    primary = claude_default(system)
    others = [
        home() / ".claude.json",
        home() / ".claude" / ".claude.json",
        home() / ".claude" / "claude.json",
        home() / ".claude" / "settings.json",
        home() / ".claude" / "settings.local.json",
    ]
    return [primary, *(p for p in others if p != primary)]


def gemini_candidates(system: str | None = None) -> list[Path]:
    return [home() / ".gemini" / "settings.json"]


def windsurf_candidates(system: str | None = None) -> list[Path]:
    return [home() / ".codeium" / "windsurf" / "mcp_config.json"]


def kiro_candidates(system: str | None = None) -> list[Path]:
    return [home() / ".kiro" / "settings" / "mcp.json"]


def vscode_candidates(system: str | None = None) -> list[Path]:
    return [Path.cwd() / ".vscode" / "mcp.json"]


def codex_home() -> Path:
    value = os.environ.get("CODEX_HOME", "").strip()
    return Path(value).expanduser() if value else home() / ".codex"


def codex_candidates(system: str | None = None) -> list[Path]:
    return [codex_home() / "config.toml"]
