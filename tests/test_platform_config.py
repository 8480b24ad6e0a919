"""Where alph keeps its own config.toml and user-level alph.json on each platform."""

from __future__ import annotations

import platform
from pathlib import Path
from typing import Any

import pytest

from alph.config import get_platform_config_dir, get_platform_config_path, resolve_config_path
from alph.unified import UnifiedStore


@pytest.mark.parametrize(
    ("system", "env", "expected"),
    [
        ("Darwin", {}, Path("Library") / "Application Support" / "alph"),
        ("Linux", {"XDG_CONFIG_HOME": "/tmp/xdg"}, Path("/tmp/xdg/alph")),
        ("Linux", {}, Path(".config") / "alph"),
        ("Windows", {"APPDATA": "/mnt/c/Roaming"}, Path("/mnt/c/Roaming/alph")),
        ("Windows", {}, Path("AppData") / "Roaming" / "alph"),
    ],
)
def test_config_dir_per_platform(
    home: Path, monkeypatch: Any, system: str, env: dict[str, str], expected: Path
) -> None:
    monkeypatch.setattr(platform, "system", lambda: system)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    config_dir = get_platform_config_dir()

    assert config_dir == (expected if expected.is_absolute() else home / expected)
    assert get_platform_config_path() == config_dir / "config.toml"


def test_user_store_lives_beside_config(home: Path, monkeypatch: Any) -> None:
    monkeypatch.setattr(platform, "system", lambda: "Darwin")
    store = UnifiedStore()
    assert store.user_path() == home / "Library" / "Application Support" / "alph" / "alph.json"


def test_resolve_config_path_prefers_project_file(home: Path) -> None:
    assert resolve_config_path() == get_platform_config_path()
    Path("alph.toml").write_text("")
    assert resolve_config_path() == Path("./alph.toml")
    assert resolve_config_path(Path("/etc/alph.toml")) == Path("/etc/alph.toml")
