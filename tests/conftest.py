"""Shared fixtures: every test runs against a throwaway home directory."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest


@pytest.fixture
def home(tmp_path: Path, monkeypatch: Any) -> Path:
    """Point HOME/XDG/APPDATA at tmp_path and clear alph environment overrides."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home_dir / ".config"))
    for var in list(os.environ):
        if var.startswith("ALPH_") or var in {"CODEX_HOME", "APPDATA", "LOCALAPPDATA"}:
            monkeypatch.delenv(var, raising=False)

    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    return home_dir
