"""Tests for config loader."""

from __future__ import annotations

from pathlib import Path
from textwrap import dedent
from typing import Any

import pytest

from alph.config import Settings, load_settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.orchestrator.detection_timeout_ms == 5000
    assert settings.orchestrator.configuration_timeout_ms == 10000
    assert settings.orchestrator.parallel is True
    assert settings.backup.enabled is True
    assert settings.bridge.version == "3.4.0"
    assert settings.store.lock_stale_seconds == 300
    assert settings.targets == []


def test_load_settings_no_file_returns_defaults(home: Path) -> None:
    assert load_settings() == Settings()


def test_load_settings_from_toml(home: Path, tmp_path: Path) -> None:
    config_file = tmp_path / "alph.toml"
    config_file.write_text(
        dedent("""
        targets = ["cursor", "codex"]

        [orchestrator]
        detection_timeout_ms = 2000
        parallel = false

        [backup]
        max_count = 3

        [bridge]
        version = "3.5.0"
        install_dir = "gateway"

        [paths]
        cursor = "configs/cursor.json"
        """)
    )

    settings = load_settings(config_file)

    assert settings.targets == ["cursor", "codex"]
    assert settings.orchestrator.detection_timeout_ms == 2000
    assert settings.orchestrator.parallel is False
    assert settings.backup.max_count == 3
    assert settings.bridge.version == "3.5.0"
    assert settings.bridge.install_dir == tmp_path / "gateway"
    assert settings.paths["cursor"] == tmp_path / "configs" / "cursor.json"


def test_search_finds_project_file(home: Path) -> None:
    Path("alph.toml").write_text("[orchestrator]\nparallel = false\n")
    assert load_settings().orchestrator.parallel is False


def test_legacy_proxy_section_is_accepted(home: Path, tmp_path: Path) -> None:
    config_file = tmp_path / "alph.toml"
    config_file.write_text('[proxy]\nuse_container = true\n')
    assert load_settings(config_file).bridge.use_container is True


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="explicitly provided path"):
        load_settings(tmp_path / "nope.toml")


def test_parse_error_is_wrapped(tmp_path: Path) -> None:
    config_file = tmp_path / "alph.toml"
    config_file.write_text("[orchestrator\n")
    with pytest.raises(RuntimeError, match="Failed to parse"):
        load_settings(config_file)


def test_invalid_values_are_wrapped(home: Path, tmp_path: Path) -> None:
    config_file = tmp_path / "alph.toml"
    config_file.write_text("[orchestrator]\ndetection_timeout_ms = 0\n")
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_settings(config_file)


def test_env_overrides_bridge(home: Path, monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setenv("ALPH_PROXY_VERSION", "9.0.0")
    monkeypatch.setenv("ALPH_PROXY_INSTALL_DIR", str(tmp_path / "bin"))

    settings = Settings()

    assert settings.bridge.version == "9.0.0"
    assert settings.bridge.install_dir == tmp_path / "bin"


def test_cli_overrides_win(home: Path) -> None:
    overrides = {"parallel": False, "backup": False, "targets": ["kiro"], "use_container": None}
    settings = load_settings(cli_overrides=overrides)
    assert settings.orchestrator.parallel is False
    assert settings.backup.enabled is False
    assert settings.targets == ["kiro"]
    assert settings.bridge.use_container is False
