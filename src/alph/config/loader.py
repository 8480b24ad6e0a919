"""Config loader for alph.

Search order: ./alph.toml -> platform config -> legacy ~/.alph/config.toml
Uses stdlib tomllib (Python 3.11+).
"""

from __future__ import annotations

import os
import platform
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from alph.config.settings import Settings

def _legacy_config_path() -> Path:
    return Path.home() / ".alph" / "config.toml"


def get_platform_config_dir() -> Path:
    """Return the platform-specific alph config directory."""
    system = platform.system().lower()
    if system == "darwin":
        return Path.home() / "Library" / "Application Support" / "alph"
    if system == "windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "alph"
        return Path.home() / "AppData" / "Roaming" / "alph"

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / "alph"
    return Path.home() / ".config" / "alph"


def get_platform_config_path() -> Path:
    """Return the platform-specific config.toml path."""
    return get_platform_config_dir() / "config.toml"


def get_config_search_paths() -> list[Path]:
    """Return config search paths in priority order."""
    return [
        Path("./alph.toml"),
        get_platform_config_path(),
        _legacy_config_path(),
    ]


def _find_config_file() -> Path | None:
    for path in get_config_search_paths():
        if path.exists():
            return path
    return None


def _parse_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as f:
        return tomllib.load(f)


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Resolve the config path used for display or creation."""
    if config_path:
        return config_path
    return _find_config_file() or get_platform_config_path()


def _resolve_relative(value: Any, base: Path) -> Path:
    path = Path(str(value)).expanduser()
    # Resolve relative paths against the config file location
    if not path.is_absolute():
        path = base / path
    return path


def merge_cli_overrides(settings: Settings, overrides: Mapping[str, Any]) -> Settings:
    """Apply CLI overrides to loaded settings."""
    if overrides.get("parallel") is not None:
        settings.orchestrator.parallel = bool(overrides["parallel"])
    if overrides.get("rollback_on_any_failure") is not None:
        settings.orchestrator.rollback_on_any_failure = bool(overrides["rollback_on_any_failure"])
    if overrides.get("backup") is not None:
        settings.backup.enabled = bool(overrides["backup"])
    if overrides.get("use_container") is not None:
        settings.bridge.use_container = bool(overrides["use_container"])
    if overrides.get("prefer_local_bin") is not None:
        settings.bridge.prefer_local_bin = bool(overrides["prefer_local_bin"])
    if overrides.get("targets"):
        settings.targets = list(overrides["targets"])
    return settings


def load_settings(
    config_path: Path | None = None, *, cli_overrides: Mapping[str, Any] | None = None
) -> Settings:
    """Load application settings from a TOML file.

    Args:
        config_path: Explicit path to config file. If None, searches default locations.
        cli_overrides: Optional CLI overrides to apply after loading.

    Returns:
        Settings with loaded or default values.

    Raises:
        FileNotFoundError: If an explicit config_path is provided but does not exist.
        RuntimeError: If the config file cannot be parsed or validated.
    """
    if config_path:
        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at explicitly provided path: {config_path}. "
                "Ensure the file exists or omit the argument to use default search paths."
            )
        path: Path = config_path
    else:
        found_path = _find_config_file()
        if found_path is None:
            settings = Settings()
            if cli_overrides:
                settings = merge_cli_overrides(settings, cli_overrides)
            return settings
        path = found_path

    try:
        data = _parse_toml(path)
    except Exception as e:
        raise RuntimeError(f"Failed to parse configuration file at {path}: {e}") from e

    if "paths" in data and isinstance(data["paths"], dict):
        data["paths"] = {
            str(key): _resolve_relative(value, path.parent) for key, value in data["paths"].items()
        }
    bridge = data.get("bridge")
    if isinstance(bridge, dict) and "install_dir" in bridge:
        bridge["install_dir"] = _resolve_relative(bridge["install_dir"], path.parent)

    try:
        settings = Settings.model_validate(data)
    except ValueError as e:
        raise RuntimeError(f"Invalid configuration in {path}: {e}") from e

    if cli_overrides:
        settings = merge_cli_overrides(settings, cli_overrides)
    return settings
