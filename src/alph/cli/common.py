"""Argument helpers shared by the subcommands."""

from __future__ import annotations

import argparse
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from alph.config import Settings, load_settings
from alph.registry import TargetRegistry, build_default_registry


def parse_agents(value: str | None) -> list[str] | None:
    """``--agents cursor,claude`` -> ["cursor", "claude"]; None when not given."""
    if not value:
        return None
    agents = [a.strip().lower() for a in value.split(",") if a.strip()]
    return agents or None


def parse_pairs(values: list[str] | None, *, separator: str = "=") -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into an ordered mapping."""
    pairs: dict[str, str] = {}
    for raw in values or []:
        key, sep, value = raw.partition(separator)
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Expected KEY{separator}VALUE, got {raw!r}")
        pairs[key.strip()] = value
    return pairs


def add_common_options(parser: argparse.ArgumentParser, *, with_dir: bool = True) -> None:
    parser.add_argument(
        "--agents",
        help="Comma-separated agent ids to target (default: all detected agents)",
    )
    if with_dir:
        parser.add_argument(
            "--dir",
            type=Path,
            dest="config_dir",
            help="Project directory whose agent config files are used instead of the user ones",
        )


def load_app_settings(
    args: argparse.Namespace, overrides: Mapping[str, Any] | None = None
) -> Settings:
    return load_settings(getattr(args, "config", None), cli_overrides=overrides)


def load_registry(
    args: argparse.Namespace, overrides: Mapping[str, Any] | None = None
) -> TargetRegistry:
    return build_default_registry(load_app_settings(args, overrides))
