"""``alph store``: inspect the aggregate alph.json and migrate native entries into it."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from alph.cli.common import add_common_options, load_app_settings, parse_agents
from alph.models.server import ServerSpec
from alph.registry import build_default_registry
from alph.unified import UnifiedStore


def configure_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("store", help="Manage the aggregate alph.json store")
    store_sub = parser.add_subparsers(dest="store_command")

    list_parser = store_sub.add_parser("list", help="List servers in the merged store")
    list_parser.set_defaults(func=run_store_list)
    list_parser.add_argument("--cwd", type=Path, help="Project directory (default: current)")

    import_parser = store_sub.add_parser(
        "import", help="Copy servers configured in agents into alph.json"
    )
    import_parser.set_defaults(func=run_store_import)
    import_parser.add_argument(
        "--scope", choices=["project", "user"], default="project", help="Store to write"
    )
    import_parser.add_argument("--cwd", type=Path, help="Project directory (default: current)")
    import_parser.add_argument(
        "--overwrite", action="store_true", help="Replace servers already in the store"
    )
    add_common_options(import_parser)


def _store(args: argparse.Namespace) -> UnifiedStore:
    settings = load_app_settings(args)
    return UnifiedStore(stale_after=settings.store.lock_stale_seconds)


def run_store_list(args: argparse.Namespace) -> int:
    from rich.table import Table

    from alph.cli.ui import console, print_warning

    config, sources = _store(args).load(args.cwd)
    if not sources:
        print_warning("No alph.json found")
        return 0

    table = Table(title="alph.json", title_style="heading", header_style="bold")
    table.add_column("Id", style="bold white")
    table.add_column("Transport", style="cyan")
    table.add_column("Target")
    table.add_column("Enabled", justify="center")
    for spec in config.servers:
        where = spec.endpoint if spec.is_remote else " ".join([spec.command or "", *spec.args])
        table.add_row(spec.id, spec.transport, where, "yes" if spec.enabled else "no")
    console.print(table)
    console.print(f"[info]Sources: {', '.join(str(p) for p in sources)}[/info]")
    return 0


async def _collect_native(args: argparse.Namespace) -> list[ServerSpec]:
    registry = build_default_registry(load_app_settings(args))
    found = await registry.read_all(parse_agents(args.agents), config_dir=args.config_dir)
    specs: list[ServerSpec] = []
    for target_specs in found.values():
        specs.extend(target_specs)
    return specs


def run_store_import(args: argparse.Namespace) -> int:
    from alph.cli.ui import print_success, print_warning

    specs = asyncio.run(_collect_native(args))
    if not specs:
        print_warning("No servers found in agent configs")
        return 0
    store = _store(args)
    imported = store.import_servers(
        specs, scope=args.scope, cwd=args.cwd, overwrite=args.overwrite
    )
    print_success(
        f"Imported {len(imported)} server(s) into {store.path_for(args.scope, args.cwd)}"
    )
    return 0
