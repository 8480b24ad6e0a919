from __future__ import annotations

import argparse
import asyncio

from alph.cli.common import add_common_options, load_app_settings, parse_agents
from alph.registry import build_default_registry


def configure_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("remove", help="Remove an MCP server from agent configs")
    parser.set_defaults(func=run_remove)
    parser.add_argument("--id", required=True, dest="server_id", help="Server id to remove")
    add_common_options(parser)
    parser.add_argument(
        "--no-backup", dest="backup", action="store_false", default=None, help="Skip backups"
    )
    parser.add_argument(
        "--rollback-on-failure",
        action="store_true",
        default=None,
        help="Restore every agent if removal fails anywhere",
    )


async def _remove(args: argparse.Namespace) -> int:
    from alph.cli.ui import print_success, print_warning, render_removal

    settings = load_app_settings(
        args, {"backup": args.backup, "rollback_on_any_failure": args.rollback_on_failure}
    )
    registry = build_default_registry(settings)
    outcomes = await registry.remove_all(
        args.server_id,
        parse_agents(args.agents),
        rollback_on_any_failure=settings.orchestrator.rollback_on_any_failure,
        backup=settings.backup.enabled,
        config_dir=args.config_dir,
    )
    render_removal(outcomes)
    if not any(o.found for o in outcomes):
        print_warning(f"'{args.server_id}' was not configured in any agent")
    elif all(o.success for o in outcomes):
        removed = sum(1 for o in outcomes if o.found)
        print_success(f"Removed '{args.server_id}' from {removed} agent(s)")
    return 0 if all(o.success for o in outcomes) else 1


def run_remove(args: argparse.Namespace) -> int:
    return asyncio.run(_remove(args))
