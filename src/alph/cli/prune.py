from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta

from alph.cli.common import add_common_options, load_app_settings, parse_agents
from alph.registry import build_default_registry


def configure_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("prune", help="Delete old backups of agent config files")
    parser.set_defaults(func=run_prune)
    add_common_options(parser)
    parser.add_argument("--keep", type=int, help="Backups to keep per file (default from config)")
    parser.add_argument("--max-age-days", type=int, help="Delete backups older than this")


async def _prune(args: argparse.Namespace) -> int:
    from alph.cli.ui import print_success

    settings = load_app_settings(args)
    keep = args.keep if args.keep is not None else settings.backup.max_count
    days = args.max_age_days if args.max_age_days is not None else settings.backup.max_age_days
    registry = build_default_registry(settings)
    removed = await registry.prune_backups_all(
        parse_agents(args.agents),
        max_age=timedelta(days=days),
        max_count=keep,
        config_dir=args.config_dir,
    )
    print_success(f"Removed {sum(removed.values())} backup(s)")
    return 0


def run_prune(args: argparse.Namespace) -> int:
    return asyncio.run(_prune(args))
