from __future__ import annotations

import argparse
import asyncio

from alph.cli.common import add_common_options, load_registry, parse_agents


def configure_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "rollback", help="Restore agent configs from their most recent backup"
    )
    parser.set_defaults(func=run_rollback)
    add_common_options(parser, with_dir=False)


async def _rollback(args: argparse.Namespace) -> int:
    from alph.cli.ui import render_rollback

    registry = load_registry(args)
    agents = parse_agents(args.agents)
    outcomes = await registry.rollback_all(agents)
    render_rollback(outcomes)
    return 0 if all(o.success for o in outcomes) else 1


def run_rollback(args: argparse.Namespace) -> int:
    return asyncio.run(_rollback(args))
