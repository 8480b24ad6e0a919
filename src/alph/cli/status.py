from __future__ import annotations

import argparse
import asyncio

from alph.cli.common import add_common_options, load_registry, parse_agents


def configure_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("status", help="Show detected agents and their MCP servers")
    parser.set_defaults(func=run_status)
    add_common_options(parser)


async def _collect(args: argparse.Namespace) -> int:
    from alph.cli.ui import render_status

    registry = load_registry(args)
    agents = parse_agents(args.agents)
    detections = await registry.detect_all(agents, config_dir=args.config_dir)
    listings = await registry.list_all(agents, config_dir=args.config_dir)
    render_status(detections, listings)
    return 0 if all(o.error is None for o in detections) else 1


def run_status(args: argparse.Namespace) -> int:
    return asyncio.run(_collect(args))
