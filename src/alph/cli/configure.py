from __future__ import annotations

import argparse
import asyncio

from alph.cli.common import add_common_options, load_app_settings, parse_agents, parse_pairs
from alph.models.server import Authentication, ServerSpec
from alph.registry import build_default_registry


def configure_parser(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("configure", help="Add or update an MCP server in agent configs")
    parser.set_defaults(func=run_configure)
    parser.add_argument("--id", required=True, dest="server_id", help="Server id")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", help="Remote endpoint (http or sse transport)")
    source.add_argument("--command", help="Executable for a local stdio server")
    parser.add_argument(
        "--transport",
        choices=["http", "sse"],
        default="http",
        help="Remote transport used with --url",
    )
    parser.add_argument(
        "--arg", action="append", dest="server_args", default=[], help="Argument for --command"
    )
    parser.add_argument("--bearer", help="Bearer token sent as the Authorization header")
    parser.add_argument(
        "--header", action="append", default=[], metavar="K=V", help="Extra request header"
    )
    parser.add_argument(
        "--env", action="append", default=[], metavar="K=V", help="Environment variable"
    )
    parser.add_argument("--cwd", help="Working directory for a stdio server")
    parser.add_argument("--timeout", type=int, help="Startup/request timeout in milliseconds")
    add_common_options(parser)
    parser.add_argument(
        "--no-backup", dest="backup", action="store_false", default=None, help="Skip backups"
    )
    parser.add_argument(
        "--rollback-on-failure",
        action="store_true",
        default=None,
        help="Restore every agent if any agent fails",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Configure agents one at a time instead of concurrently",
    )
    parser.add_argument(
        "--proxy-docker",
        action="store_true",
        default=None,
        help="Bridge remote servers for stdio-only agents through the gateway container image",
    )
    parser.add_argument(
        "--proxy-local-bin",
        action="store_true",
        default=None,
        help="Bridge through a locally installed, version-pinned gateway",
    )


def build_spec(args: argparse.Namespace) -> ServerSpec:
    auth = Authentication(strategy="bearer", token=args.bearer) if args.bearer else None
    if args.url:
        return ServerSpec(
            id=args.server_id,
            transport=args.transport,
            endpoint=args.url,
            headers=parse_pairs(args.header),
            env=parse_pairs(args.env),
            timeout_ms=args.timeout,
            authentication=auth,
        )
    return ServerSpec(
        id=args.server_id,
        transport="stdio",
        command=args.command,
        args=list(args.server_args),
        cwd=args.cwd,
        env=parse_pairs(args.env),
        timeout_ms=args.timeout,
    )


async def _configure(args: argparse.Namespace) -> int:
    from alph.cli.ui import print_success, print_warning, render_configuration

    overrides = {
        "backup": args.backup,
        "rollback_on_any_failure": args.rollback_on_failure,
        "parallel": False if args.sequential else None,
        "use_container": args.proxy_docker,
        "prefer_local_bin": args.proxy_local_bin,
    }
    settings = load_app_settings(args, overrides)
    registry = build_default_registry(settings)
    spec = build_spec(args)

    outcomes = await registry.configure_all(
        spec,
        parse_agents(args.agents),
        rollback_on_any_failure=settings.orchestrator.rollback_on_any_failure,
        backup=settings.backup.enabled,
        config_dir=args.config_dir,
    )
    if not outcomes:
        print_warning("No agents detected; nothing was configured.")
        return 1
    render_configuration(outcomes)
    if all(o.success for o in outcomes):
        print_success(f"Configured '{spec.id}' in {len(outcomes)} agent(s)")
        return 0
    return 1


def run_configure(args: argparse.Namespace) -> int:
    return asyncio.run(_configure(args))
