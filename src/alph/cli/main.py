from __future__ import annotations

import argparse
import os
from pathlib import Path

from alph.cli.configure import configure_parser as configure_configure
from alph.cli.prune import configure_parser as configure_prune
from alph.cli.remove import configure_parser as configure_remove
from alph.cli.rollback import configure_parser as configure_rollback
from alph.cli.status import configure_parser as configure_status
from alph.cli.store import configure_parser as configure_store

_TRUTHY = {"1", "true", "TRUE", "yes", "YES"}


def build_parser() -> argparse.ArgumentParser:
    from alph import __version__

    parser = argparse.ArgumentParser(
        prog="alph",
        description="Configure MCP servers across AI coding agents",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Print version and exit",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Print full traceback on errors (or set ALPH_TRACE=1)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, help="Path to alph.toml")
    subparsers = parser.add_subparsers(dest="command")

    configure_status(subparsers)
    configure_configure(subparsers)
    configure_remove(subparsers)
    configure_rollback(subparsers)
    configure_prune(subparsers)
    configure_store(subparsers)

    return parser


def _tip_for(exc: BaseException) -> str:
    from alph.errors import LockContentionError, ParseError, PreconditionError

    if isinstance(exc, LockContentionError):
        return "Another alph process is writing alph.json; retry once it finishes."
    if isinstance(exc, PreconditionError):
        return "Use --url for http/sse servers and --command for stdio servers."
    if isinstance(exc, ParseError):
        return "Fix the file by hand or restore it with `alph rollback`."
    if isinstance(exc, FileNotFoundError) and "alph.toml" in str(exc):
        return "Check that your config file path is correct."
    return "re-run with --trace to see the full traceback."


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 2

    from alph.cli.ui import setup_logging

    setup_logging(verbose=bool(args.verbose))

    want_trace = bool(getattr(args, "trace", False)) or os.environ.get("ALPH_TRACE") in _TRUTHY
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        # Keep Ctrl-C quiet by default.
        return 130
    except Exception as exc:
        if want_trace:
            from alph.cli.ui import error_console

            error_console.print_exception()
        else:
            from alph.bridge.redact import redact_for_logs
            from alph.cli.ui import print_error

            print_error(type(exc).__name__, redact_for_logs(str(exc)), tip=_tip_for(exc))
        return 1
