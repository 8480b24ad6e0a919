"""Map remote (http/sse) server specs onto a local stdio gateway process.

Some agents can only spawn local stdio servers. For those, a remote endpoint is
reached through supergateway: a local process that speaks stdio to the agent and
http/sse to the remote server. This module only builds the invocation; it never
speaks the bridged protocol itself.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from alph.errors import PreconditionError
from alph.models.server import ServerSpec

logger = logging.getLogger(__name__)

GATEWAY_PACKAGE = "supergateway"
DEFAULT_GATEWAY_VERSION = "3.4.0"
DEFAULT_GATEWAY_IMAGE = "ghcr.io/supercorp-ai/supergateway"

# First run of a fetch-and-run command downloads the package; agents default to ~10s.
FETCH_AND_RUN_TIMEOUT_MS = 60_000

_PACKAGE_RUNNERS = ("npx", "yarn", "pnpm")
_FETCH_AND_RUN = frozenset({"npx", "uvx", "bunx", "pnpx"})
_DLX_RUNNERS = frozenset({"yarn", "pnpm"})


def _default_install_dir() -> Path:
    return Path.home() / ".alph-mcp"


@dataclass(frozen=True)
class BridgeOptions:
    """How a remote spec is turned into a local gateway invocation."""

    version: str = DEFAULT_GATEWAY_VERSION
    use_container: bool = False
    # None means "decide per platform" (local binary on Windows).
    prefer_local_bin: bool | None = None
    install_dir: Path = field(default_factory=_default_install_dir)
    image: str = DEFAULT_GATEWAY_IMAGE

    @classmethod
    def from_env(cls, **overrides: object) -> BridgeOptions:
        values: dict[str, object] = {}
        version = os.environ.get("ALPH_PROXY_VERSION", "").strip()
        if version:
            values["version"] = version
        install_dir = os.environ.get("ALPH_PROXY_INSTALL_DIR", "").strip()
        if install_dir:
            values["install_dir"] = Path(install_dir).expanduser()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]


def _is_windows(system: str | None) -> bool:
    return (system or platform.system()).lower() == "windows"


def extract_bearer(spec: ServerSpec) -> str | None:
    return spec.bearer_token()


def forwarded_headers(spec: ServerSpec) -> list[tuple[str, str]]:
    """Headers to forward to the gateway, bearer Authorization stripped, order preserved."""
    return [
        (key.strip(), str(value))
        for key, value in spec.headers_without_bearer().items()
        if key.strip()
    ]


def build_gateway_args(
    endpoint: str,
    transport: str,
    *,
    bearer: str | None = None,
    headers: list[tuple[str, str]] | None = None,
) -> list[str]:
    """Build the gateway argv (without the command itself).

    Raises:
        PreconditionError: For a non-remote transport or a non-http(s) endpoint.
    """
    if transport not in ("http", "sse"):
        raise PreconditionError(f"Unsupported gateway transport: {transport!r}")
    ServerSpec(id="gateway", transport=transport, endpoint=endpoint).check_transport()

    argv = ["--streamableHttp", endpoint] if transport == "http" else ["--sse", endpoint]
    if bearer:
        argv += ["--oauth2Bearer", bearer]
    for key, value in headers or []:
        argv += ["--header", f"{key}: {value}"]
    return argv


def normalize_command(command: str, *, system: str | None = None) -> str:
    """Give well-known package runners their Windows ``.cmd`` suffix.

    Agents spawn servers without a shell, so a bare ``npx`` does not resolve on
    Windows.
    """
    stripped = command.strip()
    if _is_windows(system) and stripped.lower() in _PACKAGE_RUNNERS:
        return f"{stripped.lower()}.cmd"
    return stripped


def _command_stem(command: str) -> str:
    name = command.replace("\\", "/").rsplit("/", 1)[-1].lower()
    for suffix in (".cmd", ".exe", ".bat"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def is_fetch_and_run(command: str | None, args: list[str]) -> bool:
    if not command:
        return False
    stem = _command_stem(command)
    if stem in _FETCH_AND_RUN:
        return True
    return stem in _DLX_RUNNERS and bool(args) and args[0].lower() == "dlx"


def apply_startup_timeout(spec: ServerSpec) -> ServerSpec:
    """Default the startup timeout to 60s for fetch-and-run invocations."""
    if not is_fetch_and_run(spec.command, spec.args):
        return spec
    if spec.timeout_ms is not None and spec.timeout_ms >= FETCH_AND_RUN_TIMEOUT_MS:
        return spec
    return spec.model_copy(update={"timeout_ms": FETCH_AND_RUN_TIMEOUT_MS})


def _installed_version(install_dir: Path) -> str | None:
    pkg_json = install_dir / "node_modules" / GATEWAY_PACKAGE / "package.json"
    try:
        return str(json.loads(pkg_json.read_text(encoding="utf-8")).get("version", "")).strip()
    except (OSError, ValueError):
        return None


def local_gateway_bin(install_dir: Path, *, system: str | None = None) -> Path:
    name = f"{GATEWAY_PACKAGE}.cmd" if _is_windows(system) else GATEWAY_PACKAGE
    return install_dir / "node_modules" / ".bin" / name


def ensure_local_gateway_bin(
    install_dir: Path, version: str | None = None, *, system: str | None = None
) -> Path:
    """Install a pinned gateway under ``install_dir`` if needed and return its shim.

    Raises:
        RuntimeError: If npm fails or the shim is missing afterwards.
    """
    install_dir = install_dir.expanduser().resolve()
    install_dir.mkdir(parents=True, exist_ok=True)
    bin_path = local_gateway_bin(install_dir, system=system)

    need_install = not bin_path.exists()
    if not need_install and version:
        need_install = _installed_version(install_dir) != version

    if need_install:
        package = f"{GATEWAY_PACKAGE}@{version}" if version else GATEWAY_PACKAGE
        npm = "npm.cmd" if _is_windows(system) else "npm"
        logger.info("Installing %s into %s", package, install_dir)
        try:
            subprocess.run(
                [npm, "install", "--prefix", str(install_dir), package],
                check=True,
                env=os.environ.copy(),
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            raise RuntimeError(f"Failed to install {package} into {install_dir}: {exc}") from exc

    if not bin_path.exists():
        raise RuntimeError(f"Failed to install {GATEWAY_PACKAGE} locally at {install_dir}")
    return bin_path


def bridge_spec(
    spec: ServerSpec, options: BridgeOptions | None = None, *, system: str | None = None
) -> ServerSpec:
    """Rewrite a remote spec as an equivalent local stdio gateway invocation.

    Strategy, in priority order: container image when requested, a pinned local
    install when requested (default on Windows), else a version-pinned ``npx``
    invocation. A stdio spec is returned unchanged.
    """
    if spec.transport == "stdio":
        return spec
    options = options or BridgeOptions()
    spec.check_transport()

    argv = build_gateway_args(
        spec.endpoint or "",
        spec.transport,
        bearer=extract_bearer(spec),
        headers=forwarded_headers(spec),
    )

    base = {
        "transport": "stdio",
        "endpoint": None,
        "headers": {},
        "authentication": None,
    }

    use_container = options.use_container or (spec.command or "").strip().lower() == "docker"
    if use_container:
        image = f"{options.image}:{options.version}"
        return spec.model_copy(
            update={**base, "command": "docker", "args": ["run", "--rm", "-i", image, *argv]}
        )

    prefer_local = options.prefer_local_bin
    if prefer_local is None:
        prefer_local = _is_windows(system)
    if prefer_local:
        try:
            bin_path = ensure_local_gateway_bin(options.install_dir, options.version, system=system)
        except RuntimeError as exc:
            logger.warning("Local gateway unavailable, falling back to npx: %s", exc)
        else:
            return spec.model_copy(update={**base, "command": str(bin_path), "args": argv})

    bridged = spec.model_copy(
        update={
            **base,
            "command": normalize_command("npx", system=system),
            "args": ["-y", f"{GATEWAY_PACKAGE}@{options.version}", *argv],
        }
    )
    return apply_startup_timeout(bridged)
