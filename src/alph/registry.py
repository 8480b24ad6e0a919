"""Target registry and batch orchestration.

The registry holds the set of targets and runs detection, configuration and
removal across a chosen subset. Each target call runs in a worker thread raced
against a per-call timeout. Batch calls never raise for per-target failures;
they return one outcome per attempted target, in input order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import TypeVar

from alph.bridge.gateway import BridgeOptions, bridge_spec
from alph.bridge.redact import redact_for_logs
from alph.config.settings import Settings
from alph.errors import ServerNotFoundError, TargetTimeoutError
from alph.models.outcomes import (
    ConfigurationOutcome,
    DetectionOutcome,
    ListingOutcome,
    RemovalOutcome,
    RollbackOutcome,
    ValidationOutcome,
)
from alph.models.server import ServerSpec
from alph.storage.backup import cleanup_old_backups
from alph.targets import BUILTIN_TARGETS
from alph.targets.base import Target

logger = logging.getLogger(__name__)

R = TypeVar("R")
O = TypeVar("O")


@dataclass(frozen=True)
class RegistryOptions:
    detection_timeout: float = 5.0
    configuration_timeout: float = 10.0
    # False runs targets one after another; useful when diagnosing a failure.
    parallel: bool = True


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class TargetRegistry:
    def __init__(
        self,
        targets: Iterable[Target] | None = None,
        *,
        options: RegistryOptions | None = None,
        bridge: BridgeOptions | None = None,
    ) -> None:
        self.options = options or RegistryOptions()
        self.bridge = bridge or BridgeOptions.from_env()
        self._targets: dict[str, Target] = {}
        for target in targets or []:
            self.register(target)

    # Membership

    def register(self, target: Target) -> None:
        if target.id in self._targets:
            raise ValueError(f"Target '{target.id}' is already registered")
        self._targets[target.id] = target

    def unregister(self, target_id: str) -> Target | None:
        return self._targets.pop(target_id, None)

    def get(self, target_id: str) -> Target | None:
        return self._targets.get(target_id)

    def names(self) -> list[str]:
        return list(self._targets)

    def targets(self) -> list[Target]:
        return list(self._targets.values())

    def select(self, filter_ids: Iterable[str] | None = None) -> list[Target]:
        """Targets named in ``filter_ids`` (in that order), or all when None/empty.

        Unknown ids are ignored.
        """
        if not filter_ids:
            return self.targets()
        selected: list[Target] = []
        for target_id in filter_ids:
            target = self._targets.get(target_id.strip().lower())
            if target is not None and target not in selected:
                selected.append(target)
        return selected

    # Dispatch

    async def _call(
        self, operation: str, target: Target, timeout: float, func: Callable[[], R]
    ) -> R:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout)
        except TimeoutError as exc:
            # The worker thread cannot be cancelled; it finishes in the background.
            raise TargetTimeoutError(operation, target.id, timeout) from exc

    async def _dispatch(
        self, targets: list[Target], run: Callable[[Target], Awaitable[O]]
    ) -> list[O]:
        if self.options.parallel:
            return list(await asyncio.gather(*(run(t) for t in targets)))
        results: list[O] = []
        for target in targets:
            results.append(await run(target))
        return results

    # Batch operations

    async def detect_all(
        self, filter_ids: Iterable[str] | None = None, *, config_dir: Path | None = None
    ) -> list[DetectionOutcome]:
        timeout = self.options.detection_timeout

        async def run(target: Target) -> DetectionOutcome:
            try:
                path = await self._call(
                    "Detection", target, timeout, lambda: target.detect(config_dir)
                )
            except TargetTimeoutError as exc:
                return DetectionOutcome(target=target, detected=False, error=str(exc))
            except Exception as exc:
                logger.debug("Detection error for %s: %s", target.id, exc)
                return DetectionOutcome(target=target, detected=False, error=_describe(exc))
            return DetectionOutcome(target=target, detected=path is not None, path=path)

        return await self._dispatch(self.select(filter_ids), run)

    async def _resolve_targets(
        self, targets: Iterable[Target | str] | None, config_dir: Path | None
    ) -> list[Target]:
        if targets is None:
            detections = await self.detect_all(config_dir=config_dir)
            return [o.target for o in detections if o.detected]
        resolved: list[Target] = []
        for item in targets:
            target = self.get(item) if isinstance(item, str) else item
            if target is not None:
                resolved.append(target)
        return resolved

    def spec_for(self, target: Target, spec: ServerSpec) -> ServerSpec:
        """The server spec as ``target`` will receive it, bridged when the target needs stdio."""
        if target.stdio_only and spec.is_remote:
            bridged = bridge_spec(spec, self.bridge)
            logger.debug(
                "Bridged '%s' for %s: %s %s",
                spec.id,
                target.id,
                bridged.command,
                redact_for_logs(bridged.args),
            )
            return bridged
        return spec

    async def configure_all(
        self,
        spec: ServerSpec,
        targets: Iterable[Target | str] | None = None,
        *,
        rollback_on_any_failure: bool = False,
        backup: bool = True,
        config_dir: Path | None = None,
    ) -> list[ConfigurationOutcome]:
        """Upsert ``spec`` into each target.

        Raises:
            PreconditionError: The server's transport fields are invalid; no target
                is attempted.
        """
        spec.check_transport()
        selected = await self._resolve_targets(targets, config_dir)
        timeout = self.options.configuration_timeout

        async def run(target: Target) -> ConfigurationOutcome:
            def apply() -> tuple[Path | None, Path | None]:
                backup_path = target.configure(
                    self.spec_for(target, spec), backup, config_dir=config_dir
                )
                return backup_path, target.last_written

            try:
                backup_path, path = await self._call("Configuration", target, timeout, apply)
            except Exception as exc:
                logger.warning("Configuring %s failed: %s", target.id, redact_for_logs(str(exc)))
                return ConfigurationOutcome(target=target, success=False, error=_describe(exc))
            return ConfigurationOutcome(
                target=target,
                success=True,
                path=path,
                backup_path=backup_path,
            )

        outcomes = await self._dispatch(selected, run)
        if rollback_on_any_failure and any(not o.success for o in outcomes):
            await self._rollback_targets([o.target for o in outcomes if o.success])
        return outcomes

    async def remove_all(
        self,
        server_id: str,
        targets: Iterable[Target | str] | None = None,
        *,
        rollback_on_any_failure: bool = False,
        backup: bool = True,
        config_dir: Path | None = None,
    ) -> list[RemovalOutcome]:
        """Remove ``server_id`` from each target; absence is a successful no-op."""
        selected = await self._resolve_targets(targets, config_dir)
        timeout = self.options.configuration_timeout

        async def run(target: Target) -> RemovalOutcome:
            found = False
            try:
                found = await self._call(
                    "Removal", target, timeout, lambda: target.has_server(server_id, config_dir)
                )
                if not found:
                    return RemovalOutcome(
                        target=target, success=True, server_id=server_id, found=False
                    )
                def apply() -> tuple[Path | None, Path | None]:
                    backup_path = target.remove(server_id, backup, config_dir=config_dir)
                    return backup_path, target.last_written

                backup_path, path = await self._call("Removal", target, timeout, apply)
            except ServerNotFoundError:
                return RemovalOutcome(target=target, success=True, server_id=server_id, found=False)
            except Exception as exc:
                logger.warning("Removing '%s' from %s failed: %s", server_id, target.id, exc)
                return RemovalOutcome(
                    target=target,
                    success=False,
                    server_id=server_id,
                    found=found,
                    error=_describe(exc),
                )
            return RemovalOutcome(
                target=target,
                success=True,
                server_id=server_id,
                found=True,
                path=path,
                backup_path=backup_path,
            )

        outcomes = await self._dispatch(selected, run)
        if rollback_on_any_failure and any(not o.success and o.found for o in outcomes):
            await self._rollback_targets([o.target for o in outcomes if o.success and o.found])
        return outcomes

    async def _rollback_targets(self, targets: list[Target]) -> None:
        """Best-effort: failures are logged, never raised."""
        for outcome in await self.rollback_all(targets):
            if not outcome.success:
                logger.error("Rollback of %s failed: %s", outcome.target_id, outcome.error)

    async def rollback_all(
        self, targets: Iterable[Target | str] | None = None
    ) -> list[RollbackOutcome]:
        selected = self.targets() if targets is None else await self._resolve_targets(targets, None)
        timeout = self.options.configuration_timeout

        async def run(target: Target) -> RollbackOutcome:
            try:
                backup_path = await self._call("Rollback", target, timeout, target.rollback)
            except Exception as exc:
                return RollbackOutcome(target=target, success=False, error=_describe(exc))
            return RollbackOutcome(target=target, success=True, backup_path=backup_path)

        return await self._dispatch(selected, run)

    async def list_all(
        self, filter_ids: Iterable[str] | None = None, *, config_dir: Path | None = None
    ) -> list[ListingOutcome]:
        timeout = self.options.detection_timeout

        async def run(target: Target) -> ListingOutcome:
            try:
                servers = await self._call(
                    "Listing", target, timeout, lambda: target.list_servers(config_dir)
                )
            except Exception as exc:
                return ListingOutcome(target=target, error=_describe(exc))
            return ListingOutcome(target=target, servers=servers)

        return await self._dispatch(self.select(filter_ids), run)

    async def find_server_across_targets(
        self, server_id: str, *, config_dir: Path | None = None
    ) -> list[Target]:
        """Targets whose configuration currently contains ``server_id``."""
        listings = await self.list_all(config_dir=config_dir)
        return [o.target for o in listings if server_id in o.servers]

    async def read_all(
        self, filter_ids: Iterable[str] | None = None, *, config_dir: Path | None = None
    ) -> dict[str, list[ServerSpec]]:
        timeout = self.options.detection_timeout

        async def run(target: Target) -> tuple[str, list[ServerSpec]]:
            try:
                specs = await self._call(
                    "Reading", target, timeout, lambda: target.read_servers(config_dir)
                )
            except Exception as exc:
                logger.debug("Reading %s failed: %s", target.id, exc)
                specs = []
            return target.id, specs

        return dict(await self._dispatch(self.select(filter_ids), run))

    async def prune_backups_all(
        self,
        filter_ids: Iterable[str] | None = None,
        *,
        max_age: timedelta,
        max_count: int,
        config_dir: Path | None = None,
    ) -> dict[str, int]:
        """Delete old backups beside each target's config file; returns counts by target id."""
        timeout = self.options.detection_timeout

        async def run(target: Target) -> tuple[str, int]:
            def prune() -> int:
                path = target.detect(config_dir)
                if path is None or target.descriptor.write_mode != "file":
                    return 0
                return cleanup_old_backups(path, max_age=max_age, max_count=max_count)

            try:
                removed = await self._call("Pruning", target, timeout, prune)
            except Exception as exc:
                logger.warning("Pruning backups for %s failed: %s", target.id, exc)
                removed = 0
            return target.id, removed

        return dict(await self._dispatch(self.select(filter_ids), run))

    async def validate_all(
        self, filter_ids: Iterable[str] | None = None
    ) -> list[ValidationOutcome]:
        timeout = self.options.detection_timeout

        async def run(target: Target) -> ValidationOutcome:
            try:
                valid = await self._call("Validation", target, timeout, target.validate)
            except Exception as exc:
                return ValidationOutcome(target=target, valid=False, error=_describe(exc))
            return ValidationOutcome(target=target, valid=valid)

        return await self._dispatch(self.select(filter_ids), run)


def build_default_registry(settings: Settings | None = None) -> TargetRegistry:
    """Registry with the built-in targets, filtered and configured by ``settings``."""
    settings = settings or Settings()
    wanted = [t.strip().lower() for t in settings.targets if t.strip()]
    unknown = [t for t in wanted if t not in BUILTIN_TARGETS]
    if unknown:
        logger.warning("Ignoring unknown targets in settings: %s", ", ".join(unknown))

    targets: list[Target] = [
        target_cls(config_path=settings.paths.get(target_id))
        for target_id, target_cls in BUILTIN_TARGETS.items()
        if not wanted or target_id in wanted
    ]
    orchestrator = settings.orchestrator
    options = RegistryOptions(
        detection_timeout=orchestrator.detection_timeout_ms / 1000,
        configuration_timeout=orchestrator.configuration_timeout_ms / 1000,
        parallel=orchestrator.parallel,
    )
    bridge = BridgeOptions(
        version=settings.bridge.version,
        use_container=settings.bridge.use_container,
        prefer_local_bin=settings.bridge.prefer_local_bin,
        install_dir=settings.bridge.install_dir,
        image=settings.bridge.image,
    )
    return TargetRegistry(targets, options=options, bridge=bridge)
