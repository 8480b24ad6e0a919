"""Per-target outcome records produced by batch registry calls.

Batch calls return one record per attempted target, in input order. Partial
success is the normal path; callers decide exit codes from these records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from alph.targets.base import Target


@dataclass(frozen=True)
class DetectionOutcome:
    target: Target
    detected: bool
    path: Path | None = None
    error: str | None = None

    @property
    def target_id(self) -> str:
        return self.target.id


@dataclass(frozen=True)
class ConfigurationOutcome:
    target: Target
    success: bool
    path: Path | None = None
    backup_path: Path | None = None
    error: str | None = None

    @property
    def target_id(self) -> str:
        return self.target.id


@dataclass(frozen=True)
class RemovalOutcome:
    target: Target
    success: bool
    server_id: str
    found: bool
    path: Path | None = None
    backup_path: Path | None = None
    error: str | None = None

    @property
    def target_id(self) -> str:
        return self.target.id


@dataclass(frozen=True)
class ListingOutcome:
    target: Target
    servers: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def target_id(self) -> str:
        return self.target.id


@dataclass(frozen=True)
class ValidationOutcome:
    target: Target
    valid: bool
    error: str | None = None

    @property
    def target_id(self) -> str:
        return self.target.id


@dataclass(frozen=True)
class RollbackOutcome:
    target: Target
    success: bool
    backup_path: Path | None = None
    error: str | None = None

    @property
    def target_id(self) -> str:
        return self.target.id


def summarize_detection(outcomes: list[DetectionOutcome]) -> dict[str, Any]:
    detected = [o for o in outcomes if o.detected]
    failed = [o for o in outcomes if not o.detected]
    return {
        "total": len(outcomes),
        "detected": len(detected),
        "failed": len(failed),
        "detected_targets": [o.target_id for o in detected],
        "failed_targets": [o.target_id for o in failed],
    }


def summarize_configuration(outcomes: list[ConfigurationOutcome]) -> dict[str, Any]:
    successful = [o for o in outcomes if o.success]
    failed = [o for o in outcomes if not o.success]
    return {
        "total": len(outcomes),
        "successful": len(successful),
        "failed": len(failed),
        "successful_targets": [o.target_id for o in successful],
        "failed_targets": [{"id": o.target_id, "error": o.error} for o in failed],
        "backup_paths": {o.target_id: o.backup_path for o in outcomes if o.backup_path},
    }


def summarize_removal(outcomes: list[RemovalOutcome]) -> dict[str, Any]:
    removed = [o for o in outcomes if o.success and o.found]
    absent = [o for o in outcomes if o.success and not o.found]
    failed = [o for o in outcomes if not o.success]
    return {
        "total": len(outcomes),
        "removed": len(removed),
        "not_present": len(absent),
        "failed": len(failed),
        "removed_targets": [o.target_id for o in removed],
        "failed_targets": [{"id": o.target_id, "error": o.error} for o in failed],
    }
