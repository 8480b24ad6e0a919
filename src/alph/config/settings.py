from __future__ import annotations

import os
from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field, model_validator

from alph.bridge.gateway import DEFAULT_GATEWAY_IMAGE, DEFAULT_GATEWAY_VERSION


class OrchestratorConfig(BaseModel):
    detection_timeout_ms: int = Field(default=5_000, ge=1)
    configuration_timeout_ms: int = Field(default=10_000, ge=1)
    parallel: bool = True
    rollback_on_any_failure: bool = False


class BackupConfig(BaseModel):
    enabled: bool = True
    max_count: int = Field(default=10, ge=1)
    max_age_days: int = Field(default=30, ge=0)


def _default_install_dir() -> Path:
    return Path.home() / ".alph-mcp"


class BridgeConfig(BaseModel):
    version: str = DEFAULT_GATEWAY_VERSION
    use_container: bool = False
    prefer_local_bin: bool | None = None
    install_dir: Path = Field(default_factory=_default_install_dir)
    image: str = DEFAULT_GATEWAY_IMAGE


class StoreConfig(BaseModel):
    lock_stale_seconds: float = Field(default=300.0, gt=0)


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    # Empty means every built-in target.
    targets: list[str] = Field(default_factory=list)
    # Per-target config file overrides, keyed by target id.
    paths: dict[str, Path] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _coerce_legacy_fields(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        # Older configs spelled the bridge section "proxy".
        if "proxy" in data:
            proxy = data.pop("proxy")
            data.setdefault("bridge", proxy)
        if isinstance(data.get("targets"), str):
            data["targets"] = [t.strip() for t in data["targets"].split(",") if t.strip()]
        return data

    @model_validator(mode="after")
    def _apply_env_overrides(self) -> Settings:
        if os.environ.get("ALPH_PROXY_VERSION", "").strip():
            self.bridge.version = os.environ["ALPH_PROXY_VERSION"].strip()
        if os.environ.get("ALPH_PROXY_INSTALL_DIR", "").strip():
            self.bridge.install_dir = Path(os.environ["ALPH_PROXY_INSTALL_DIR"]).expanduser()
        return self
