from alph.config.loader import (
    get_platform_config_dir,
    get_platform_config_path,
    load_settings,
    merge_cli_overrides,
    resolve_config_path,
)
from alph.config.settings import (
    BackupConfig,
    BridgeConfig,
    OrchestratorConfig,
    Settings,
    StoreConfig,
)

__all__ = [
    "BackupConfig",
    "BridgeConfig",
    "OrchestratorConfig",
    "Settings",
    "StoreConfig",
    "get_platform_config_dir",
    "get_platform_config_path",
    "load_settings",
    "merge_cli_overrides",
    "resolve_config_path",
]
