from alph.bridge.gateway import (
    DEFAULT_GATEWAY_IMAGE,
    DEFAULT_GATEWAY_VERSION,
    FETCH_AND_RUN_TIMEOUT_MS,
    BridgeOptions,
    apply_startup_timeout,
    bridge_spec,
    build_gateway_args,
    ensure_local_gateway_bin,
    extract_bearer,
    forwarded_headers,
    is_fetch_and_run,
    normalize_command,
)
from alph.bridge.redact import SENSITIVE_HEADER_KEYS, redact_for_logs

__all__ = [
    "DEFAULT_GATEWAY_IMAGE",
    "DEFAULT_GATEWAY_VERSION",
    "FETCH_AND_RUN_TIMEOUT_MS",
    "SENSITIVE_HEADER_KEYS",
    "BridgeOptions",
    "apply_startup_timeout",
    "bridge_spec",
    "build_gateway_args",
    "ensure_local_gateway_bin",
    "extract_bearer",
    "forwarded_headers",
    "is_fetch_and_run",
    "normalize_command",
    "redact_for_logs",
]
