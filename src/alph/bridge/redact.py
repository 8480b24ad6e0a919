"""Redaction of credentials before values reach a log line or the terminal."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

SENSITIVE_HEADER_KEYS: tuple[str, ...] = (
    "authorization",
    "x-api-key",
    "x-auth-token",
    "x-access-token",
    "api-key",
    "proxy-authorization",
)

_BEARER_FLAG_RE = re.compile(r"(--oauth2Bearer\s+)([^\s\"']+)", re.IGNORECASE)
_HEADER_RES = [
    (
        key,
        re.compile(
            rf"({re.escape(key)}\s*:\s*+)(?!<redacted)(.+?)(?=$|\r|\n)",
            re.IGNORECASE | re.MULTILINE,
        ),
    )
    for key in SENSITIVE_HEADER_KEYS
]
_BEARER_VALUE_RE = re.compile(r"^Bearer\s+\S+$", re.IGNORECASE)


def _redact_string(value: str) -> str:
    out = _BEARER_FLAG_RE.sub(r"\1<redacted:bearer>", value)
    for key, pattern in _HEADER_RES:
        out = pattern.sub(lambda m, key=key: f"{m.group(1)}<redacted:{key}>", out)
    return out


def _redact_mapping(value: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, item in value.items():
        lower = str(key).lower()
        if isinstance(item, str):
            if lower == "authorization" or _BEARER_VALUE_RE.match(item):
                out[key] = (
                    "Bearer <redacted:authorization>"
                    if _BEARER_VALUE_RE.match(item)
                    else "<redacted:authorization>"
                )
            elif lower in SENSITIVE_HEADER_KEYS:
                out[key] = f"<redacted:{lower}>"
            else:
                out[key] = _redact_string(item)
        else:
            out[key] = redact_for_logs(item)
    return out


def _redact_argv(argv: list[Any] | tuple[Any, ...]) -> list[Any]:
    out: list[Any] = []
    skip_next = False
    for part in argv:
        if skip_next:
            out.append("<redacted:bearer>")
            skip_next = False
            continue
        if isinstance(part, str) and part.lower() == "--oauth2bearer":
            out.append(part)
            skip_next = True
            continue
        out.append(redact_for_logs(part))
    return out


def redact_for_logs(value: Any) -> Any:
    """Return a copy of ``value`` with bearer tokens and sensitive headers masked.

    Strings, argv-style lists and (nested) mappings are handled; anything else is
    returned unchanged.
    """
    if isinstance(value, str):
        return _redact_string(value)
    if isinstance(value, Mapping):
        return _redact_mapping(value)
    if isinstance(value, list | tuple):
        return _redact_argv(value)
    return value
