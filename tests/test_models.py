"""Tests for server specs and outcome summaries."""

from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from alph.errors import PreconditionError
from alph.models import (
    Authentication,
    ConfigurationOutcome,
    ServerSpec,
    parse_bearer,
    summarize_configuration,
)
from alph.targets import CursorTarget


def test_stdio_requires_command() -> None:
    spec = ServerSpec(id="fs", transport="stdio")
    with pytest.raises(PreconditionError, match="requires a command"):
        spec.check_transport()


@pytest.mark.parametrize("endpoint", [None, "", "ftp://example.com/mcp", "example.com/mcp"])
def test_remote_requires_http_url(endpoint: str | None) -> None:
    spec = ServerSpec(id="remote", transport="http", endpoint=endpoint)
    with pytest.raises(PreconditionError):
        spec.check_transport()


def test_valid_specs_pass_transport_check() -> None:
    ServerSpec(id="a", transport="stdio", command="npx").check_transport()
    ServerSpec(id="b", transport="sse", endpoint="https://example.com/sse").check_transport()


def test_empty_id_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        ServerSpec(id="", transport="stdio", command="npx")


def test_negative_timeout_rejected() -> None:
    with pytest.raises(PydanticValidationError):
        ServerSpec(id="a", command="npx", transport="stdio", timeout_ms=-1)


def test_bearer_from_authentication_wins() -> None:
    spec = ServerSpec(
        id="a",
        endpoint="https://x/y",
        headers={"Authorization": "Bearer header-token"},
        authentication=Authentication(token="explicit"),
    )
    assert spec.bearer_token() == "explicit"


def test_bearer_parsed_from_header_case_insensitive() -> None:
    spec = ServerSpec(id="a", endpoint="https://x/y", headers={"authorization": "bearer  abc "})
    assert spec.bearer_token() == "abc"
    assert spec.headers_without_bearer() == {}


def test_parse_bearer_rejects_other_schemes() -> None:
    assert parse_bearer("Basic dXNlcjpwYXNz") is None
    assert parse_bearer("Bearer") is None


def test_summarize_configuration() -> None:
    ok = CursorTarget()
    outcomes = [
        ConfigurationOutcome(target=ok, success=True),
        ConfigurationOutcome(target=ok, success=False, error="boom"),
    ]
    summary = summarize_configuration(outcomes)
    assert summary["total"] == 2
    assert summary["successful"] == 1
    assert summary["failed_targets"] == [{"id": "cursor", "error": "boom"}]
