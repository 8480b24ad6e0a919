"""Tests for the agent configuration targets."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

import pytest

from alph.errors import ParseError, PreconditionError, ServerNotFoundError
from alph.models import Authentication, ServerSpec
from alph.storage import list_backups
from alph.targets import (
    ClaudeTarget,
    CodexTarget,
    CursorTarget,
    FileTarget,
    GeminiTarget,
    KiroTarget,
    VSCodeTarget,
    WindsurfTarget,
)

JSON_TARGETS: list[type[FileTarget]] = [
    CursorTarget,
    ClaudeTarget,
    GeminiTarget,
    WindsurfTarget,
    KiroTarget,
    VSCodeTarget,
]

REMOTE = ServerSpec(
    id="linear",
    transport="http",
    endpoint="https://mcp.linear.app/mcp",
    headers={"X-Team": "core"},
    authentication=Authentication(strategy="bearer", token="abc123"),
)

LOCAL = ServerSpec(
    id="filesystem",
    transport="stdio",
    command="node",
    args=["server.js", "--root", "/tmp"],
    env={"DEBUG": "1"},
)


def _load(path: Path) -> dict[str, Any]:
    return json.loads(path.read_text())


@pytest.mark.parametrize("target_cls", JSON_TARGETS)
def test_remote_round_trip(target_cls: type[FileTarget], home: Path, tmp_path: Path) -> None:
    target = target_cls()
    project = tmp_path / "project"

    target.configure(REMOTE, config_dir=project)

    [read_back] = target.read_servers(project)
    assert read_back == REMOTE
    path = target.override_path(project)
    entry = _load(path)[target.container_key]["linear"]
    assert entry["headers"]["Authorization"] == "Bearer abc123"


@pytest.mark.parametrize("target_cls", JSON_TARGETS)
def test_stdio_round_trip(target_cls: type[FileTarget], home: Path, tmp_path: Path) -> None:
    target = target_cls()
    project = tmp_path / "project"

    target.configure(LOCAL, config_dir=project)

    [read_back] = target.read_servers(project)
    assert read_back == LOCAL
    assert target.list_servers(project) == ["filesystem"]
    assert target.has_server("filesystem", project)


@pytest.mark.parametrize("target_cls", [*JSON_TARGETS, CodexTarget])
def test_invalid_spec_leaves_file_unchanged(
    target_cls: type[FileTarget], home: Path, tmp_path: Path
) -> None:
    target = target_cls()
    project = tmp_path / "project"
    path = target.override_path(project)
    path.parent.mkdir(parents=True)
    original = b"# untouched\n" if target.fmt.name == "toml" else b'{"untouched": true}'
    path.write_bytes(original)

    with pytest.raises(PreconditionError):
        target.configure(ServerSpec(id="bad", transport="stdio"), config_dir=project)

    assert path.read_bytes() == original
    assert list_backups(path) == []


def test_configure_is_idempotent_and_backs_up_second_write(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    project = tmp_path / "project"

    assert target.configure(REMOTE, config_dir=project) is None
    path = target.override_path(project)
    first = path.read_bytes()

    backup = target.configure(REMOTE, config_dir=project)

    assert path.read_bytes() == first
    assert backup is not None and backup.read_bytes() == first


def test_configure_preserves_unrelated_keys(home: Path, tmp_path: Path) -> None:
    target = ClaudeTarget()
    project = tmp_path / "project"
    path = target.override_path(project)
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"theme": "dark", "mcpServers": {"other": {"command": "uvx"}}}))

    target.configure(REMOTE, config_dir=project)

    data = _load(path)
    assert data["theme"] == "dark"
    assert list(data["mcpServers"]) == ["other", "linear"]
    assert data["mcpServers"]["other"] == {"command": "uvx"}


def test_remove_nonexistent_id_leaves_file_unchanged(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    project = tmp_path / "project"
    target.configure(LOCAL, config_dir=project)
    path = target.override_path(project)
    before = path.read_bytes()

    with pytest.raises(ServerNotFoundError):
        target.remove("nope", config_dir=project)

    assert path.read_bytes() == before
    assert list_backups(path) == []


def test_remove_from_missing_file_is_not_found(home: Path, tmp_path: Path) -> None:
    with pytest.raises(ServerNotFoundError):
        CursorTarget().remove("anything", config_dir=tmp_path / "empty")


def test_remove_from_unparsable_file_is_parse_error(home: Path, tmp_path: Path) -> None:
    target = WindsurfTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{broken")

    with pytest.raises(ParseError):
        target.remove("x", config_dir=tmp_path)
    assert path.read_text() == "{broken"


def test_remove_deletes_only_that_entry(home: Path, tmp_path: Path) -> None:
    target = GeminiTarget()
    target.configure(LOCAL, config_dir=tmp_path)
    target.configure(REMOTE, config_dir=tmp_path)

    backup = target.remove("linear", config_dir=tmp_path)

    assert backup is not None
    assert target.list_servers(tmp_path) == ["filesystem"]


def test_cursor_declares_sse(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    spec = ServerSpec(id="events", transport="sse", endpoint="https://x.dev/sse")
    target.configure(spec, config_dir=tmp_path)

    entry = _load(target.override_path(tmp_path))["mcpServers"]["events"]
    assert entry["type"] == "sse"
    assert target.read_servers(tmp_path)[0].transport == "sse"


def test_gemini_uses_http_url_key_for_http(home: Path, tmp_path: Path) -> None:
    target = GeminiTarget()
    target.configure(REMOTE.model_copy(update={"timeout_ms": 30000}), config_dir=tmp_path)
    target.configure(
        ServerSpec(id="events", transport="sse", endpoint="https://x.dev/sse"),
        config_dir=tmp_path,
    )

    servers = _load(target.override_path(tmp_path))["mcpServers"]
    assert servers["linear"]["httpUrl"] == "https://mcp.linear.app/mcp"
    assert servers["linear"]["timeout"] == 30000
    assert servers["events"] == {"url": "https://x.dev/sse"}


def test_windsurf_uses_server_url(home: Path, tmp_path: Path) -> None:
    target = WindsurfTarget()
    target.configure(REMOTE, config_dir=tmp_path)
    entry = _load(target.override_path(tmp_path))["mcpServers"]["linear"]
    assert entry["serverUrl"] == "https://mcp.linear.app/mcp"
    assert "url" not in entry


def test_vscode_uses_servers_container(home: Path, tmp_path: Path) -> None:
    target = VSCodeTarget()
    target.configure(LOCAL, config_dir=tmp_path)
    data = _load(tmp_path / ".vscode" / "mcp.json")
    assert data["servers"]["filesystem"]["type"] == "stdio"
    assert "mcpServers" not in data


def test_kiro_keeps_auto_approve_on_reconfigure(home: Path, tmp_path: Path) -> None:
    target = KiroTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps({"mcpServers": {"linear": {"url": "https://old", "autoApprove": ["search"]}}})
    )

    target.configure(REMOTE.model_copy(update={"enabled": False}), config_dir=tmp_path)

    entry = _load(path)["mcpServers"]["linear"]
    assert entry["autoApprove"] == ["search"]
    assert entry["disabled"] is True
    assert entry["url"] == "https://mcp.linear.app/mcp"


def test_codex_rejects_remote_spec(home: Path, tmp_path: Path) -> None:
    target = CodexTarget()
    with pytest.raises(PreconditionError, match="stdio"):
        target.configure(REMOTE, config_dir=tmp_path)
    assert not target.override_path(tmp_path).exists()


def test_codex_preserves_toml_and_applies_startup_timeout(
    home: Path, tmp_path: Path, monkeypatch: Any
) -> None:
    codex_home = tmp_path / "codex"
    codex_home.mkdir()
    config = codex_home / "config.toml"
    config.write_text('# my settings\nmodel = "o3"\n\n[history]\npersistence = "none"\n')
    monkeypatch.setenv("CODEX_HOME", str(codex_home))
    target = CodexTarget(system="linux")

    target.configure(
        ServerSpec(
            id="docs", transport="stdio", command="npx", args=["-y", "docs-mcp"], env={"A": "1"}
        )
    )

    text = config.read_text()
    assert text.startswith("# my settings\nmodel = \"o3\"")
    data = tomllib.loads(text)
    assert data["history"] == {"persistence": "none"}
    assert data["mcp_servers"]["docs"] == {
        "command": "npx",
        "args": ["-y", "docs-mcp"],
        "env": {"A": "1"},
        "startup_timeout_ms": 60000,
    }
    [spec] = target.read_servers()
    assert spec.timeout_ms == 60000
    assert spec.env == {"A": "1"}


def test_codex_normalizes_package_runner_on_windows(home: Path, tmp_path: Path) -> None:
    target = CodexTarget(system="windows")
    target.configure(
        ServerSpec(id="docs", transport="stdio", command="npx", args=["-y", "docs-mcp"]),
        config_dir=tmp_path,
    )
    data = tomllib.loads(target.override_path(tmp_path).read_text())
    assert data["mcp_servers"]["docs"]["command"] == "npx.cmd"


def test_detect_returns_default_path_when_nothing_exists(home: Path) -> None:
    assert CursorTarget(system="linux").detect() == home / ".cursor" / "mcp.json"
    assert ClaudeTarget(system="linux").detect() == home / ".claude.json"
    assert ClaudeTarget(system="windows").detect() == home / ".claude" / ".claude.json"


def test_detect_prefers_override_dir_then_env(home: Path, tmp_path: Path, monkeypatch: Any) -> None:
    custom = tmp_path / "custom.json"
    monkeypatch.setenv("ALPH_CURSOR_CONFIG", str(custom))
    target = CursorTarget(system="linux")

    assert target.detect() == custom
    assert target.detect(tmp_path / "proj") == tmp_path / "proj" / ".cursor" / "mcp.json"


def test_detect_skips_unparsable_candidates(home: Path) -> None:
    primary = home / ".cursor" / "mcp.json"
    primary.parent.mkdir(parents=True)
    primary.write_text("{nope")
    legacy = home / ".config" / "Cursor" / "User" / "settings.json"
    legacy.parent.mkdir(parents=True)
    legacy.write_text("{}")

    assert CursorTarget(system="linux").detect() == legacy


def test_listing_degrades_to_empty(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{broken")

    assert target.list_servers(tmp_path) == []
    assert target.read_servers(tmp_path) == []
    assert target.list_servers(tmp_path / "missing") == []


def test_has_server_raises_on_unparsable_file(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{broken")

    with pytest.raises(ParseError):
        target.has_server("x", tmp_path)


def test_rollback_restores_previous_content(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text('{"mcpServers": {}}')

    target.configure(REMOTE, config_dir=tmp_path)
    assert target.rollback() is not None

    assert path.read_text() == '{"mcpServers": {}}'


def test_rollback_deletes_file_created_by_last_edit(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    target.configure(REMOTE, config_dir=tmp_path, backup=False)

    assert target.rollback() is None
    assert not target.override_path(tmp_path).exists()


def test_validate_flags_malformed_container(home: Path, tmp_path: Path, monkeypatch: Any) -> None:
    path = tmp_path / "mcp.json"
    monkeypatch.setenv("ALPH_CURSOR_CONFIG", str(path))
    target = CursorTarget()

    path.write_text('{"mcpServers": {"x": {"command": 1}}}')
    assert target.validate() is False

    path.write_text('{"mcpServers": {"x": {"command": "npx", "args": ["a"]}}}')
    assert target.validate() is True


@pytest.mark.parametrize("target_cls", JSON_TARGETS)
def test_non_bearer_authorization_round_trips(
    target_cls: type[FileTarget], home: Path, tmp_path: Path
) -> None:
    spec = ServerSpec(
        id="internal",
        transport="http",
        endpoint="https://mcp.internal.example/mcp",
        headers={"Authorization": "Basic dXNlcjpwdw==", "X-Key": "1"},
    )
    target = target_cls()

    target.configure(spec, config_dir=tmp_path)

    entry = _load(target.override_path(tmp_path))[target.container_key]["internal"]
    assert entry["headers"] == {"Authorization": "Basic dXNlcjpwdw==", "X-Key": "1"}
    [read_back] = target.read_servers(tmp_path)
    assert read_back == spec


def test_cursor_never_writes_legacy_settings(home: Path) -> None:
    legacy = home / ".config" / "Cursor" / "User" / "settings.json"
    legacy.parent.mkdir(parents=True)
    legacy.write_text('{"editor.fontSize": 14}')
    target = CursorTarget(system="Linux")
    assert target.detect() == legacy

    target.configure(REMOTE)

    assert _load(legacy) == {"editor.fontSize": 14}
    assert list_backups(legacy) == []
    written = home / ".cursor" / "mcp.json"
    assert target.last_written == written
    assert "linear" in _load(written)["mcpServers"]

    target.remove("linear")
    assert _load(written)["mcpServers"] == {}
    assert _load(legacy) == {"editor.fontSize": 14}


def test_configure_recovers_from_undecodable_file(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_bytes(b'{"a": "\xff\xfe"}')

    backup = target.configure(LOCAL, config_dir=tmp_path)

    assert backup is not None and backup.read_bytes() == b'{"a": "\xff\xfe"}'
    assert target.list_servers(tmp_path) == ["filesystem"]


def test_remove_from_undecodable_file_is_parse_error(home: Path, tmp_path: Path) -> None:
    target = CursorTarget()
    path = target.override_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\xff\xfe")

    with pytest.raises(ParseError):
        target.remove("filesystem", config_dir=tmp_path)
    assert list_backups(path) == []
