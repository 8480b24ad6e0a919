"""Document formats used by target configuration files.

A format turns file text into a mutable mapping and back. Unrelated keys are
carried through untouched: JSON keeps key order, TOML goes through tomlkit so
comments and layout of untouched tables survive a rewrite.
"""

from __future__ import annotations

import json
from collections.abc import MutableMapping
from typing import Any, Protocol

import tomlkit
from tomlkit.items import Item


class DocumentFormat(Protocol):
    name: str

    def parse(self, text: str) -> MutableMapping[str, Any]:
        """Parse file text. Raises ValueError when the text is not a valid document."""
        ...

    def dump(self, document: MutableMapping[str, Any]) -> str: ...

    def new_document(self) -> MutableMapping[str, Any]: ...

    def new_table(self) -> MutableMapping[str, Any]: ...

    def to_plain(self, value: Any) -> Any: ...


class JsonFormat:
    name = "json"

    def __init__(self, *, indent: int = 2) -> None:
        self._indent = indent

    def parse(self, text: str) -> MutableMapping[str, Any]:
        if not text.strip():
            return {}
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(f"top-level JSON value must be an object, got {type(data).__name__}")
        return data

    def dump(self, document: MutableMapping[str, Any]) -> str:
        return json.dumps(document, indent=self._indent, ensure_ascii=False) + "\n"

    def new_document(self) -> MutableMapping[str, Any]:
        return {}

    def new_table(self) -> MutableMapping[str, Any]:
        return {}

    def to_plain(self, value: Any) -> Any:
        return value


class TomlFormat:
    name = "toml"

    def parse(self, text: str) -> MutableMapping[str, Any]:
        if not text.strip():
            return tomlkit.document()
        # tomlkit's ParseError subclasses ValueError
        return tomlkit.parse(text)

    def dump(self, document: MutableMapping[str, Any]) -> str:
        return tomlkit.dumps(document)

    def new_document(self) -> MutableMapping[str, Any]:
        return tomlkit.document()

    def new_table(self) -> MutableMapping[str, Any]:
        return tomlkit.table()

    def to_plain(self, value: Any) -> Any:
        if isinstance(value, tomlkit.TOMLDocument | Item):
            return value.unwrap()
        return value


JSON = JsonFormat()
TOML = TomlFormat()
