"""Records of files and lists as stored in the SQL database."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

FILE_ID = "ID"
FILE_PATH = "Path"
FILE_TAGS = "Tags"

LIST_NAME = "Name"
LIST_FILE_IDS = "FileInfoIds"
LIST_SORT_TAG = "SortTag"
LIST_SELECT_TAG = "SelectTag"

_NO_KEY = object()


def canonical_path(path: str | os.PathLike) -> str:
    """Absolute path with links resolved, or "" if the file does not exist."""
    if not os.fspath(path):
        return ""
    try:
        return os.fspath(Path(path).resolve(strict=True))
    except (OSError, RuntimeError):
        return ""


def _value(data: Any, key: Any) -> Any:
    if key is _NO_KEY:
        return data
    return data.get(key) if isinstance(data, Mapping) else None


def tag_first(data: Any, key: Any = _NO_KEY) -> Any:
    """First value of a tag: the first array element, or the value itself."""
    value = _value(data, key)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def tag_list(data: Any, key: Any = _NO_KEY) -> list[Any]:
    """All values of a tag as a list; empty if it is missing or null."""
    value = _value(data, key)
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def list_to_json_bytes(values: Any) -> bytes:
    """A list as indented JSON, UTF-8 encoded."""
    return (json.dumps(list(values), ensure_ascii=False, indent=4) + "\n").encode("utf-8")


def list_from_json_bytes(data: bytes | str | None) -> list[Any]:
    """A JSON array back as a list; empty if data is not a JSON array."""
    if data is None:
        log.debug("list_from_json_bytes: no data")
        return []
    try:
        document = json.loads(data)
    except (ValueError, UnicodeDecodeError) as exc:
        log.debug("list_from_json_bytes error: %s", exc)
        return []
    if not isinstance(document, list):
        log.debug("list_from_json_bytes error: not an array")
        return []
    return document


def _field(row: Any, key: str) -> Any:
    try:
        return row[key]
    except (KeyError, IndexError):
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


@dataclass
class FileInfo:
    """A media file and its tags."""

    path: str = ""
    tags: dict[str, Any] = field(default_factory=dict)
    id: int = -1

    def insert_sql(self, table: str) -> str:
        return f"INSERT INTO {table} ({FILE_PATH}, {FILE_TAGS}) VALUES (?, ?)"

    def to_sql_data(self) -> list[Any]:
        """Values bound to insert_sql, in order."""
        return [
            canonical_path(self.path),
            json.dumps(self.tags, ensure_ascii=False, indent=4),
        ]

    @classmethod
    def from_row(cls, row: Any) -> FileInfo:
        raw_tags = _field(row, FILE_TAGS)
        try:
            tags = json.loads(raw_tags) if raw_tags is not None else {}
        except (ValueError, UnicodeDecodeError):
            tags = {}
        return cls(
            path=_text(_field(row, FILE_PATH)),
            tags=tags if isinstance(tags, dict) else {},
            id=_int(_field(row, FILE_ID)),
        )


@dataclass
class ListInfo:
    """A named play list of file ids."""

    name: str = ""
    file_ids: list[int] = field(default_factory=list)
    sort_tag: str = ""
    select_tag: list[str] = field(default_factory=list)

    def insert_sql(self, table: str) -> str:
        columns = f"{LIST_NAME}, {LIST_FILE_IDS}, {LIST_SORT_TAG}, {LIST_SELECT_TAG}"
        return f"INSERT INTO {table} ({columns}) VALUES (?, ?, ?, ?)"

    def to_sql_data(self) -> list[Any]:
        """Values bound to insert_sql, in order."""
        return [
            self.name,
            list_to_json_bytes(self.file_ids).decode("utf-8"),
            self.sort_tag,
            list_to_json_bytes(self.select_tag).decode("utf-8"),
        ]

    @classmethod
    def from_row(cls, row: Any) -> ListInfo:
        return cls(
            name=_text(_field(row, LIST_NAME)),
            file_ids=[_int(v) for v in list_from_json_bytes(_field(row, LIST_FILE_IDS))],
            sort_tag=_text(_field(row, LIST_SORT_TAG)),
            select_tag=[_text(v) for v in list_from_json_bytes(_field(row, LIST_SELECT_TAG))],
        )