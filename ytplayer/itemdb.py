"""In-memory item and play-list database kept in a pair of JSON files."""

from __future__ import annotations

import copy
import os
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ytplayer.dbinfo import canonical_path
from ytplayer.general import json_list, kmp_find, read_json_object, write_json_object

ITEM_ID = "ID"
ITEM_NAME = "Name"
ITEM_PATH = "Path"
ITEM_TAGS = "Tags"
LIST_SORT_TAG = "SortTag"
LIST_SELECT_TAG = "SelectTag"
LIST_ID_LIST = "ID_List"
ERASED_IDS_KEY = "EraseItem_Info_Ids"


def _json_int(value: Any, default: int = 0) -> int:
    """Integer value of a JSON number, default where it is not a whole number."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


def _json_str(value: Any) -> str:
    """A JSON string, or "" for any other value."""
    return value if isinstance(value, str) else ""


def _variant_text(value: Any) -> str:
    """Text form of a scalar JSON value; "" for null, arrays and objects."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return ""


def first_tag(tags: Mapping[str, Any], key: str) -> str:
    """First string of a tag: the first array element, or the value itself."""
    value = tags.get(key)
    if isinstance(value, list):
        return _json_str(value[0]) if value else ""
    return _json_str(value)


def list_tag(tags: Mapping[str, Any], key: str) -> list[str]:
    """All strings of a tag; empty if it is missing or neither string nor array."""
    value = tags.get(key)
    if isinstance(value, list):
        return [_json_str(v) for v in value]
    if isinstance(value, str):
        return [value]
    return []


@dataclass
class ItemInfo:
    """A media file and its tags."""

    id: int = -1
    path: str = ""
    tags: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {ITEM_ID: self.id, ITEM_PATH: self.path, ITEM_TAGS: copy.deepcopy(self.tags)}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ItemInfo:
        tags = data.get(ITEM_TAGS)
        return cls(
            id=_json_int(data.get(ITEM_ID), -1),
            path=_json_str(data.get(ITEM_PATH)),
            tags=copy.deepcopy(tags) if isinstance(tags, dict) else {},
        )


@dataclass
class ListInfo:
    """A named play list of item ids."""

    name: str = ""
    id_list: list[int] = field(default_factory=list)
    sort_tag: str = ""
    select_tag: list[str] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            ITEM_NAME: self.name,
            LIST_SORT_TAG: self.sort_tag,
            LIST_SELECT_TAG: list(self.select_tag),
            LIST_ID_LIST: list(self.id_list),
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ListInfo:
        select = data.get(LIST_SELECT_TAG)
        ids = data.get(LIST_ID_LIST)
        return cls(
            name=_json_str(data.get(ITEM_NAME)),
            sort_tag=_json_str(data.get(LIST_SORT_TAG)),
            select_tag=[_json_str(v) for v in select] if isinstance(select, list) else [],
            id_list=[_json_int(v) for v in ids] if isinstance(ids, list) else [],
        )


class ItemDatabase:
    """Items keyed by id and play lists keyed by name, loaded from and saved to JSON.

    Ids of erased items are reused, oldest first, before new ids are handed out.
    Sorting compares tag values case-insensitively after passing them through
    ``transliterate``, which defaults to leaving them unchanged.
    """

    def __init__(
        self,
        item_path: str | os.PathLike,
        list_path: str | os.PathLike,
        transliterate: Callable[[str], str] | None = None,
    ) -> None:
        self.item_path = item_path
        self.list_path = list_path
        self.transliterate = transliterate or (lambda text: text)
        self._erased: deque[int] = deque()
        self._items: dict[int, ItemInfo] = {}
        self._lists: dict[str, ListInfo] = {}
        self._load_items()
        self._load_lists()

    def _load_items(self) -> None:
        data = read_json_object(self.item_path)
        erased = data.get(ERASED_IDS_KEY)
        if isinstance(erased, list):
            self._erased.extend(_json_int(v) for v in erased)
        for value in data.values():
            if isinstance(value, dict) and value:
                info = ItemInfo.from_json(value)
                self._items[info.id] = info

    def _load_lists(self) -> None:
        for value in read_json_object(self.list_path).values():
            if isinstance(value, dict) and value:
                info = ListInfo.from_json(value)
                self._lists[info.name] = info

    def _require_list(self, name: str) -> ListInfo:
        try:
            return self._lists[name]
        except KeyError:
            raise KeyError(f"no such list: {name!r}") from None

    # items

    def has_item(self, item_id: int) -> bool:
        return item_id in self._items

    def get_item(self, item_id: int) -> ItemInfo:
        """A copy of the item, or an empty item if there is none with this id."""
        info = self._items.get(item_id)
        return copy.deepcopy(info) if info is not None else ItemInfo()

    def add_item_path(self, path: str) -> int:
        """Id of the item for path, adding one if none matches."""
        found = self.find_item(path)
        if found is not None:
            return found
        return self.add_item(ItemInfo(path=path))

    def add_item(self, info: ItemInfo) -> int:
        """Store the item under a fresh or reused id, set info.id and return it."""
        info.id = self._erased.popleft() if self._erased else len(self._items)
        self._items[info.id] = copy.deepcopy(info)
        return info.id

    def set_item(self, info: ItemInfo) -> int:
        if info.id not in self._items:
            raise KeyError(f"no such item: {info.id}")
        self._items[info.id] = copy.deepcopy(info)
        return info.id

    def erase_item(self, item_id: int) -> None:
        """Remove an item from the database and from every list."""
        if item_id not in self._items:
            raise KeyError(f"no such item: {item_id}")
        for name in list(self._lists):
            self.remove_list_item(name, item_id)
        del self._items[item_id]
        self._erased.append(item_id)

    def find_item(self, path: str) -> int | None:
        """Id of the item whose stored path is the canonical form of path."""
        wanted = canonical_path(path)
        return next((info.id for info in self._items.values() if info.path == wanted), None)

    def search_items(
        self, tag_data: str, ids: Iterable[int], headers: Iterable[str] | None = None
    ) -> list[int]:
        """Ids among ids with a tag value containing tag_data.

        Only the tags named in headers are looked at, or all tags if headers is None.
        """
        header_list = None if headers is None else list(headers)
        found = []
        for item_id in ids:
            info = self._items.get(item_id, ItemInfo())
            if header_list is None:
                values = info.tags.values()
            else:
                values = (info.tags.get(h) for h in header_list)
            if any(
                kmp_find(_variant_text(v), tag_data) >= 0
                for value in values
                for v in json_list(value)
            ):
                found.append(info.id)
        return found

    # lists

    def has_list(self, name: str) -> bool:
        return name in self._lists

    def get_list(self, name: str) -> ListInfo:
        """A copy of the list, or an empty list if there is none with this name."""
        info = self._lists.get(name)
        return copy.deepcopy(info) if info is not None else ListInfo()

    def add_list(self, info: ListInfo) -> None:
        if not info.name:
            raise ValueError("list name is empty")
        if info.name in self._lists:
            raise ValueError(f"list already exists: {info.name!r}")
        self._lists[info.name] = copy.deepcopy(info)

    def set_list(self, info: ListInfo) -> None:
        self._require_list(info.name)
        self._lists[info.name] = copy.deepcopy(info)

    def rename_list(self, name: str, new_name: str) -> None:
        """Give a list a new name, replacing any list already under it."""
        info = self._require_list(name)
        del self._lists[name]
        info.name = new_name
        self._lists[new_name] = info

    def erase_list(self, name: str) -> None:
        self._require_list(name)
        del self._lists[name]

    def sort_list(self, name: str, sort_tag: str) -> None:
        """Sort a list by a tag and remember the tag; "ID" reverses the list."""
        info = self._lists.get(name)
        if info is None:
            return
        if sort_tag != ITEM_ID:
            info.sort_tag = sort_tag
        info.id_list = self.sort_ids(info.id_list, sort_tag)

    def sort_ids(self, ids: Iterable[int], sort_tag: str) -> list[int]:
        """Ids stably sorted by the first value of a tag; "ID" reverses them."""
        ordered = list(ids)
        if sort_tag == ITEM_ID:
            ordered.reverse()
            return ordered
        keys = {}
        for item_id in ordered:
            info = self._items.get(item_id, ItemInfo())
            keys[item_id] = self.transliterate(first_tag(info.tags, sort_tag)).casefold()
        return sorted(ordered, key=keys.__getitem__)

    def list_names(self) -> list[str]:
        return list(self._lists)

    def list_tag_headers(self, name: str) -> list[str]:
        info = self._lists.get(name)
        return self.tag_headers(info.id_list) if info is not None else []

    def tag_headers(self, ids: Iterable[int]) -> list[str]:
        """Every tag key used by the given items, each once."""
        headers: dict[str, None] = {}
        for item_id in ids:
            info = self._items.get(item_id)
            if info is not None:
                headers.update(dict.fromkeys(info.tags))
        return list(headers)

    def list_tag_values(self, name: str, key: str) -> list[str]:
        info = self._lists.get(name)
        return self.tag_values(info.id_list, key) if info is not None else []

    def tag_values(self, ids: Iterable[int], key: str) -> list[str]:
        """Every non-empty value of a tag among the given items, each once."""
        values: dict[str, None] = {}
        for item_id in ids:
            info = self._items.get(item_id)
            if info is not None:
                values.update(dict.fromkeys(v for v in list_tag(info.tags, key) if v))
        return list(values)

    def add_list_item(self, name: str, item_id: int) -> None:
        """Append an item to a list unless it is already there."""
        info = self._require_list(name)
        if item_id not in self._items:
            raise KeyError(f"no such item: {item_id}")
        if item_id not in info.id_list:
            info.id_list.append(item_id)

    def add_list_path(self, name: str, path: str) -> int:
        """Add the item for path, append it to a list and return its id."""
        item_id = self.add_item_path(path)
        self.add_list_item(name, item_id)
        return item_id

    def remove_list_item(self, name: str, item_id: int) -> None:
        """Remove every occurrence of an item from a list."""
        info = self._require_list(name)
        info.id_list = [i for i in info.id_list if i != item_id]

    def remove_list_index(self, name: str, index: int) -> None:
        info = self._require_list(name)
        if not 0 <= index < len(info.id_list):
            raise IndexError(f"list index out of range: {index}")
        del info.id_list[index]

    # persistence

    def save(self) -> None:
        """Write items and lists back to their files."""
        items: dict[str, Any] = {ERASED_IDS_KEY: list(self._erased)}
        for info in self._items.values():
            items[str(info.id)] = info.to_json()
        write_json_object(self.item_path, items)
        write_json_object(
            self.list_path, {info.name: info.to_json() for info in self._lists.values()}
        )

    def __enter__(self) -> ItemDatabase:
        return self

    def __exit__(self, *args: Any) -> None:
        self.save()