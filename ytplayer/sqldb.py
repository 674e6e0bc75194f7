"""Files and play lists stored in an SQLite database, with tags kept as JSON."""

from __future__ import annotations

import json
import os
import re
import sqlite3
from collections.abc import Callable, Iterable
from typing import Any

from ytplayer.dbinfo import (
    FILE_ID,
    FILE_PATH,
    FileInfo,
    LIST_FILE_IDS,
    LIST_NAME,
    ListInfo,
    canonical_path,
    list_to_json_bytes,
)

SORT_BY_ID = "ID"
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _identifier(name: str) -> str:
    """A table or column name, checked so it can go into SQL text."""
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


def _ids_json(ids: Iterable[int]) -> str:
    return json.dumps([int(i) for i in ids])


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class SqlDatabase:
    """Media files and named play lists in two SQLite tables.

    The file table holds an id, a canonical path and a JSON object of tags;
    the list table holds a name, a JSON array of file ids, the sort tag, a
    reverse flag, the selected tags and the position of the list.  Sorting
    compares tag values case-insensitively after passing them through
    ``transliterate``, which defaults to leaving them unchanged.
    """

    def __init__(
        self,
        path: str | os.PathLike,
        file_table: str = "FileInfo",
        list_table: str = "ListInfo",
        transliterate: Callable[[str], str] | None = None,
        create_tables: bool = True,
    ) -> None:
        self.file_table = _identifier(file_table)
        self.list_table = _identifier(list_table)
        self.transliterate = transliterate or (lambda text: text)
        self._conn = sqlite3.connect(os.fspath(path))
        self._conn.row_factory = sqlite3.Row
        if create_tables:
            self._create_tables()

    def _create_tables(self) -> None:
        with self._conn:
            self._conn.execute(
                f"""CREATE TABLE IF NOT EXISTS {self.file_table} (
                    ID INTEGER PRIMARY KEY AUTOINCREMENT,
                    Path TEXT NOT NULL UNIQUE,
                    Tags TEXT NOT NULL DEFAULT '{{}}'
                )"""
            )
            self._conn.execute(
                f"""CREATE TABLE IF NOT EXISTS {self.list_table} (
                    Name TEXT PRIMARY KEY NOT NULL,
                    FileInfoIds TEXT NOT NULL DEFAULT '[]',
                    SortTag TEXT NOT NULL DEFAULT '',
                    ReverseSortTag INTEGER NOT NULL DEFAULT 0,
                    SelectTag TEXT NOT NULL DEFAULT '[]',
                    SortIndex INTEGER
                )"""
            )

    # files

    def get_file(self, file_id: int) -> FileInfo:
        row = self._conn.execute(
            f"SELECT * FROM {self.file_table} WHERE ID = ?", (file_id,)
        ).fetchone()
        if row is None:
            raise KeyError(f"no such file: {file_id}")
        return FileInfo.from_row(row)

    def get_file_field(self, file_id: int, field: str) -> Any:
        row = self._conn.execute(
            f"SELECT {_identifier(field)} FROM {self.file_table} WHERE ID = ?", (file_id,)
        ).fetchone()
        if row is None:
            raise KeyError(f"no such file: {file_id}")
        return row[0]

    def get_files(self, file_ids: Iterable[int]) -> dict[int, FileInfo]:
        """The stored files among file_ids, keyed by id."""
        rows = self._conn.execute(
            f"""SELECT * FROM {self.file_table}
                WHERE ID IN (SELECT value FROM json_each(?))""",
            (_ids_json(file_ids),),
        )
        infos = (FileInfo.from_row(row) for row in rows)
        return {info.id: info for info in infos}

    def file_id(self, path: str | os.PathLike) -> int | None:
        """Id of the file stored under path, or None."""
        row = self._conn.execute(
            f"SELECT ID FROM {self.file_table} WHERE Path = ?", (os.fspath(path),)
        ).fetchone()
        return None if row is None else int(row[0])

    def list_tag_keys(self, name: str) -> list[str]:
        return self.file_tag_keys(self.list_file_ids(name))

    def file_tag_keys(self, file_ids: Iterable[int]) -> list[str]:
        """Every tag key used by the given files, each once."""
        rows = self._conn.execute(
            f"""SELECT DISTINCT json_each.key
                FROM {self.file_table} AS F_Info, json_each(F_Info.Tags)
                WHERE F_Info.ID IN (SELECT value FROM json_each(?))""",
            (_ids_json(file_ids),),
        )
        return [_text(row[0]) for row in rows]

    def list_tag_values(self, name: str, tag_key: str) -> list[str]:
        return self.file_tag_values(self.list_file_ids(name), tag_key)

    def file_tag_values(self, file_ids: Iterable[int], tag_key: str) -> list[str]:
        """Every distinct node under a tag among the given files, as text."""
        rows = self._conn.execute(
            f"""SELECT DISTINCT json_tree.value
                FROM {self.file_table} AS F_Info, json_tree(F_Info.Tags, :tag_key)
                WHERE F_Info.ID IN (SELECT value FROM json_each(:ids))""",
            {"tag_key": "$." + tag_key, "ids": _ids_json(file_ids)},
        )
        return [_text(row[0]) for row in rows]

    def add_file_path(self, path: str | os.PathLike) -> int:
        """Id of the file at path, adding it if it is not stored yet."""
        resolved = canonical_path(path)
        if not resolved:
            raise FileNotFoundError(os.fspath(path))
        found = self.file_id(resolved)
        if found is not None:
            return found
        return self.add_file(FileInfo(path=resolved))

    def add_file(self, info: FileInfo) -> int:
        """Insert a file, set info.id and return it."""
        with self._conn:
            cursor = self._conn.execute(
                info.insert_sql(self.file_table), info.to_sql_data()
            )
        info.id = int(cursor.lastrowid)
        return info.id

    def set_file_field(self, file_id: int, field: str, value: Any) -> None:
        with self._conn:
            self._conn.execute(
                f"UPDATE {self.file_table} SET {_identifier(field)} = :data"
                " WHERE ID = :file_id",
                {"data": value, "file_id": file_id},
            )

    def delete_file(self, file_id: int) -> None:
        with self._conn:
            self._conn.execute(f"DELETE FROM {self.file_table} WHERE ID = ?", (file_id,))

    def sort_list(self, name: str, sort_tag: str) -> None:
        """Sort a list's files by a tag and store the result.

        Sorting by "ID" reverses the list and flips its reverse flag; any
        other tag is remembered as the list's sort tag and clears the flag.
        """
        ordered = self.sort_ids(self.list_file_ids(name), sort_tag)
        by_id = sort_tag == SORT_BY_ID
        with self._conn:
            self._conn.execute(
                f"""UPDATE {self.list_table}
                    SET SortTag = COALESCE(:sort_tag, SortTag),
                        ReverseSortTag = CASE WHEN :reverse = 1
                            THEN (~ReverseSortTag & 1) ELSE 0 END,
                        FileInfoIds = json(:file_ids)
                    WHERE Name = :name""",
                {
                    "sort_tag": None if by_id else sort_tag,
                    "reverse": int(by_id),
                    "file_ids": list_to_json_bytes(ordered).decode("utf-8"),
                    "name": name,
                },
            )

    def sort_ids(self, file_ids: Iterable[int], sort_tag: str) -> list[int]:
        """Ids stably sorted by the first value of a tag; "ID" reverses them."""
        ordered = [int(i) for i in file_ids]
        if sort_tag == SORT_BY_ID:
            ordered.reverse()
            return ordered
        rows = self._conn.execute(
            f"""SELECT F_Info.ID AS ID,
                    CASE WHEN json_each.type = 'object' THEN ''
                    WHEN json_each.type = 'array'
                    THEN json_extract(json_each.value, '$[0]')
                    ELSE json_each.value END AS TagValue
                FROM {self.file_table} AS F_Info, json_each(F_Info.Tags)
                WHERE F_Info.ID IN (SELECT value FROM json_each(:ids))
                AND json_each.key = :sort_tag""",
            {"ids": _ids_json(ordered), "sort_tag": sort_tag},
        )
        keys = {
            int(row["ID"]): self.transliterate(_text(row["TagValue"])).casefold()
            for row in rows
        }
        return sorted(ordered, key=lambda i: keys.get(i, ""))

    def search_list(self, name: str, search_tag: str) -> list[int]:
        return self.search_files(self.list_file_ids(name), search_tag)

    def search_files(self, file_ids: Iterable[int], search_tag: str) -> list[int]:
        """Ids among file_ids with some tag value equal to search_tag."""
        rows = self._conn.execute(
            f"""SELECT DISTINCT F_Info.ID AS ID
                FROM {self.file_table} AS F_Info, json_tree(F_Info.Tags)
                WHERE F_Info.ID IN (SELECT value FROM json_each(:ids))
                AND json_tree.value = :search_tag""",
            {"ids": _ids_json(file_ids), "search_tag": search_tag},
        )
        return [int(row["ID"]) for row in rows]

    # lists

    def get_list(self, name: str) -> ListInfo:
        row = self._conn.execute(
            f"SELECT * FROM {self.list_table} WHERE Name = ?", (name,)
        ).fetchone()
        if row is None:
            raise KeyError(f"no such list: {name!r}")
        return ListInfo.from_row(row)

    def get_list_field(self, name: str, field: str) -> Any:
        row = self._conn.execute(
            f"SELECT {_identifier(field)} FROM {self.list_table} WHERE Name = ?", (name,)
        ).fetchone()
        if row is None:
            raise KeyError(f"no such list: {name!r}")
        return row[0]

    def list_names(self) -> list[str]:
        """Names of all lists in their stored order."""
        rows = self._conn.execute(
            f"SELECT Name FROM {self.list_table} ORDER BY SortIndex ASC"
        )
        return [_text(row[0]) for row in rows]

    def list_file_ids(self, name: str) -> list[int]:
        """File ids of a list in order; empty if there is no such list."""
        rows = self._conn.execute(
            f"""SELECT json_each.value
                FROM {self.list_table} AS L_Info, json_each(L_Info.{LIST_FILE_IDS})
                WHERE L_Info.{LIST_NAME} = ?""",
            (name,),
        )
        return [int(row[0]) for row in rows]

    def add_list(self, info: ListInfo) -> None:
        """Insert a list after all existing ones."""
        with self._conn:
            self._conn.execute(info.insert_sql(self.list_table), info.to_sql_data())
            self._conn.execute(
                f"""UPDATE {self.list_table}
                    SET SortIndex = (
                        SELECT COALESCE(MAX(SortIndex), -1) + 1 FROM {self.list_table}
                    )
                    WHERE Name = ? AND SortIndex IS NULL""",
                (info.name,),
            )

    def add_list_file(self, name: str, file_id: int) -> bool:
        """Append a file id to a list unless it is there; True if it was added."""
        with self._conn:
            cursor = self._conn.execute(
                f"""UPDATE {self.list_table}
                    SET FileInfoIds = json_insert(
                        COALESCE(FileInfoIds, '[]'), '$[#]', :file_id)
                    WHERE Name = :name
                    AND NOT EXISTS (
                        SELECT 1 FROM json_each(FileInfoIds)
                        WHERE json_each.value = :file_id)""",
                {"name": name, "file_id": int(file_id)},
            )
        return cursor.rowcount > 0

    def add_list_path(self, name: str, path: str | os.PathLike) -> int:
        """Add the file at path, append it to a list and return its id."""
        file_id = self.add_file_path(path)
        self.add_list_file(name, file_id)
        return file_id

    def set_list_field(self, name: str, field: str, value: Any) -> None:
        with self._conn:
            self._conn.execute(
                f"UPDATE {self.list_table} SET {_identifier(field)} = :data"
                " WHERE Name = :name",
                {"data": value, "name": name},
            )

    def move_list(self, name: str, target_name: str) -> None:
        """Move a list to the position of another, shifting those in between."""
        current = int(self.get_list_field(name, "SortIndex") or 0)
        target = int(self.get_list_field(target_name, "SortIndex") or 0)
        with self._conn:
            if current > target:
                self._conn.execute(
                    f"""UPDATE {self.list_table} SET SortIndex = SortIndex + 1
                        WHERE SortIndex >= :target AND SortIndex < :current""",
                    {"target": target, "current": current},
                )
            else:
                self._conn.execute(
                    f"""UPDATE {self.list_table} SET SortIndex = SortIndex - 1
                        WHERE SortIndex > :current AND SortIndex <= :target""",
                    {"target": target, "current": current},
                )
            self._conn.execute(
                f"UPDATE {self.list_table} SET SortIndex = ? WHERE Name = ?",
                (target, name),
            )

    def delete_list(self, name: str) -> None:
        with self._conn:
            self._conn.execute(f"DELETE FROM {self.list_table} WHERE Name = ?", (name,))

    def delete_list_file_index(self, name: str, index: int) -> None:
        """Remove the file id at a position of a list."""
        with self._conn:
            self._conn.execute(
                f"""UPDATE {self.list_table}
                    SET FileInfoIds = json_remove(FileInfoIds, '$[' || :index || ']')
                    WHERE Name = :name""",
                {"index": int(index), "name": name},
            )

    # lifetime

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SqlDatabase:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


__all__ = ["SqlDatabase", "FILE_ID", "FILE_PATH"]