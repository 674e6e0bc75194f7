"""JSON helpers, substring search and file-system operations."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)

PathLike = str | os.PathLike


def _prefix_table(pattern: str) -> list[int]:
    """Longest proper prefix that is also a suffix, for every prefix of pattern."""
    table = [0] * len(pattern)
    length = 0
    for i, char in enumerate(pattern[1:], start=1):
        while length and char != pattern[length]:
            length = table[length - 1]
        if char == pattern[length]:
            length += 1
        table[i] = length
    return table


def kmp_find(data: str, pattern: str) -> int:
    """Return the index of the first occurrence of pattern in data, or -1."""
    if not pattern:
        return 0
    table = _prefix_table(pattern)
    matched = 0
    for i, char in enumerate(data):
        while matched and char != pattern[matched]:
            matched = table[matched - 1]
        if char == pattern[matched]:
            matched += 1
            if matched == len(pattern):
                return i - matched + 1
    return -1


def json_first(value: Any) -> Any:
    """The first element of a JSON array, or the value itself."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def json_list(value: Any) -> list[Any]:
    """A JSON value as a list: arrays as they are, null as empty, scalars wrapped."""
    if value is None:
        return []
    if isinstance(value, list):
        return list(value)
    return [value]


def read_json_object(path: PathLike) -> dict[str, Any]:
    """Read a JSON object from a file; an empty dict if it cannot be read."""
    try:
        raw = Path(path).read_bytes()
    except OSError:
        log.debug("cannot open file: %s", path)
        return {}
    try:
        document = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        log.debug("JSON parse error in %s: %s", path, exc)
        return {}
    if not isinstance(document, dict):
        log.debug("JSON data in %s is not an object", path)
        return {}
    return document


def write_json_object(path: PathLike, obj: dict[str, Any]) -> None:
    """Write a JSON object to a file as indented UTF-8 text."""
    text = json.dumps(obj, ensure_ascii=False, indent=4) + "\n"
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError:
        log.debug("cannot open file: %s", path)


def delete_path(path: PathLike) -> bool:
    """Delete a file, or a directory with everything in it."""
    target = Path(path)
    try:
        if target.is_file():
            target.unlink()
            return True
        if target.is_dir():
            shutil.rmtree(target)
            return True
    except OSError:
        return False
    return False


def _destination(src: Path, target: Path) -> Path | None:
    if target.is_file():
        return target
    if target.is_dir():
        return target / src.name
    return None


def _base_name(path: Path) -> str:
    return path.name.split(".", 1)[0]


def _entries(directory: Path) -> Iterator[Path]:
    visible = (p for p in directory.iterdir() if not p.name.startswith("."))
    return iter(sorted(visible, key=lambda p: p.name.lower()))


def copy_file(
    path: PathLike, target_path: PathLike, overwrite: bool = False
) -> str | None:
    """Copy a file onto a file or into a directory; the new path, or None."""
    src = Path(path)
    if not src.is_file():
        return None
    dest = _destination(src, Path(target_path))
    if dest is None:
        return None
    try:
        if overwrite and dest.is_file():
            dest.unlink()
        if dest.exists():
            return None
        shutil.copy2(src, dest)
    except OSError:
        return None
    return os.fspath(dest)


def move_file(
    path: PathLike, target_path: PathLike, overwrite: bool = False
) -> str | None:
    """Move a file onto a file or into a directory; the new path, or None.

    A file that is overwritten is kept aside until the move succeeds and is
    put back if it fails.
    """
    src = Path(path)
    if not src.is_file():
        return None
    dest = _destination(src, Path(target_path))
    if dest is None:
        return None

    backup: Path | None = None
    if overwrite and dest.exists():
        try:
            handle, name = tempfile.mkstemp(dir=dest.parent, prefix=".", suffix=".old")
            os.close(handle)
            backup = Path(name)
            os.replace(dest, backup)
        except OSError:
            if backup is not None and backup.exists():
                backup.unlink()
            return None

    try:
        if dest.exists():
            raise FileExistsError(dest)
        shutil.move(os.fspath(src), os.fspath(dest))
    except OSError:
        if backup is not None:
            os.replace(backup, dest)
        return None

    if backup is not None:
        backup.unlink()
    return os.fspath(dest)


def _transfer_folder(
    path: PathLike,
    target_path: PathLike,
    overwrite: bool,
    recursive: bool,
    single: Callable[[PathLike, PathLike, bool], str | None],
    transfer: Callable[[Path, Path], None],
    again: Callable[[PathLike, PathLike, bool, bool], list[str]],
) -> list[str] | None:
    src = Path(path)
    if src.is_file():
        result = single(src, target_path, overwrite)
        return [result] if result else []
    if not src.is_dir() or not Path(target_path).is_dir():
        return []

    dest_dir = Path(target_path) / _base_name(src)
    if not dest_dir.exists():
        try:
            dest_dir.mkdir()
        except OSError:
            return []

    done: list[str] = []
    for entry in _entries(src):
        if entry.is_dir():
            if recursive:
                done.extend(again(entry, dest_dir, overwrite, recursive))
            continue
        dest = dest_dir / entry.name
        try:
            if overwrite and dest.is_file():
                dest.unlink()
            if dest.exists():
                raise FileExistsError(dest)
            transfer(entry, dest)
        except OSError as exc:
            log.debug("transfer failed %s -> %s: %s", entry, dest, exc)
            continue
        done.append(os.fspath(entry))
    return done


def copy_folder(
    path: PathLike,
    target_path: PathLike,
    overwrite: bool = False,
    recursive: bool = False,
) -> list[str]:
    """Copy a directory into target_path; the source paths of the files copied."""
    result = _transfer_folder(
        path,
        target_path,
        overwrite,
        recursive,
        copy_file,
        lambda s, d: shutil.copy2(s, d),
        copy_folder,
    )
    return result or []


def move_folder(
    path: PathLike,
    target_path: PathLike,
    overwrite: bool = False,
    recursive: bool = False,
) -> list[str]:
    """Move a directory into target_path, then remove the source directory.

    Returns the source paths of the files that were moved.
    """
    src = Path(path)
    was_dir = src.is_dir() and Path(target_path).is_dir()
    result = _transfer_folder(
        path,
        target_path,
        overwrite,
        recursive,
        move_file,
        lambda s, d: shutil.move(os.fspath(s), os.fspath(d)),
        move_folder,
    )
    if was_dir and (Path(target_path) / _base_name(src)).is_dir():
        shutil.rmtree(src, ignore_errors=True)
    return result or []