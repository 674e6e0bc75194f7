"""Persistent appearance settings of the player."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from ytplayer.general import read_json_object, write_json_object

DATA_DIRS = ("YT_PlayerData", "YT_PlayerCache", "YT_PlayerOutput")
INFO_PATH = os.path.join("YT_PlayerData", "Info.json")


def _to_int(value: Any) -> int:
    """Integer value of a JSON value, 0 where it is not a whole number."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def _to_object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class Color:
    """An RGBA colour."""

    red: int
    green: int
    blue: int
    alpha: int = 255

    def to_json(self) -> dict[str, int]:
        return {"Red": self.red, "Blue": self.blue, "Green": self.green, "Alpha": self.alpha}

    @classmethod
    def from_json(cls, data: Any) -> Color:
        obj = _to_object(data)
        return cls(
            red=_to_int(obj.get("Red")),
            green=_to_int(obj.get("Green")),
            blue=_to_int(obj.get("Blue")),
            alpha=_to_int(obj.get("Alpha")),
        )


@dataclass(frozen=True)
class Size:
    """A width and a height."""

    width: int
    height: int

    def to_json(self) -> dict[str, int]:
        return {"Width": self.width, "Height": self.height}

    @classmethod
    def from_json(cls, data: Any) -> Size:
        obj = _to_object(data)
        return cls(width=_to_int(obj.get("Width")), height=_to_int(obj.get("Height")))


@dataclass
class Settings:
    """Colours, sizes and spacings of the interface, plus the open music lists."""

    font_color: Color = field(default=Color(138, 138, 138), metadata={"key": "FontColor"})
    font_focus_color: Color = field(default=Color(255, 215, 0), metadata={"key": "FontFocusColor"})
    item_color: Color = field(default=Color(38, 38, 38), metadata={"key": "ItemColor"})
    item_focus_color: Color = field(default=Color(72, 72, 72), metadata={"key": "ItemFocusColor"})
    background_color: Color = field(default=Color(21, 21, 21), metadata={"key": "BackgroundColor"})
    item_size: Size = field(default=Size(180, 30), metadata={"key": "ItemSize"})
    item_size_big: Size = field(default=Size(180, 50), metadata={"key": "ItemSizeBig"})
    item_size_small: Size = field(default=Size(180, 20), metadata={"key": "ItemSizeSmall"})
    radius: int = field(default=7, metadata={"key": "Radius"})
    radius_big: int = field(default=15, metadata={"key": "RadiusBig"})
    radius_small: int = field(default=3, metadata={"key": "RadiusSmall"})
    spacing: int = field(default=7, metadata={"key": "Spacing"})
    spacing_big: int = field(default=15, metadata={"key": "SpacingBig"})
    spacing_small: int = field(default=3, metadata={"key": "SpacingSmall"})
    margin: int = field(default=7, metadata={"key": "Margin"})
    margin_big: int = field(default=15, metadata={"key": "MarginBig"})
    margin_small: int = field(default=3, metadata={"key": "MarginSmall"})
    music_list_ids: list[Any] = field(
        default_factory=list, metadata={"key": "MusicListInfo_ID_List"}
    )

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (Color, Size)):
                value = value.to_json()
            elif isinstance(value, list):
                value = list(value)
            result[f.metadata["key"]] = value
        return result

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Settings:
        """Settings from a JSON object.

        An empty object gives the defaults; otherwise every entry is taken
        from the object, and a missing one reads as zero or empty.
        """
        if not data:
            return cls()
        values: dict[str, Any] = {}
        for f in fields(cls):
            raw = data.get(f.metadata["key"])
            default = cls.__dataclass_fields__[f.name].default
            if isinstance(default, Color):
                values[f.name] = Color.from_json(raw)
            elif isinstance(default, Size):
                values[f.name] = Size.from_json(raw)
            elif isinstance(default, int):
                values[f.name] = _to_int(raw)
            else:
                values[f.name] = list(raw) if isinstance(raw, list) else []
        return cls(**values)

    @classmethod
    def load(cls, path: str | os.PathLike = INFO_PATH) -> Settings:
        return cls.from_json(read_json_object(path))

    def save(self, path: str | os.PathLike = INFO_PATH) -> None:
        write_json_object(path, self.to_json())


def ensure_data_dirs(root: str | os.PathLike = ".") -> list[Path]:
    """Create the data, cache and output directories under root."""
    created = []
    for name in DATA_DIRS:
        directory = Path(root) / name
        directory.mkdir(parents=True, exist_ok=True)
        created.append(directory)
    return created