"""Data ports of the node editor and the rules for passing values between them."""

from __future__ import annotations

from collections.abc import Callable
from enum import IntEnum
from typing import Any

EVENTS = ("data_changed", "input_changed", "outputs_changed")


class DataType(IntEnum):
    """Kind of value a port carries."""

    NOT = 0
    INT = 1
    FLOAT = 2
    STRING = 3
    JSON = 4
    USER = 5


_GENERAL_TYPES = frozenset({DataType.INT, DataType.FLOAT, DataType.STRING, DataType.JSON})
_EMPTY_VALUES: dict[DataType, Any] = {
    DataType.INT: 0,
    DataType.FLOAT: 0.0,
    DataType.STRING: "",
    DataType.JSON: "",
}


class DataModel:
    """Decides how a value flows into a port and what it holds once cut off."""

    def input_data(self, target: NodeData, source: NodeData) -> bool:
        """Copy the source's value into target if their types are compatible."""
        same = target.data_type == source.data_type
        general = target.data_type in _GENERAL_TYPES and source.data_type in _GENERAL_TYPES
        if same or general:
            target._data = source._data
            return True
        return False

    def reset_data(self, target: NodeData, source: NodeData) -> bool:
        """Give target its default, or the empty value of its type."""
        if target.default is not None:
            target._data = target.default
            return True
        if target.data_type in _EMPTY_VALUES:
            target._data = _EMPTY_VALUES[target.data_type]
            return True
        return False


class NodeData:
    """A port holding a value; it takes at most one input and feeds any outputs."""

    def __init__(
        self,
        data: Any = None,
        *,
        default: Any = None,
        shared: bool = False,
        data_type: DataType = DataType.NOT,
        model: DataModel | None = None,
    ) -> None:
        self._data = data
        self.default = default
        self.shared = shared
        self.data_type = DataType(data_type)
        self.model: DataModel | None = DataModel() if model is None else model
        self.input: NodeData | None = None
        self.outputs: set[NodeData] = set()
        self._listeners: dict[str, list[Callable[[], Any]]] = {e: [] for e in EVENTS}

    @property
    def data(self) -> Any:
        return self._data

    @data.setter
    def data(self, value: Any) -> None:
        if value == self._data and type(value) is type(self._data):
            return
        self._data = value
        self._emit("data_changed")

    def subscribe(self, event: str, callback: Callable[[], Any]) -> Callable[[], None]:
        """Call callback whenever event happens; returns a function that stops it."""
        if event not in self._listeners:
            raise ValueError(f"unknown event: {event!r}")
        self._listeners[event].append(callback)

        def unsubscribe() -> None:
            self._remove_listener(event, callback)

        return unsubscribe

    def _remove_listener(self, event: str, callback: Callable[[], Any]) -> None:
        self._listeners[event] = [c for c in self._listeners[event] if c != callback]

    def _emit(self, event: str) -> None:
        for callback in list(self._listeners[event]):
            callback()

    def connect(self, is_output: bool, other: NodeData) -> None:
        """Link other as an output of this port, or as its input."""
        if other is self:
            return
        if is_output:
            _link(self, other)
        else:
            _link(other, self)

    def disconnect(self, is_output: bool, other: NodeData) -> None:
        """Undo a link made by connect with the same arguments."""
        if other is self:
            return
        if is_output:
            _unlink(self, other)
        else:
            _unlink(other, self)

    def is_connected(self, other: NodeData) -> bool:
        return other is self.input or other in self.outputs

    def shared_data_changed(self) -> None:
        """Take the input's value again after it changed."""
        if self.model is None or self.input is None:
            return
        self.model.input_data(self, self.input)
        self._emit("data_changed")

    def close(self) -> None:
        """Cut every link of this port."""
        if self.input is not None:
            self.disconnect(False, self.input)
        for target in list(self.outputs):
            self.disconnect(True, target)


def _link(source: NodeData, target: NodeData) -> None:
    if target.input is source:
        return
    if target.input is not None:
        _unlink(target.input, target)

    target.input = source
    source.outputs.add(target)
    target._emit("input_changed")
    source._emit("outputs_changed")

    if target.model is not None and target.model.input_data(target, source):
        target._emit("data_changed")
        if target.shared:
            source._listeners["data_changed"].append(target.shared_data_changed)


def _unlink(source: NodeData, target: NodeData) -> None:
    if target.input is not source:
        return

    target.input = None
    source.outputs.discard(target)
    target._emit("input_changed")
    source._emit("outputs_changed")

    source._remove_listener("data_changed", target.shared_data_changed)
    if target.model is not None and target.model.reset_data(target, source):
        target._emit("data_changed")