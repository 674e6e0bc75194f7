import pytest

from ytplayer.nodes import DataModel, DataType, NodeData


def _counter(node, event):
    calls = []
    node.subscribe(event, lambda: calls.append(1))
    return calls


def test_connect_input_copies_same_type():
    source = NodeData(42, data_type=DataType.INT)
    target = NodeData(data_type=DataType.INT)
    target.connect(False, source)
    assert target.data == 42
    assert target.input is source
    assert target in source.outputs
    assert target.is_connected(source)
    assert source.is_connected(target)


def test_connect_output_is_symmetric():
    source = NodeData("abc", data_type=DataType.STRING)
    target = NodeData(data_type=DataType.STRING)
    source.connect(True, target)
    assert target.input is source
    assert target.data == "abc"


def test_general_types_copy_across():
    source = NodeData(7, data_type=DataType.INT)
    target = NodeData("x", data_type=DataType.STRING)
    target.connect(False, source)
    assert target.data == 7


def test_incompatible_types_do_not_copy():
    source = NodeData(7, data_type=DataType.INT)
    target = NodeData("keep", data_type=DataType.USER)
    changes = _counter(target, "data_changed")
    target.connect(False, source)
    assert target.data == "keep"
    assert changes == []
    assert target.input is source


def test_connect_self_is_ignored():
    node = NodeData(1, data_type=DataType.INT)
    node.connect(False, node)
    assert node.input is None
    assert node.outputs == set()


@pytest.mark.parametrize(
    "data_type, empty",
    [(DataType.INT, 0), (DataType.FLOAT, 0.0), (DataType.STRING, ""), (DataType.JSON, "")],
)
def test_disconnect_resets_to_empty(data_type, empty):
    source = NodeData(5, data_type=data_type)
    target = NodeData(data_type=data_type)
    target.connect(False, source)
    target.disconnect(False, source)
    assert target.data == empty
    assert target.input is None
    assert target not in source.outputs


def test_disconnect_uses_default():
    source = NodeData(5, data_type=DataType.INT)
    target = NodeData(data_type=DataType.INT, default=99)
    source.connect(True, target)
    source.disconnect(True, target)
    assert target.data == 99


def test_disconnect_user_type_keeps_value():
    source = NodeData("v", data_type=DataType.USER)
    target = NodeData(data_type=DataType.USER)
    target.connect(False, source)
    target.disconnect(False, source)
    assert target.data == "v"


def test_reconnect_detaches_previous_input():
    first = NodeData(1, data_type=DataType.INT)
    second = NodeData(2, data_type=DataType.INT)
    target = NodeData(data_type=DataType.INT)
    target.connect(False, first)
    target.connect(False, second)
    assert target.input is second
    assert target not in first.outputs
    assert target.data == 2


def test_shared_follows_source_changes():
    source = NodeData(1, data_type=DataType.INT)
    target = NodeData(data_type=DataType.INT, shared=True)
    target.connect(False, source)
    source.data = 10
    assert target.data == 10
    target.disconnect(False, source)
    source.data = 20
    assert target.data == 0


def test_not_shared_ignores_source_changes():
    source = NodeData(1, data_type=DataType.INT)
    target = NodeData(data_type=DataType.INT)
    target.connect(False, source)
    source.data = 10
    assert target.data == 1


def test_events_fire_on_connect():
    source = NodeData(1, data_type=DataType.INT)
    target = NodeData(data_type=DataType.INT)
    inputs = _counter(target, "input_changed")
    outputs = _counter(source, "outputs_changed")
    data = _counter(target, "data_changed")
    target.connect(False, source)
    assert (len(inputs), len(outputs), len(data)) == (1, 1, 1)


def test_close_cuts_all_links():
    upstream = NodeData(1, data_type=DataType.INT)
    node = NodeData(data_type=DataType.INT)
    downstream = [NodeData(data_type=DataType.INT) for _ in range(3)]
    node.connect(False, upstream)
    for d in downstream:
        node.connect(True, d)
    node.close()
    assert node.input is None
    assert node.outputs == set()
    assert upstream.outputs == set()
    assert all(d.input is None for d in downstream)


def test_unknown_event_raises():
    with pytest.raises(ValueError):
        NodeData().subscribe("nope", lambda: None)


def test_unsubscribe_stops_calls():
    node = NodeData(1)
    calls = []
    stop = node.subscribe("data_changed", lambda: calls.append(1))
    node.data = 2
    stop()
    node.data = 3
    assert calls == [1]


def test_model_direct_calls():
    model = DataModel()
    source = NodeData(3.5, data_type=DataType.FLOAT)
    target = NodeData(data_type=DataType.JSON)
    assert model.input_data(target, source) is True
    assert target.data == 3.5
    user = NodeData(data_type=DataType.USER)
    assert model.input_data(user, source) is False
    assert model.reset_data(NodeData(data_type=DataType.NOT), source) is False