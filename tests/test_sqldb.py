import sqlite3
from pathlib import Path

import pytest

from ytplayer.dbinfo import FileInfo, ListInfo
from ytplayer.sqldb import SqlDatabase


@pytest.fixture
def db(tmp_path):
    database = SqlDatabase(tmp_path / "test.db")
    yield database
    database.close()


def _media(tmp_path: Path, name: str) -> Path:
    path = tmp_path / name
    path.write_bytes(b"audio")
    return path


def _file_with_tags(db, tmp_path, name, tags):
    info = FileInfo(path=str(_media(tmp_path, name)), tags=tags)
    return db.add_file(info)


def test_add_file_path_is_idempotent_and_canonical(db, tmp_path):
    media = _media(tmp_path, "a.mp3")
    first = db.add_file_path(media)
    second = db.add_file_path(media)
    assert first == second
    assert db.get_file(first).path == str(media.resolve())
    assert db.file_id(str(media.resolve())) == first


def test_add_file_path_missing_file(db, tmp_path):
    with pytest.raises(FileNotFoundError):
        db.add_file_path(tmp_path / "missing.mp3")


def test_file_id_unknown_is_none(db):
    assert db.file_id("/no/such/file") is None


def test_get_file_missing_raises(db):
    with pytest.raises(KeyError):
        db.get_file(42)


def test_add_file_sets_id_and_round_trips_tags(db, tmp_path):
    info = FileInfo(path=str(_media(tmp_path, "b.mp3")), tags={"Title": "song"})
    file_id = db.add_file(info)
    assert info.id == file_id
    stored = db.get_file(file_id)
    assert stored.tags == {"Title": "song"}
    assert stored.id == file_id


def test_get_files_returns_only_stored(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Title": "a"})
    b = _file_with_tags(db, tmp_path, "b.mp3", {"Title": "b"})
    files = db.get_files([a, b, 999])
    assert sorted(files) == sorted([a, b])
    assert files[b].tags == {"Title": "b"}


def test_set_and_get_file_field(db, tmp_path):
    file_id = _file_with_tags(db, tmp_path, "a.mp3", {})
    db.set_file_field(file_id, "Tags", '{"Album": "x"}')
    assert db.get_file(file_id).tags == {"Album": "x"}
    assert db.get_file_field(file_id, "Tags") == '{"Album": "x"}'


def test_invalid_field_name_rejected(db, tmp_path):
    file_id = _file_with_tags(db, tmp_path, "a.mp3", {})
    with pytest.raises(ValueError):
        db.set_file_field(file_id, "Tags = 1; --", "x")
    with pytest.raises(ValueError):
        db.get_list_field("list", "bad name")


def test_delete_file(db, tmp_path):
    file_id = _file_with_tags(db, tmp_path, "a.mp3", {})
    db.delete_file(file_id)
    with pytest.raises(KeyError):
        db.get_file(file_id)


def test_tag_keys_and_values(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Artist": "x", "Album": "al"})
    b = _file_with_tags(db, tmp_path, "b.mp3", {"Artist": "y"})
    assert sorted(db.file_tag_keys([a, b])) == ["Album", "Artist"]
    assert sorted(db.file_tag_values([a, b], "Artist")) == ["x", "y"]
    assert db.file_tag_keys([b]) == ["Artist"]


def test_list_tag_keys_follow_list(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Artist": "x"})
    _file_with_tags(db, tmp_path, "b.mp3", {"Genre": "g"})
    db.add_list(ListInfo(name="list"))
    db.add_list_file("list", a)
    assert db.list_tag_keys("list") == ["Artist"]
    assert db.list_tag_values("list", "Artist") == ["x"]


def test_search_files_matches_array_elements(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Artist": ["x", "z"]})
    b = _file_with_tags(db, tmp_path, "b.mp3", {"Artist": "y"})
    assert db.search_files([a, b], "z") == [a]
    assert db.search_files([a, b], "y") == [b]
    assert db.search_files([a, b], "nothing") == []


def test_search_list(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Title": "t"})
    b = _file_with_tags(db, tmp_path, "b.mp3", {"Title": "t"})
    db.add_list(ListInfo(name="list", file_ids=[b]))
    assert db.search_list("list", "t") == [b]
    assert a not in db.search_list("list", "t")


def test_list_names_in_insertion_order(db):
    for name in ("one", "two", "three"):
        db.add_list(ListInfo(name=name))
    assert db.list_names() == ["one", "two", "three"]


def test_add_list_duplicate_name(db):
    db.add_list(ListInfo(name="list"))
    with pytest.raises(sqlite3.IntegrityError):
        db.add_list(ListInfo(name="list"))


def test_get_list_round_trip(db):
    db.add_list(ListInfo(name="list", file_ids=[3, 1], sort_tag="Title", select_tag=["A"]))
    info = db.get_list("list")
    assert info == ListInfo(name="list", file_ids=[3, 1], sort_tag="Title", select_tag=["A"])


def test_get_list_missing_raises(db):
    with pytest.raises(KeyError):
        db.get_list("nothing")


def test_add_list_file_skips_duplicates(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {})
    b = _file_with_tags(db, tmp_path, "b.mp3", {})
    db.add_list(ListInfo(name="list"))
    assert db.add_list_file("list", a) is True
    assert db.add_list_file("list", b) is True
    assert db.add_list_file("list", a) is False
    assert db.list_file_ids("list") == [a, b]


def test_add_list_path(db, tmp_path):
    db.add_list(ListInfo(name="list"))
    media = _media(tmp_path, "c.mp3")
    file_id = db.add_list_path("list", media)
    assert db.list_file_ids("list") == [file_id]
    assert db.add_list_path("list", media) == file_id
    assert db.list_file_ids("list") == [file_id]


def test_list_file_ids_missing_list_is_empty(db):
    assert db.list_file_ids("nothing") == []


def test_delete_list_file_index(db):
    db.add_list(ListInfo(name="list", file_ids=[5, 6, 7]))
    db.delete_list_file_index("list", 1)
    assert db.list_file_ids("list") == [5, 7]


def test_delete_list(db):
    db.add_list(ListInfo(name="list"))
    db.delete_list("list")
    assert db.list_names() == []


def test_sort_ids_by_tag_and_by_id(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Title": "b"})
    b = _file_with_tags(db, tmp_path, "b.mp3", {"Title": ["A", "z"]})
    c = _file_with_tags(db, tmp_path, "c.mp3", {"Title": "C"})
    assert db.sort_ids([a, b, c], "Title") == [b, a, c]
    assert db.sort_ids([a, b, c], "ID") == [c, b, a]


def test_sort_ids_missing_tag_sorts_first_and_stable(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Title": "x"})
    b = _file_with_tags(db, tmp_path, "b.mp3", {})
    c = _file_with_tags(db, tmp_path, "c.mp3", {})
    assert db.sort_ids([a, b, c], "Title") == [b, c, a]


def test_sort_uses_transliterate(tmp_path):
    mapping = {"甲": "b", "乙": "a"}
    with SqlDatabase(tmp_path / "t.db", transliterate=lambda s: mapping.get(s, s)) as db:
        a = _file_with_tags(db, tmp_path, "a.mp3", {"Title": "甲"})
        b = _file_with_tags(db, tmp_path, "b.mp3", {"Title": "乙"})
        assert db.sort_ids([a, b], "Title") == [b, a]


def test_sort_list_stores_order_and_tag(db, tmp_path):
    a = _file_with_tags(db, tmp_path, "a.mp3", {"Title": "b"})
    b = _file_with_tags(db, tmp_path, "b.mp3", {"Title": "a"})
    db.add_list(ListInfo(name="list", file_ids=[a, b]))
    db.sort_list("list", "Title")
    info = db.get_list("list")
    assert info.file_ids == [b, a]
    assert info.sort_tag == "Title"
    assert db.get_list_field("list", "ReverseSortTag") == 0


def test_sort_list_by_id_toggles_reverse(db):
    db.add_list(ListInfo(name="list", file_ids=[1, 2, 3], sort_tag="Title"))
    db.sort_list("list", "ID")
    assert db.list_file_ids("list") == [3, 2, 1]
    assert db.get_list_field("list", "ReverseSortTag") == 1
    assert db.get_list("list").sort_tag == "Title"
    db.sort_list("list", "ID")
    assert db.list_file_ids("list") == [1, 2, 3]
    assert db.get_list_field("list", "ReverseSortTag") == 0


def test_move_list_forward_and_back(db):
    for name in ("a", "b", "c", "d"):
        db.add_list(ListInfo(name=name))
    db.move_list("a", "c")
    assert db.list_names() == ["b", "c", "a", "d"]
    db.move_list("d", "b")
    assert db.list_names() == ["d", "b", "c", "a"]


def test_move_list_missing_raises(db):
    db.add_list(ListInfo(name="a"))
    with pytest.raises(KeyError):
        db.move_list("a", "nothing")


def test_set_list_field(db):
    db.add_list(ListInfo(name="list"))
    db.set_list_field("list", "SortTag", "Album")
    assert db.get_list("list").sort_tag == "Album"


def test_context_manager_closes(tmp_path):
    with SqlDatabase(tmp_path / "t.db") as db:
        db.add_list(ListInfo(name="list"))
    with pytest.raises(sqlite3.ProgrammingError):
        db.list_names()


def test_data_persists_across_connections(tmp_path):
    path = tmp_path / "t.db"
    with SqlDatabase(path) as db:
        db.add_list(ListInfo(name="kept", file_ids=[4]))
    with SqlDatabase(path) as db:
        assert db.list_file_ids("kept") == [4]
        assert db.list_names() == ["kept"]