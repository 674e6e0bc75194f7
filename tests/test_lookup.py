import json
import urllib.error
from unittest import mock

import pytest

from ytplayer.lookup import (
    CharacterTable,
    best_music_tag,
    fetch_data,
    netease_search,
    netease_url,
    parse_netease_songs,
    string_similarity,
)

REIMU = {
    "Japanese": "博麗霊夢",
    "Chinese": "博丽灵梦",
    "English": "Reimu Hakurei",
    "Data": "Reimu",
}


def _song(song_id, name, album, artists, pic=None):
    album_info = {"name": album}
    if pic is not None:
        album_info["picUrl"] = pic
    return {
        "id": song_id,
        "name": name,
        "artists": [{"name": a} for a in artists],
        "album": album_info,
    }


class _Fetcher:
    def __init__(self, answer):
        self.answer = answer
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        return self.answer


def test_similarity_identical_and_empty():
    assert string_similarity("Reimu", "Reimu") == 1.0
    assert string_similarity("", "") == 1.0


def test_similarity_disjoint():
    assert string_similarity("abc", "xyz") == 0.0


def test_similarity_one_substitution():
    assert string_similarity("abcd", "abce") == pytest.approx(0.75)


@pytest.mark.parametrize("a,b", [("kitten", "sitting"), ("", "abc"), ("東方", "东方")])
def test_similarity_symmetric_and_bounded(a, b):
    value = string_similarity(a, b)
    assert value == string_similarity(b, a)
    assert 0.0 <= value <= 1.0


def test_character_lookup_exact_and_near():
    table = CharacterTable({"a": [REIMU]})
    assert table.lookup("博丽灵梦") == "Reimu"
    assert table.lookup("Reimu Hakurey") == "Reimu"


def test_character_lookup_miss():
    table = CharacterTable({"a": [REIMU]})
    assert table.lookup("completely unrelated") == ""


def test_character_lookup_uses_key_order():
    other = dict(REIMU, Data="Other")
    table = CharacterTable({"b": [other], "a": [REIMU]})
    assert table.lookup("Reimu Hakurei") == "Reimu"


def test_character_table_load(tmp_path):
    path = tmp_path / "table.json"
    path.write_text(json.dumps({"a": [REIMU]}, ensure_ascii=False), encoding="utf-8")
    assert CharacterTable.load(path).lookup("博麗霊夢") == "Reimu"
    assert CharacterTable.load(tmp_path / "missing.json").lookup("博麗霊夢") == ""


def test_best_tag_exact_title():
    tags = [{"Title": "X", "Album": "A"}, {"Title": "T", "Album": "A"}]
    assert best_music_tag(tags, {"Title": "T", "Album": "A"}) == 1


def test_best_tag_single_candidate():
    tags = [{"Title": "X", "Album": "B"}, {"Title": "Y", "Album": "A"}]
    assert best_music_tag(tags, {"Title": "T", "Album": "A"}) == 1


def test_best_tag_ambiguous_and_none():
    tags = [{"Title": "X", "Album": "A"}, {"Title": "Y", "Album": "A"}]
    assert best_music_tag(tags, {"Title": "T", "Album": "A"}) is None
    assert best_music_tag(tags, {"Title": "T", "Album": "Z"}) is None


def test_best_tag_title_wins_after_ambiguity():
    tags = [{"Title": "X", "Album": "A"}, {"Title": "Y", "Album": "A"}, {"Title": "T", "Album": "A"}]
    assert best_music_tag(tags, {"Title": "T", "Album": "A"}) == 2


def test_best_tag_ex_album():
    tags = [{"Title": "T", "Album": "Other"}]
    assert best_music_tag(tags, {"Title": "T", "Album": "A"}, "Other") == 0


def test_parse_netease_songs_with_cover():
    data = {"songs": [_song(42, "Song", "Album", ["P", "Q"], pic="http://img.example.com/c.jpg")]}
    assert parse_netease_songs(data, True) == [
        {
            "Title": "Song",
            "Album": "Album",
            "Artist": ["P", "Q"],
            "YT_Lyrics_Url": "https://music.163.com/api/song/lyric?id=42&lv=-1&tv=-1",
            "YT_Cover_Url": "http://img.example.com/c.jpg",
        }
    ]


def test_parse_netease_songs_without_cover():
    data = {"songs": [_song(7, "S", "A", [], pic="http://img.example.com/c.jpg")]}
    result = parse_netease_songs(data, False)
    assert "YT_Cover_Url" not in result[0]
    assert result[0]["Artist"] == []
    assert parse_netease_songs({}, True) == []


def test_netease_url_uses_fetch():
    payload = json.dumps({"songs": [_song(1, "S", "A", ["P"], pic="")]}).encode()
    fetch = _Fetcher(payload)
    result = netease_url("https://music.example.com/detail", fetch)
    assert fetch.urls == ["https://music.example.com/detail"]
    assert [r["Title"] for r in result] == ["S"]
    assert "YT_Cover_Url" not in result[0]


@pytest.mark.parametrize("answer", [b"", b"not json", b"[]", b"{}"])
def test_netease_url_bad_answers(answer):
    assert netease_url("https://music.example.com/detail", _Fetcher(answer)) == []


def test_netease_search_builds_url():
    payload = json.dumps({"result": {"songCount": 1, "songs": [_song(3, "S", "A", ["P"])]}})
    fetch = _Fetcher(payload.encode())
    result = netease_search("term", fetch)
    assert fetch.urls == ["https://music.163.com/api/search/get?s=term&type=1&offset=0&limit=5"]
    assert result[0]["Album"] == "A"


def test_netease_search_no_songs():
    payload = json.dumps({"result": {"songCount": 0, "songs": [_song(3, "S", "A", [])]}})
    assert netease_search("term", _Fetcher(payload.encode())) == []


def test_netease_search_empty_term_does_not_fetch():
    fetch = _Fetcher(b"{}")
    assert netease_search("", fetch) == []
    assert fetch.urls == []


def test_fetch_data_reads_body_and_quotes_url():
    with mock.patch("urllib.request.urlopen") as urlopen:
        urlopen.return_value.__enter__.return_value.read.return_value = b"payload"
        assert fetch_data("https://example.com/歌词:x y") == b"payload"
        request = urlopen.call_args[0][0]
    assert request.full_url.startswith("https://example.com/")
    assert "%20" in request.full_url
    assert "歌" not in request.full_url


def test_fetch_data_error_gives_empty():
    with mock.patch("urllib.request.urlopen", side_effect=urllib.error.URLError("down")):
        assert fetch_data("https://example.com/") == b""