"""Network fetching, character lookup and music tag searches."""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ytplayer.general import read_json_object

log = logging.getLogger(__name__)

CHARACTER_TABLE_PATH = os.path.join("YT_PlayerData", "TH_CharacterTable.json")
SIMILARITY_THRESHOLD = 0.80
NETEASE_LYRICS_URL = "https://music.163.com/api/song/lyric?id={}&lv=-1&tv=-1"
NETEASE_SEARCH_URL = "https://music.163.com/api/search/get?s={}&type=1&offset=0&limit=5"

TITLE = "Title"
ALBUM = "Album"
ARTIST = "Artist"
LYRICS_URL = "YT_Lyrics_Url"
COVER_URL = "YT_Cover_Url"

_URL_SAFE = ":/?#[]@!$&'()*+,;=%~"

Fetch = Callable[[str], bytes]


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _json_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return default


def _object(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def fetch_data(url: str, timeout: float = 30.0) -> bytes:
    """The body of a GET request, or b"" if the request fails."""
    request = urllib.request.Request(urllib.parse.quote(url, safe=_URL_SAFE))
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return response.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        log.debug("fetch_data error for %s: %s", url, exc)
        return b""


def string_similarity(s1: str, s2: str) -> float:
    """One minus the edit distance divided by the longer length; 1.0 for two empties."""
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (c1 != c2))
            )
        previous = current
    longest = max(len(s1), len(s2))
    return 1.0 if longest == 0 else 1.0 - previous[-1] / longest


class CharacterTable:
    """Maps song names in Japanese, Chinese or English to a character name.

    The table is a JSON object of arrays of entries holding "Japanese",
    "Chinese", "English" and "Data"; groups are searched in key order.
    """

    def __init__(self, table: Mapping[str, Any] | None = None) -> None:
        self.table = dict(table or {})

    @classmethod
    def load(cls, path: str | os.PathLike = CHARACTER_TABLE_PATH) -> CharacterTable:
        return cls(read_json_object(path))

    def lookup(self, data: str) -> str:
        """"Data" of the first entry with a name similar enough to data, or ""."""
        for key in sorted(self.table):
            group = self.table[key]
            if not isinstance(group, list):
                continue
            for entry in group:
                info = _object(entry)
                for language in ("Japanese", "Chinese", "English"):
                    if string_similarity(_str(info.get(language)), data) >= SIMILARITY_THRESHOLD:
                        return _str(info.get("Data"))
        return ""


def best_music_tag(
    tags: Sequence[Mapping[str, Any]], data: Mapping[str, Any], ex_album: str = ""
) -> int | None:
    """Index of the tag set that best fits data, or None.

    Only tags whose album equals data's album or ex_album count.  The first
    of those with the same title wins; otherwise a single candidate is taken,
    and several candidates give None.
    """
    title = _str(data.get(TITLE))
    album = _str(data.get(ALBUM))
    best: int | None = None
    ambiguous = False
    for index, tag in enumerate(tags):
        candidate_title = _str(tag.get(TITLE))
        candidate_album = _str(tag.get(ALBUM))
        if album != candidate_album and ex_album != candidate_album:
            continue
        if title == candidate_title:
            return index
        if best is not None or ambiguous:
            best = None
            ambiguous = True
            continue
        best = index
    return best


def parse_netease_songs(data: Mapping[str, Any], with_cover: bool = True) -> list[dict[str, Any]]:
    """Tag sets from the "songs" array of a NetEase API answer."""
    songs = data.get("songs") if isinstance(data, Mapping) else None
    if not isinstance(songs, list):
        return []
    results = []
    for song in songs:
        info = _object(song)
        artists = info.get("artists")
        artist = (
            [_str(_object(a).get("name")) for a in artists] if isinstance(artists, list) else []
        )
        album_info = _object(info.get("album"))
        value: dict[str, Any] = {
            TITLE: _str(info.get("name")),
            ALBUM: _str(album_info.get("name")),
            ARTIST: artist,
            LYRICS_URL: NETEASE_LYRICS_URL.format(_json_int(info.get("id"))),
        }
        if with_cover:
            cover = _str(album_info.get("picUrl"))
            if cover:
                value[COVER_URL] = cover
        results.append(value)
    return results


def _fetch_object(url: str, fetch: Fetch) -> dict[str, Any]:
    data = fetch(url)
    if not data:
        return {}
    try:
        document = json.loads(data)
    except (ValueError, UnicodeDecodeError):
        document = None
    if not isinstance(document, dict) or not document:
        log.debug("%s: answer is not a JSON object", url)
        return {}
    return document


def netease_url(url: str, fetch: Fetch | None = None) -> list[dict[str, Any]]:
    """Tag sets from a NetEase song detail URL."""
    document = _fetch_object(url, fetch or fetch_data)
    if not document:
        return []
    return parse_netease_songs(document, with_cover=True)


def netease_search(search_data: str, fetch: Fetch | None = None) -> list[dict[str, Any]]:
    """Tag sets of the first NetEase search results for search_data."""
    if not search_data:
        log.debug("netease_search: nothing to search for")
        return []
    url = NETEASE_SEARCH_URL.format(search_data)
    document = _fetch_object(url, fetch or fetch_data)
    if not document:
        return []
    result = _object(document.get("result"))
    if _json_int(result.get("songCount"), 0) == 0:
        log.debug("%s: no songs found", url)
        return []
    return parse_netease_songs(result, with_cover=False)