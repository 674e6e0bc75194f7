"""Song tags scraped from album and lyrics pages of the Touhou wiki."""

from __future__ import annotations

import copy
import logging
import re
import urllib.parse
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ytplayer.lookup import (
    ALBUM,
    ARTIST,
    COVER_URL,
    LYRICS_URL,
    TITLE,
    CharacterTable,
    fetch_data,
)
from ytplayer.xmlstream import TokenType, XmlStreamReader, read_next_match

log = logging.getLogger(__name__)

THWIKI_ROOT = "https://thwiki.cc"
LYRICS_FILE_URL = "https://lyrics.thwiki.cc/{}.1.{}.lrc"
LYRICS_PREFIX = "歌词:"

SOCIETIES = "Societies"
ORIGINAL_SONG = "Original_Song"
CHARACTER_SONG = "Character_Song"
ORIGINAL_TITLE = "Original_Title"

_SEARCH_NAME = re.compile(r"歌词:(.+)$")
_SEARCH_FILTER = re.compile(
    r"^(.*)(?=\(|（|\[|［|~|～|-|－|feat|ver)", re.IGNORECASE
)

Fetch = Callable[[str], bytes]


def _characters(characters: CharacterTable | None) -> CharacterTable:
    if characters is not None:
        return characters
    try:
        return CharacterTable.load()
    except (OSError, ValueError):
        return CharacterTable()


def _lyrics_urls(title: str) -> list[str]:
    return [LYRICS_FILE_URL.format(title, "ja"), LYRICS_FILE_URL.format(title, "zh")]


def _character_songs(originals: list[str], characters: CharacterTable) -> list[str]:
    found: list[str] = []
    for song in originals:
        name = characters.lookup(song)
        if name and name not in found:
            found.append(name)
    return found


@dataclass
class _Track:
    title: str = ""
    artists: list[str] = field(default_factory=list)
    original_songs: list[str] = field(default_factory=list)


def _read_artists(reader: XmlStreamReader, artists: list[str]) -> None:
    """Collect the linked names of a singer cell up to its end."""
    while not reader.at_end():
        token = reader.read_next()
        if token is TokenType.END_ELEMENT and reader.name() == "td":
            return
        if token is not TokenType.START_ELEMENT:
            continue
        if reader.name() != "a" or "title" not in reader.attributes():
            continue
        reader.read_next()
        value = reader.text().strip()
        if value:
            artists.append(value)


def _read_originals(reader: XmlStreamReader, originals: list[str], collecting: bool) -> bool:
    """Collect original song names of a cell; returns whether collection is on."""
    while not reader.at_end():
        token = reader.read_next()
        name = reader.name()
        attributes = reader.attributes()
        if token is TokenType.END_ELEMENT and name == "td":
            break
        if token is not TokenType.START_ELEMENT:
            continue
        if name == "a" and collecting:
            reader.read_next()
            value = reader.text().strip()
            if value:
                originals.append(value)
        elif attributes.get("class") == "ogmusic":
            collecting = True
        elif attributes.get("class") == "source":
            collecting = False
    return collecting


def parse_album_page(
    data: bytes | str, characters: CharacterTable | None = None
) -> list[dict[str, Any]]:
    """Tag sets of every track listed on an album page; empty if it is not one."""
    table = _characters(characters)
    reader = XmlStreamReader(data)

    if not read_next_match(reader, "td", {"class": "label"}, "名称"):
        log.debug("parse_album_page: no album name found")
        return []
    read_next_match(reader, "td", {}, "true")
    album = reader.text().strip()

    read_next_match(reader, "td", {"class": "label"}, "制作方")
    read_next_match(reader, "td")
    societies: list[str] = []
    while not reader.at_end():
        token = reader.read_next()
        if token is TokenType.END_ELEMENT and reader.name() == "td":
            break
        if token is not TokenType.START_ELEMENT or reader.name() != "a":
            continue
        reader.read_next()
        societies.append(reader.text().strip())

    read_next_match(reader, "a", {"class": "image", "title": "封面图片"})
    cover = THWIKI_ROOT + reader.attributes().get("href", "")

    if not read_next_match(reader, "table", {"class": "wikitable musicTable"}):
        log.debug("parse_album_page: no music table found")
        return []

    results: list[dict[str, Any]] = []

    def flush(track: _Track) -> None:
        if not track.title:
            return
        results.append(
            {
                TITLE: track.title,
                ALBUM: album,
                ARTIST: list(track.artists),
                SOCIETIES: list(societies),
                ORIGINAL_SONG: list(track.original_songs),
                CHARACTER_SONG: _character_songs(track.original_songs, table),
                LYRICS_URL: _lyrics_urls(track.title),
                COVER_URL: cover,
            }
        )

    track = _Track()
    collecting = False
    while not reader.at_end():
        reader.read_next()
        name = reader.name()
        attributes = reader.attributes()
        if reader.token_type() is TokenType.END_ELEMENT and name == "tbody":
            break
        if reader.token_type() is not TokenType.START_ELEMENT or name != "td":
            continue

        if "id" in attributes and "info" in attributes.get("class", ""):
            flush(track)
            track = _Track()
            read_next_match(reader, "td", {"class": "title"})
            reader.read_next()
            if reader.token_type() is TokenType.CHARACTERS:
                track.title = reader.text().strip()
            elif reader.name() == "a":
                reader.read_next()
                track.title = reader.text().strip()
            else:
                read_next_match(reader, "a", {"href": ""}, "true")
                track.title = reader.text().strip()
            continue

        reader.read_next()
        is_label = attributes.get("class") == "label"
        if is_label and reader.text() == "演唱":
            if not read_next_match(reader, "td", {"class": "text"}):
                break
            _read_artists(reader, track.artists)
        elif is_label and reader.text() == "原曲":
            if not read_next_match(reader, "td", {"class": "text"}):
                break
            collecting = _read_originals(reader, track.original_songs, collecting)

    flush(track)
    return results


def _parse_lyrics_entry(
    reader: XmlStreamReader, previous: dict[str, Any] | None, table: CharacterTable
) -> dict[str, Any]:
    read_next_match(reader, "a", {"class": "image"})
    cover = THWIKI_ROOT + reader.attributes().get("href", "")

    read_next_match(reader, "a", {})
    reader.read_next()
    title = reader.text().strip()

    read_next_match(reader, "a", {})
    reader.read_next()
    album = reader.text().strip()

    societies: list[str] = []
    artists: list[str] = []
    originals: list[str] = []
    target: list[str] | None = None
    while not reader.at_end() and not reader.has_error():
        token = reader.read_next()
        if token is TokenType.START_ELEMENT:
            if reader.name() != "a" or target is None:
                continue
            reader.read_next()
            value = reader.text().strip()
            if value:
                target.append(value)
        elif token is TokenType.END_ELEMENT:
            if reader.name() == "dd":
                break
        elif token is TokenType.CHARACTERS and not reader.is_whitespace():
            text = reader.text()
            if "社团" in text:
                target = societies
            elif "演唱" in text or "翻唱" in text:
                target = artists
            elif "原曲" in text:
                target = originals
            elif ":" in text or "\uFF1A" in text:
                target = None

    character_songs = _character_songs(originals, table)
    lyrics = _lyrics_urls(title)

    value = copy.deepcopy(previous) if previous is not None else {}
    value[TITLE] = title
    value[ALBUM] = album
    if artists:
        value[ARTIST] = artists
    if societies:
        value[SOCIETIES] = societies
    if originals:
        value[ORIGINAL_SONG] = originals
    if character_songs:
        value[CHARACTER_SONG] = character_songs
    if lyrics:
        value[LYRICS_URL] = lyrics
    if cover:
        value[COVER_URL] = cover
    value.setdefault(ORIGINAL_TITLE, title)
    return value


def parse_lyrics_page(
    data: bytes | str, characters: CharacterTable | None = None
) -> list[dict[str, Any]]:
    """Tag sets of every version on a lyrics page; empty if it has no song table.

    Each later version starts from a copy of the first one's tags, so it keeps
    the first title as its original title and inherits what it does not name.
    """
    table = _characters(characters)
    reader = XmlStreamReader(data)
    if not read_next_match(reader, "table", {"class": "wikitable mw-collapsible"}):
        return []
    results = [_parse_lyrics_entry(reader, None, table)]
    while read_next_match(reader, "tr", {"class": "mw-collapsible mw-collapsed"}):
        results.append(_parse_lyrics_entry(reader, results[0], table))
    return results


def th_wiki_album(
    url: str, fetch: Fetch | None = None, characters: CharacterTable | None = None
) -> list[dict[str, Any]]:
    """Tag sets from the album page at url."""
    tags = parse_album_page((fetch or fetch_data)(url), characters)
    if not tags:
        log.debug("th_wiki_album: nothing found at %s", url)
    return tags


def th_wiki_lyrics(
    url: str, fetch: Fetch | None = None, characters: CharacterTable | None = None
) -> list[dict[str, Any]]:
    """Tag sets from the lyrics page at url.

    If the page has no song table, the song name is cut before any version
    marker such as a bracket, a dash, "feat" or "ver" and that page is tried.
    """
    fetch = fetch or fetch_data
    tags = parse_lyrics_page(fetch(url), characters)
    if tags:
        return tags

    decoded = urllib.parse.unquote(url)
    match = _SEARCH_NAME.search(decoded)
    search = match.group(1) if match else ""
    match = _SEARCH_FILTER.match(search)
    if match is None:
        log.debug("th_wiki_lyrics: nothing found at %s", url)
        return []
    search = match.group(1).strip()
    return th_wiki_lyrics(f"{THWIKI_ROOT}/{LYRICS_PREFIX}{search}", fetch, characters)


def th_wiki(
    url: str, fetch: Fetch | None = None, characters: CharacterTable | None = None
) -> list[dict[str, Any]]:
    """Tag sets from a wiki page, read as lyrics or album page by its url."""
    if LYRICS_PREFIX in urllib.parse.unquote(url):
        return th_wiki_lyrics(url, fetch, characters)
    return th_wiki_album(url, fetch, characters)