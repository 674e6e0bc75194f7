# ytplayer

The library core of a music player: storage of media files and play
lists with their tags, tag queries and sorting, file helpers, interface
settings, node-editor data links, and tag lookup from online music
catalogues and the Touhou wiki. It uses only the standard library.

## Install

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `ytplayer.general` — `read_json_object` and `write_json_object` (a
  file that cannot be read or is not a JSON object reads as `{}`),
  `json_first` and `json_list` for tag values, `kmp_find` (index of a
  substring or `-1`), and file operations `copy_file`, `move_file`,
  `copy_folder`, `move_folder` and `delete_path`. The single-file
  operations return the new path or `None`; the folder operations return
  the source paths of the files they handled.
- `ytplayer.settings` — `Settings`, a dataclass of colours (`Color`),
  sizes (`Size`), radii, spacings, margins and open list ids, read and
  written as JSON with `Settings.load` and `Settings.save` (by default
  `YT_PlayerData/Info.json`); `ensure_data_dirs` creates the
  `YT_PlayerData`, `YT_PlayerCache` and `YT_PlayerOutput` directories.
- `ytplayer.nodes` — `NodeData` ports with one input and any number of
  outputs. `connect` and `disconnect` link ports, `close` cuts every link,
  and `subscribe` registers callbacks for `"data_changed"`,
  `"input_changed"` and `"outputs_changed"`. A `DataModel` copies values
  between ports of the same `DataType`, or between any of INT, FLOAT,
  STRING and JSON, and resets a port to its default or empty value when
  its input is cut. Ports created with `shared=True` follow later changes
  of their input's value.
- `ytplayer.dbinfo` — the `FileInfo` and `ListInfo` records of the SQL
  store, `canonical_path`, tag helpers `tag_first` and `tag_list`, and
  `list_to_json_bytes` / `list_from_json_bytes`.
- `ytplayer.itemdb` — `ItemDatabase`, items keyed by id and play lists
  keyed by name, kept in two JSON files. Ids of erased items are reused.
  It searches tag values by substring (`search_items`), sorts lists by a
  tag (`sort_list`, `sort_ids`; `"ID"` reverses), and lists tag keys and
  values. Missing items or lists raise `KeyError`, a bad list name
  `ValueError`, a bad index `IndexError`.
- `ytplayer.sqldb` — `SqlDatabase`, the same kind of store on SQLite,
  with tags kept as JSON. It creates its tables if needed, keeps lists in
  an order that `move_list` changes, and searches tags by exact value
  (`search_files`). `add_file_path` raises `FileNotFoundError` for a
  path that does not exist.
- `ytplayer.xmlstream` — `XmlStreamReader`, a pull parser returning one
  `Token` at a time, and `read_next_match` to step to the next element
  with a given name, attributes and following text.
- `ytplayer.lookup` — `fetch_data` (HTTP GET, `b""` on failure),
  `string_similarity`, `CharacterTable` (maps song names to characters,
  loaded by default from `YT_PlayerData/TH_CharacterTable.json`),
  `best_music_tag`, and NetEase catalogue queries `netease_url`,
  `netease_search` and `parse_netease_songs`.
- `ytplayer.thwiki` — `parse_album_page`, `parse_lyrics_page`,
  `th_wiki_album`, `th_wiki_lyrics` and `th_wiki`, which read song tags
  from wiki pages. `th_wiki_lyrics` retries with the song name cut before
  a version marker when a page has no song table.

Functions that go to the network take an optional `fetch` callable
(`url -> bytes`), so pages can be supplied from elsewhere.

## Example

```python
from ytplayer.itemdb import ItemDatabase, ListInfo

with ItemDatabase("items.json", "lists.json") as db:
    db.add_list(ListInfo(name="Favourites"))
    item_id = db.add_list_path("Favourites", "music/song.flac")
    print(db.get_list("Favourites").id_list)
```

The database writes its files when the `with` block ends, or when
`save()` is called.

## What it does not do

- It plays no audio and has no user interface or command; it is a
  library to build a player on.
- It does not transliterate Chinese text for sorting. Both databases take
  a `transliterate` callable for that and otherwise compare tag values
  as they are, ignoring case.
- It does not read or write tags inside media files, nor download cover
  images or lyrics; lookups return tag sets with the URLs of those.