from __future__ import annotations

import json

from worldgraph.__main__ import main

from .maps import tiled_map


def _dirs(maps):
    return ["--root", str(maps.root), "--buildings", str(maps.buildings)]


def test_json_output_written_to_file(shop_maps, tmp_path):
    out = tmp_path / "out" / "graph.json"

    code = main(["--world", "town", *_dirs(shop_maps), "--json", "--out", str(out)])

    assert code == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["main_world"] == 0
    assert [w["name"] for w in payload["worlds"]] == ["town", "shop"]
    assert payload["tree"]["children"][0]["door"] == [3, 5]
    assert {"from": {"world": 0, "tile": [3, 5]}, "to": {"world": 1, "tile": [2, 4]}} in payload["connections"]
    assert payload["buildings"][0]["inside_world_name"] == "shop"


def test_human_output_lists_worlds_and_connections(shop_maps, capsys):
    code = main(["--world", "town", *_dirs(shop_maps)])

    assert code == 0
    out = capsys.readouterr().out
    assert "main_world: 0 (town)" in out
    assert "1: shop [interior] 5x5" in out
    assert "connections: 2" in out
    assert "0@(3, 5) -> 1@(2, 4)" in out


def test_config_file_supplies_directories(shop_maps, tmp_path, capsys):
    config = tmp_path / "worlds.json"
    config.write_text(
        json.dumps({"root_dir": str(shop_maps.root), "buildings_dir": str(shop_maps.buildings)}),
        encoding="utf-8",
    )

    assert main(["--world", "town", "--config", str(config)]) == 0
    assert "connections: 2" in capsys.readouterr().out


def test_bad_options_exit_with_two(tmp_path, capsys):
    assert main(["--world", "town", "--config", str(tmp_path / "missing.json")]) == 2
    assert main(["--world", "town", "--tile-size", "0"]) == 2
    assert "Error:" in capsys.readouterr().err


def test_load_failure_exits_with_one(map_dirs, capsys):
    map_dirs.write_root("town", tiled_map(4, 4, objects=[{"x": 0, "y": 0, "properties": {"door": 1}}]))

    code = main(["--world", "town", *_dirs(map_dirs)])

    assert code == 1
    assert "not in any building" in capsys.readouterr().err


def test_missing_map_exits_with_one(map_dirs, capsys):
    assert main(["--world", "nowhere", *_dirs(map_dirs)]) == 1
    assert "file not found" in capsys.readouterr().err


def test_undecodable_map_exits_with_one(map_dirs, capsys):
    (map_dirs.root / "town.json").write_bytes(b'{"width": 2, "height": 2, "layers": [\xff\xfe]}')

    assert main(["--world", "town", *_dirs(map_dirs)]) == 1
    assert "not UTF-8" in capsys.readouterr().err
