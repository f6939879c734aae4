from __future__ import annotations

import json
from pathlib import Path

import pytest

from worldgraph.options import LoaderOptions


def test_defaults():
    opts = LoaderOptions()
    assert opts.extension == ".json"
    assert opts.tile_size == 32
    assert opts.effective_border_thickness == 32.0
    assert opts.effective_border_padding == 8.0
    assert opts.map_path("shop", is_building=True) == Path("worlds") / "buildings" / "shop.json"
    assert opts.map_path("town", is_building=False) == Path("worlds") / "town.json"


def test_extension_gets_leading_dot():
    assert LoaderOptions(extension="tmj").extension == ".tmj"


@pytest.mark.parametrize("kwargs", [{"tile_size": 0}, {"pixels_per_metre": -1.0}])
def test_non_positive_scales_are_rejected(kwargs):
    with pytest.raises(ValueError):
        LoaderOptions(**kwargs)


def test_explicit_border_overrides_tile_defaults():
    opts = LoaderOptions(tile_size=16, border_thickness=4, border_padding=0)
    assert opts.effective_border_thickness == 4.0
    assert opts.effective_border_padding == 0.0


def test_from_file_resolves_relative_dirs_next_to_config(tmp_path):
    config = tmp_path / "conf" / "worlds.json"
    config.parent.mkdir()
    config.write_text(
        json.dumps(
            {
                "root_dir": "maps",
                "buildings_dir": str(tmp_path / "interiors"),
                "tile_size": 16,
                "pixels_per_metre": 64,
                "music": "off",
            }
        ),
        encoding="utf-8",
    )

    opts = LoaderOptions.from_file(config)

    assert opts.root_dir == config.parent / "maps"
    assert opts.buildings_dir == tmp_path / "interiors"
    assert opts.tile_size == 16
    assert opts.pixels_per_metre == 64.0
    assert opts.extras == {"music": "off"}


def test_from_file_reports_unreadable_and_invalid_json(tmp_path):
    with pytest.raises(ValueError, match="Failed to read"):
        LoaderOptions.from_file(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON"):
        LoaderOptions.from_file(bad)


@pytest.mark.parametrize(
    "payload",
    [[], {"tile_size": "32"}, {"tile_size": True}, {"pixels_per_metre": "fast"}],
)
def test_from_json_dict_rejects_bad_values(payload):
    with pytest.raises(ValueError):
        LoaderOptions.from_json_dict(payload)


def test_json_dict_round_trip_keeps_settings():
    opts = LoaderOptions(root_dir=Path("a"), buildings_dir=Path("b"), tile_size=24, border_padding=2.0)
    restored = LoaderOptions.from_json_dict(opts.to_json_dict())
    assert restored == opts
