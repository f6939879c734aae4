from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import pytest

from worldgraph.options import LoaderOptions

from .maps import TILE, building_marker, door_marker, tiled_map


@dataclass
class MapDirs:
    root: Path
    buildings: Path
    options: LoaderOptions

    def write_root(self, name: str, payload: Dict[str, Any]) -> Path:
        path = self.root / f"{name}.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def write_building(self, name: str, payload: Dict[str, Any]) -> Path:
        path = self.buildings / f"{name}.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path


@pytest.fixture
def map_dirs(tmp_path: Path) -> MapDirs:
    root = tmp_path / "worlds"
    buildings = root / "buildings"
    buildings.mkdir(parents=True)
    options = LoaderOptions(root_dir=root, buildings_dir=buildings, tile_size=TILE)
    return MapDirs(root=root, buildings=buildings, options=options)


@pytest.fixture
def shop_maps(map_dirs: MapDirs) -> MapDirs:
    """Outdoor map with one building whose door (id 1) leads into ``shop``."""

    map_dirs.write_root(
        "town",
        tiled_map(
            10,
            10,
            terrain={(0, 0): 6, (1, 0): 6, (9, 9): 8},
            objects=[building_marker(2, 2, 3, 3, "shop"), door_marker((3, 5), 1)],
        ),
    )
    map_dirs.write_building(
        "shop",
        tiled_map(5, 5, terrain={(0, 0): 11, (1, 0): 11}, objects=[door_marker((2, 4), -1)]),
    )
    return map_dirs
