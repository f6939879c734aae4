"""Tile map parsing for the worldgraph loader.

Maps are Tiled JSON exports. This module turns one file into an ordered
list of :class:`Layer` objects holding :class:`TileRecord` entries; it does
not interpret building or door markers, which is the loader's job.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from .errors import ParseFailure
from .options import LoaderOptions

LOGGER = logging.getLogger(__name__)

FLIPPED_HORIZONTALLY = 0x80000000
FLIPPED_VERTICALLY = 0x40000000
FLIPPED_DIAGONALLY = 0x20000000
_GID_MASK = ~(FLIPPED_HORIZONTALLY | FLIPPED_VERTICALLY | FLIPPED_DIAGONALLY) & 0xFFFFFFFF

BUILDINGS_LAYER = "buildings"

PROPERTY_BUILDING_WORLD = "world"
PROPERTY_DOOR_ID = "door"
PROPERTY_DOOR_WORLD_ID = "door-world-id"
PROPERTY_DOOR_WORLD = "door-world"
PROPERTY_DOOR_WORLD_SHARE = "door-world-share"
PROPERTY_DOOR_WORLD_SHARE_SOURCE = "door-world-share-source"


@dataclass(slots=True)
class PropertyObject:
    """Custom properties attached to an object on an object layer."""

    dimensions: Tuple[float, float]
    """Pixel ``(width, height)`` of the object."""

    properties: Dict[str, str] = field(default_factory=dict)
    """Property values, always stored as strings as in the map editor."""

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def get_property(self, name: str) -> str:
        return self.properties[name]


@dataclass(slots=True)
class TileRecord:
    """A single placed tile or object.

    Tile-layer records are positioned in tiles; object-layer records are
    positioned in pixels and carry a :class:`PropertyObject`.
    """

    position: Tuple[float, float]
    gid: int = 0
    rotation: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False
    flip_diagonal: bool = False
    shape: Optional[PropertyObject] = None
    """Properties and pixel size of an object-layer record; ``None`` for plain tiles."""

    @property
    def is_property_shape(self) -> bool:
        return self.shape is not None

    @property
    def is_flipped(self) -> bool:
        return self.flip_horizontal or self.flip_vertical or self.flip_diagonal


@dataclass(slots=True)
class Layer:
    name: str
    visible: bool = True
    items: List[TileRecord] = field(default_factory=list)


@dataclass(slots=True)
class TileMap:
    """In-memory view of one map file."""

    width: int
    height: int
    layers: List[Layer] = field(default_factory=list)
    path: Optional[Path] = None

    def find_layer(self, name: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None


class MapSource(Protocol):
    """Protocol describing objects capable of producing tile maps by name."""

    def load(self, name: str, is_building: bool) -> TileMap:
        """Return the parsed map or raise :class:`ParseFailure`."""


class FileMapSource:
    """Map source reading Tiled JSON files from the configured directories."""

    def __init__(self, options: Optional[LoaderOptions] = None) -> None:
        self._options = options or LoaderOptions()

    def path_for(self, name: str, is_building: bool) -> Path:
        return self._options.map_path(name, is_building)

    def load(self, name: str, is_building: bool) -> TileMap:
        return read_tile_map(self.path_for(name, is_building))


def decode_gid(raw: int) -> Tuple[int, int, bool, bool, bool]:
    """Split a raw Tiled gid into ``(gid, rotation, flip_h, flip_v, flip_d)``.

    Flip combinations that amount to a pure rotation are reported as a
    rotation with no remaining flips.
    """

    raw = int(raw) & 0xFFFFFFFF
    flip_h = bool(raw & FLIPPED_HORIZONTALLY)
    flip_v = bool(raw & FLIPPED_VERTICALLY)
    flip_d = bool(raw & FLIPPED_DIAGONALLY)
    gid = raw & _GID_MASK

    if flip_d and flip_h and not flip_v:
        return gid, 90, False, False, False
    if flip_h and flip_v and not flip_d:
        return gid, 180, False, False, False
    if flip_d and flip_v and not flip_h:
        return gid, 270, False, False, False
    return gid, 0, flip_h, flip_v, flip_d


def _parse_properties(raw: Any, path: Path) -> Dict[str, str]:
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return {str(k): _stringify(v) for k, v in raw.items()}
    if isinstance(raw, list):
        out: Dict[str, str] = {}
        for idx, item in enumerate(raw):
            if not isinstance(item, dict) or "name" not in item:
                raise ParseFailure(path, f"property #{idx} must be an object with a 'name'")
            out[str(item["name"])] = _stringify(item.get("value"))
        return out
    raise ParseFailure(path, f"properties must be a list or object; got {type(raw).__name__}")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def _number(obj: Dict[str, Any], key: str, path: Path, default: Optional[float] = None) -> float:
    value = obj.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseFailure(path, f"{key!r} must be a number; got {value!r}")
    return float(value)


def _parse_tile_layer(raw: Dict[str, Any], width: int, height: int, path: Path) -> List[TileRecord]:
    data = raw.get("data", [])
    if not isinstance(data, list):
        raise ParseFailure(path, f"layer {raw.get('name')!r} data must be a list")
    if data and len(data) != width * height:
        raise ParseFailure(
            path,
            f"layer {raw.get('name')!r} has {len(data)} tiles, expected {width * height}",
        )
    items: List[TileRecord] = []
    for index, value in enumerate(data):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ParseFailure(path, f"layer {raw.get('name')!r} tile #{index} is not an integer")
        gid, rotation, flip_h, flip_v, flip_d = decode_gid(value)
        if gid == 0:
            continue
        items.append(
            TileRecord(
                position=(float(index % width), float(index // width)),
                gid=gid,
                rotation=rotation,
                flip_horizontal=flip_h,
                flip_vertical=flip_v,
                flip_diagonal=flip_d,
            )
        )
    return items


def _parse_object_layer(raw: Dict[str, Any], path: Path) -> List[TileRecord]:
    objects = raw.get("objects", [])
    if not isinstance(objects, list):
        raise ParseFailure(path, f"layer {raw.get('name')!r} objects must be a list")
    items: List[TileRecord] = []
    for idx, obj in enumerate(objects):
        if not isinstance(obj, dict):
            raise ParseFailure(path, f"layer {raw.get('name')!r} object #{idx} must be an object")
        gid, rotation, flip_h, flip_v, flip_d = decode_gid(int(_number(obj, "gid", path, 0)))
        rotation = int(_number(obj, "rotation", path, rotation))
        prop = PropertyObject(
            dimensions=(_number(obj, "width", path, 0), _number(obj, "height", path, 0)),
            properties=_parse_properties(obj.get("properties"), path),
        )
        items.append(
            TileRecord(
                position=(_number(obj, "x", path), _number(obj, "y", path)),
                gid=gid,
                rotation=rotation,
                flip_horizontal=flip_h,
                flip_vertical=flip_v,
                flip_diagonal=flip_d,
                shape=prop,
            )
        )
    return items


def parse_tile_map(payload: Any, path: Union[str, Path] = "<memory>") -> TileMap:
    """Build a :class:`TileMap` from an already-decoded JSON payload."""

    path = Path(path)
    if not isinstance(payload, dict):
        raise ParseFailure(path, "top level must be a JSON object")
    width = payload.get("width")
    height = payload.get("height")
    for key, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ParseFailure(path, f"{key!r} must be a positive integer; got {value!r}")

    raw_layers = payload.get("layers", [])
    if not isinstance(raw_layers, list):
        raise ParseFailure(path, "'layers' must be a list")

    layers: List[Layer] = []
    for idx, raw in enumerate(raw_layers):
        if not isinstance(raw, dict):
            raise ParseFailure(path, f"layer #{idx} must be an object")
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            raise ParseFailure(path, f"layer #{idx} must have a non-empty name")
        if "objects" in raw or raw.get("type") == "objectgroup":
            items = _parse_object_layer(raw, path)
        else:
            items = _parse_tile_layer(raw, width, height, path)
        layers.append(Layer(name=name, visible=bool(raw.get("visible", True)), items=items))

    return TileMap(width=width, height=height, layers=layers, path=path)


def read_tile_map(path: Union[str, Path]) -> TileMap:
    """Read and parse the map at ``path``."""

    map_path = Path(path)
    try:
        text = map_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ParseFailure(map_path, "file not found") from exc
    except OSError as exc:
        raise ParseFailure(map_path, str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise ParseFailure(map_path, f"not UTF-8 text: {exc}") from exc
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseFailure(map_path, f"invalid JSON: {exc}") from exc

    tile_map = parse_tile_map(payload, map_path)
    LOGGER.debug(
        "Parsed map %s: %dx%d tiles, %d layer(s)",
        map_path,
        tile_map.width,
        tile_map.height,
        len(tile_map.layers),
    )
    return tile_map


__all__ = [
    "BUILDINGS_LAYER",
    "FileMapSource",
    "Layer",
    "MapSource",
    "PropertyObject",
    "TileMap",
    "TileRecord",
    "decode_gid",
    "parse_tile_map",
    "read_tile_map",
]
