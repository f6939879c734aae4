"""Tile, rectangle and block-type primitives shared by the world loader.

Tile coordinates are plain ``(x, y)`` tuples so they stay cheap to hash
and JSON-friendly. Pixel-space geometry uses :class:`Rect`, which mirrors
the ``(left, top, width, height)`` convention of the tile map format.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from shapely.geometry import Polygon, box

Tile = Tuple[int, int]
"""Alias for a tile coordinate expressed as ``(x, y)`` in a map's local grid."""

WorldID = int
"""Identifier allocated to every loaded world during a load session."""


class BlockType(enum.IntEnum):
    """Tile types known to the tileset, keyed by their global tile id."""

    BLANK = 0
    GRASS = 1
    DIRT = 2
    ROAD = 3
    PAVEMENT = 4
    SAND = 5
    WATER = 6
    COBBLESTONE = 7
    TREE = 8
    FENCE = 9
    SLIDING_DOOR = 10
    BUILDING_WALL = 11
    BUILDING_WINDOW_ON = 12
    BUILDING_WINDOW_OFF = 13
    BUILDING_ROOF = 14
    BUILDING_EDGE = 15
    BUILDING_ROOF_CORNER = 16
    WOODEN_FLOOR = 17
    ENTRANCE_MAT = 18
    RUG = 19
    RUG_CORNER = 20
    RUG_EDGE = 21

    @classmethod
    def from_gid(cls, gid: int) -> Optional["BlockType"]:
        """Return the block type for ``gid`` or ``None`` when unknown."""

        try:
            return cls(gid)
        except ValueError:
            return None


COLLIDABLE_BLOCKS = frozenset(
    {
        BlockType.WATER,
        BlockType.TREE,
        BlockType.BUILDING_WALL,
        BlockType.BUILDING_EDGE,
        BlockType.BUILDING_ROOF,
        BlockType.BUILDING_ROOF_CORNER,
    }
)


def is_collidable(block_type: BlockType) -> bool:
    """Return whether ``block_type`` needs static collision geometry."""

    return block_type in COLLIDABLE_BLOCKS


class LayerType(enum.Enum):
    UNDERTERRAIN = "underterrain"
    TERRAIN = "terrain"
    OVERTERRAIN = "overterrain"
    OBJECTS = "objects"
    COLLISIONS = "collisions"
    BUILDINGS = "buildings"

    @classmethod
    def from_name(cls, name: str) -> Optional["LayerType"]:
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None

    @property
    def is_tile_layer(self) -> bool:
        return self in (LayerType.UNDERTERRAIN, LayerType.TERRAIN, LayerType.OVERTERRAIN)

    @property
    def is_over_layer(self) -> bool:
        return self is LayerType.OVERTERRAIN


@dataclass(frozen=True, slots=True)
class Location:
    """A tile inside a specific world."""

    world_id: WorldID
    tile: Tile

    def to_json_dict(self) -> Dict[str, Any]:
        return {"world": self.world_id, "tile": [self.tile[0], self.tile[1]]}


@dataclass(frozen=True, slots=True)
class TileRect:
    """Axis-aligned rectangle on the tile grid.

    ``left``/``top`` are the first covered tile, ``width``/``height`` are
    counted in tiles.
    """

    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def contains(self, tile: Tile, inclusive: bool = True) -> bool:
        """Return whether ``tile`` lies within the bounds.

        Building markers treat their far edges as part of the building, so
        the default check is inclusive on every side.
        """

        x, y = tile
        if inclusive:
            return self.left <= x <= self.right and self.top <= y <= self.bottom
        return self.left <= x < self.right and self.top <= y < self.bottom

    def tiles(self) -> Iterator[Tile]:
        for y in range(self.top, self.bottom):
            for x in range(self.left, self.right):
                yield (x, y)

    @classmethod
    def from_pixels(cls, x: float, y: float, width: float, height: float, tile_size: int) -> "TileRect":
        return cls(
            int(x // tile_size),
            int(y // tile_size),
            int(width // tile_size),
            int(height // tile_size),
        )

    def to_json_dict(self) -> Dict[str, int]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned float rectangle in world pixel space."""

    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def centre(self) -> Tuple[float, float]:
        return (self.left + self.width / 2, self.top + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def bounds(self) -> Tuple[float, float, float, float]:
        """Return ``(minx, miny, maxx, maxy)`` as used by shapely and rtree."""

        return (self.left, self.top, self.right, self.bottom)

    def to_polygon(self) -> Polygon:
        return box(self.left, self.top, self.right, self.bottom)

    def scaled(self, factor: float) -> "Rect":
        return Rect(self.left * factor, self.top * factor, self.width * factor, self.height * factor)

    def union_bounds(self, other: "Rect") -> "Rect":
        """Return the bounding box covering both ``self`` and ``other``."""

        left = min(self.left, other.left)
        top = min(self.top, other.top)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return Rect(left, top, right - left, bottom - top)

    @classmethod
    def for_tile(cls, tile: Tile, tile_size: float) -> "Rect":
        return cls(tile[0] * tile_size, tile[1] * tile_size, float(tile_size), float(tile_size))

    def to_json_dict(self) -> Dict[str, float]:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


def pixel_to_tile(x: float, y: float, tile_size: int) -> Tile:
    return (int(x // tile_size), int(y // tile_size))


__all__ = [
    "BlockType",
    "COLLIDABLE_BLOCKS",
    "LayerType",
    "Location",
    "Rect",
    "Tile",
    "TileRect",
    "WorldID",
    "is_collidable",
    "pixel_to_tile",
]
