"""Static collision geometry for loaded worlds.

The collision map merges a world's collidable terrain tiles into
rectangles, surrounds the map with border rectangles and hands every
rectangle to a physics collaborator as a zero-friction static box fixture.
Stepping the simulation is left to that collaborator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Set, Tuple

from rtree import index as rtree_index
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from .merge import border_rects, merge_rects, tile_rects
from .options import LoaderOptions
from .tiles import LayerType, Rect, Tile, is_collidable

LOGGER = logging.getLogger(__name__)

FIXTURE_FRICTION = 0.0


class StaticBody(Protocol):
    def create_box_fixture(
        self,
        half_width: float,
        half_height: float,
        centre: Tuple[float, float],
        angle: float = 0.0,
        friction: float = FIXTURE_FRICTION,
    ) -> object:
        """Attach a box fixture to the body."""


class PhysicsWorld(Protocol):
    """Protocol describing the physics engine collaborator for one world."""

    def create_static_body(self) -> StaticBody:
        """Create and return a static body to hang fixtures on."""


@dataclass(frozen=True, slots=True)
class FixtureRequest:
    """A box fixture in physics units, as handed to the physics engine."""

    half_width: float
    half_height: float
    centre: Tuple[float, float]
    angle: float = 0.0
    friction: float = FIXTURE_FRICTION


@dataclass(slots=True)
class RecordingBody:
    fixtures: List[FixtureRequest] = field(default_factory=list)

    def create_box_fixture(
        self,
        half_width: float,
        half_height: float,
        centre: Tuple[float, float],
        angle: float = 0.0,
        friction: float = FIXTURE_FRICTION,
    ) -> FixtureRequest:
        fixture = FixtureRequest(half_width, half_height, centre, angle, friction)
        self.fixtures.append(fixture)
        return fixture


class RecordingPhysicsWorld:
    """Physics collaborator that only records the static geometry it receives."""

    def __init__(self) -> None:
        self.bodies: List[RecordingBody] = []

    def create_static_body(self) -> RecordingBody:
        body = RecordingBody()
        self.bodies.append(body)
        return body

    @property
    def fixtures(self) -> List[FixtureRequest]:
        return [fixture for body in self.bodies for fixture in body.fixtures]


def find_collidable_tiles(world) -> List[Tile]:
    """Return collidable terrain tiles of ``world`` in row-major order."""

    terrain = world.terrain
    return [
        tile
        for tile in terrain.tiles_of_layer(LayerType.TERRAIN)
        if is_collidable(terrain.get_block(tile, LayerType.TERRAIN))
    ]


class CollisionMap:
    """Merged collision rectangles for one world plus their lookups."""

    def __init__(self, rects: List[Rect], borders: List[Rect], tile_size: int) -> None:
        self._rects = list(rects)
        self._borders = list(borders)
        self._tile_size = tile_size
        self.body: Optional[StaticBody] = None

        # each tile maps back to the merged rectangle covering it
        self._cell_grid: Dict[Tile, Rect] = {}
        for rect in self._rects:
            for tile in self._covered_tiles(rect):
                self._cell_grid[tile] = rect

        props = rtree_index.Property()
        props.interleaved = True
        self._index = rtree_index.Index(properties=props)
        for idx, rect in enumerate(self.all_rects):
            self._index.insert(idx, rect.bounds())

    @classmethod
    def build(cls, world, options: LoaderOptions, physics: Optional[PhysicsWorld] = None) -> "CollisionMap":
        """Merge ``world``'s collidable tiles and, if given, create its physics fixtures."""

        tile_size = options.tile_size
        tiles = find_collidable_tiles(world)
        rects = merge_rects(tile_rects(tiles, tile_size), tile_size)
        width, height = world.pixel_size(tile_size)
        borders = border_rects(
            width,
            height,
            options.effective_border_thickness,
            options.effective_border_padding,
        )
        collision_map = cls(rects, borders, tile_size)
        LOGGER.debug(
            "World %s: merged %d collidable tile(s) into %d rect(s)",
            world.id,
            len(tiles),
            len(rects),
        )
        if physics is not None:
            collision_map.create_fixtures(physics, options.pixels_per_metre)
        return collision_map

    def _covered_tiles(self, rect: Rect) -> List[Tile]:
        size = self._tile_size
        x0 = int(rect.left // size)
        y0 = int(rect.top // size)
        x1 = int(-(-rect.right // size))
        y1 = int(-(-rect.bottom // size))
        return [(x, y) for y in range(y0, y1) for x in range(x0, x1)]

    @property
    def rects(self) -> List[Rect]:
        """Merged terrain rectangles, excluding the map border."""

        return list(self._rects)

    @property
    def borders(self) -> List[Rect]:
        return list(self._borders)

    @property
    def all_rects(self) -> List[Rect]:
        return self._rects + self._borders

    def create_fixtures(self, physics: PhysicsWorld, pixels_per_metre: float) -> StaticBody:
        """Create one static body with a zero-friction box per rectangle."""

        body = physics.create_static_body()
        scale = 1.0 / pixels_per_metre
        for unscaled in self.all_rects:
            rect = unscaled.scaled(scale)
            body.create_box_fixture(
                rect.width / 2,
                rect.height / 2,
                rect.centre,
                0.0,
                FIXTURE_FRICTION,
            )
        self.body = body
        return body

    def rect_at(self, tile: Tile) -> Optional[Rect]:
        return self._cell_grid.get(tile)

    def get_surrounding_tiles(self, tile: Tile, range_: int = 1) -> Set[Rect]:
        """Return the unique merged rectangles covering tiles around ``tile``."""

        found: Set[Rect] = set()
        for dy in range(-range_, range_ + 1):
            for dx in range(-range_, range_ + 1):
                rect = self._cell_grid.get((tile[0] + dx, tile[1] + dy))
                if rect is not None:
                    found.add(rect)
        return found

    def query(self, area: Rect) -> List[Rect]:
        """Return rectangles, borders included, whose bounds intersect ``area``."""

        all_rects = self.all_rects
        return [all_rects[i] for i in sorted(self._index.intersection(area.bounds()))]

    def covered_area(self) -> BaseGeometry:
        """Return the union of the merged rectangles as a shapely geometry."""

        return unary_union([rect.to_polygon() for rect in self._rects])


__all__ = [
    "CollisionMap",
    "FIXTURE_FRICTION",
    "FixtureRequest",
    "PhysicsWorld",
    "RecordingBody",
    "RecordingPhysicsWorld",
    "StaticBody",
    "find_collidable_tiles",
]
