"""World, terrain and building models."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .mapfile import BUILDINGS_LAYER, TileMap
from .tiles import BlockType, LayerType, Location, Tile, TileRect, WorldID

if TYPE_CHECKING:
    from .collision import CollisionMap

LOGGER = logging.getLogger(__name__)

BuildingID = int


@dataclass(slots=True)
class WorldObject:
    block_type: BlockType
    rotation: float
    tile: Tile


@dataclass(slots=True)
class WorldLayer:
    type: LayerType
    depth: int


class WorldTerrain:
    """Per-layer block types for one world."""

    def __init__(self, size: Tuple[int, int]) -> None:
        self.size = size
        self._layers: List[WorldLayer] = []
        self._blocks: Dict[LayerType, List[BlockType]] = {}
        self._objects: List[WorldObject] = []

    @property
    def layers(self) -> List[WorldLayer]:
        return list(self._layers)

    @property
    def objects(self) -> List[WorldObject]:
        return list(self._objects)

    def _index(self, tile: Tile) -> Optional[int]:
        x, y = tile
        width, height = self.size
        if not (0 <= x < width and 0 <= y < height):
            return None
        return x + y * width

    def get_block(self, tile: Tile, layer: LayerType = LayerType.TERRAIN) -> BlockType:
        """Return the block at ``tile``; ``BLANK`` for missing layers or tiles."""

        blocks = self._blocks.get(layer)
        index = self._index(tile)
        if blocks is None or index is None:
            return BlockType.BLANK
        return blocks[index]

    def set_block(self, tile: Tile, block_type: BlockType, layer: LayerType = LayerType.TERRAIN) -> None:
        index = self._index(tile)
        if index is None:
            raise IndexError(f"Tile {tile} is outside terrain of size {self.size}")
        blocks = self._blocks.setdefault(layer, [BlockType.BLANK] * (self.size[0] * self.size[1]))
        blocks[index] = block_type

    def tiles_of_layer(self, layer: LayerType) -> List[Tile]:
        """Return every non-blank tile of ``layer`` in row-major order."""

        blocks = self._blocks.get(layer)
        if blocks is None:
            return []
        width = self.size[0]
        return [(i % width, i // width) for i, bt in enumerate(blocks) if bt is not BlockType.BLANK]

    def load(self, tile_map: TileMap, tile_size: int) -> None:
        """Copy visible tile and object layers from ``tile_map``."""

        depth = 0
        for layer in tile_map.layers:
            if layer.name == BUILDINGS_LAYER:
                continue
            layer_type = LayerType.from_name(layer.name)
            if layer_type is None:
                LOGGER.warning("Invalid layer name %r in %s; skipped", layer.name, tile_map.path)
                continue
            if not layer.visible:
                LOGGER.debug("Skipping invisible layer %r", layer.name)
                continue

            self._layers.append(WorldLayer(layer_type, depth))
            LOGGER.debug(
                "Found %slayer type %s at depth %d",
                "overterrain " if layer_type.is_over_layer else "",
                layer_type.value,
                depth,
            )
            depth += 1

            if layer_type is LayerType.OBJECTS:
                for record in layer.items:
                    block_type = BlockType.from_gid(record.gid)
                    if block_type is None or block_type is BlockType.BLANK:
                        continue
                    # objects are anchored at their bottom-left corner
                    tile = (
                        int(record.position[0] // tile_size),
                        int((record.position[1] - tile_size) // tile_size),
                    )
                    self._objects.append(WorldObject(block_type, float(record.rotation), tile))
            elif layer_type.is_tile_layer:
                for record in layer.items:
                    block_type = BlockType.from_gid(record.gid)
                    if block_type is None:
                        LOGGER.warning("Unknown tile id %d in layer %r", record.gid, layer.name)
                        continue
                    if block_type is BlockType.BLANK:
                        continue
                    self.set_block((int(record.position[0]), int(record.position[1])), block_type, layer_type)


class World:
    """One loaded map instance, outdoor or interior."""

    def __init__(self, world_id: WorldID, name: str, outside: bool, terrain: WorldTerrain) -> None:
        self.id = world_id
        self.name = name
        self.outside = outside
        self.terrain = terrain
        self.collision_map: Optional["CollisionMap"] = None

    def __repr__(self) -> str:
        kind = "outdoor" if self.outside else "interior"
        return f"World(id={self.id}, name={self.name!r}, {kind}, size={self.tile_size})"

    @property
    def is_outside(self) -> bool:
        return self.outside

    @property
    def tile_size(self) -> Tuple[int, int]:
        return self.terrain.size

    def pixel_size(self, tile_px: int) -> Tuple[int, int]:
        return (self.terrain.size[0] * tile_px, self.terrain.size[1] * tile_px)

    def get_block_at(self, tile: Tile, layer: LayerType = LayerType.TERRAIN) -> BlockType:
        return self.terrain.get_block(tile, layer)

    @classmethod
    def from_tile_map(
        cls, world_id: WorldID, name: str, outside: bool, tile_map: TileMap, tile_size: int
    ) -> "World":
        terrain = WorldTerrain((tile_map.width, tile_map.height))
        terrain.load(tile_map, tile_size)
        return cls(world_id, name, outside, terrain)

    def to_json_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "outside": self.outside,
            "size": list(self.tile_size),
        }
        if self.collision_map is not None:
            payload["collision_rects"] = len(self.collision_map.rects)
        return payload


@dataclass(slots=True)
class Building:
    """A region of an outside world leading to an interior world."""

    id: BuildingID
    bounds: TileRect
    outside_world_id: WorldID
    inside_world_id: WorldID
    inside_world_name: str
    doors: List[Location] = field(default_factory=list)

    def add_door(self, location: Location) -> None:
        """Record a door, which must be in the outside or inside world."""

        if location.world_id not in (self.outside_world_id, self.inside_world_id):
            raise ValueError(
                f"Door {location} belongs to neither world of building {self.id}"
            )
        self.doors.append(location)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bounds": self.bounds.to_json_dict(),
            "outside_world": self.outside_world_id,
            "inside_world": self.inside_world_id,
            "inside_world_name": self.inside_world_name,
            "doors": [door.to_json_dict() for door in self.doors],
        }


__all__ = ["Building", "BuildingID", "World", "WorldLayer", "WorldObject", "WorldTerrain"]
