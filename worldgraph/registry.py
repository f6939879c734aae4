"""Stable storage for worlds once a load has succeeded.

Nothing writes to a registry after it is constructed, so gameplay code can
query it from any thread without locking.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set

from .graph import ConnectionTable, WorldTree
from .tiles import Location, Rect, Tile, WorldID
from .world import Building, World


class WorldRegistry:
    """Worlds and buildings indexed by id, plus the connection table and tree."""

    def __init__(
        self,
        main_world_id: WorldID,
        worlds: Dict[WorldID, World],
        buildings: Iterable[Building],
        tree: WorldTree,
        connections: ConnectionTable,
    ) -> None:
        self._main_world_id = main_world_id
        self._worlds = dict(worlds)
        self._buildings: Dict[WorldID, List[Building]] = {}
        for building in buildings:
            self._buildings.setdefault(building.outside_world_id, []).append(building)
        self.tree = tree
        self.connections = connections

    def __len__(self) -> int:
        return len(self._worlds)

    @property
    def main_world(self) -> World:
        return self._worlds[self._main_world_id]

    @property
    def world_ids(self) -> List[WorldID]:
        return sorted(self._worlds)

    def get_world(self, world_id: WorldID) -> Optional[World]:
        return self._worlds.get(world_id)

    def buildings_of(self, world_id: WorldID) -> List[Building]:
        return list(self._buildings.get(world_id, []))

    def building_leading_to(self, inside_world_id: WorldID) -> Optional[Building]:
        for buildings in self._buildings.values():
            for building in buildings:
                if building.inside_world_id == inside_world_id:
                    return building
        return None

    def resolve_connection(self, world_id: WorldID, tile: Tile) -> Optional[Location]:
        """Return the partner door location for the door at ``tile``, if any."""

        return self.connections.resolve(world_id, tile)

    def get_surrounding_tiles(self, world_id: WorldID, tile: Tile, range_: int = 1) -> Set[Rect]:
        world = self._worlds.get(world_id)
        if world is None or world.collision_map is None:
            return set()
        return world.collision_map.get_surrounding_tiles(tile, range_)

    def query_area(self, world_id: WorldID, area: Rect) -> List[Rect]:
        world = self._worlds.get(world_id)
        if world is None or world.collision_map is None:
            return []
        return world.collision_map.query(area)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "main_world": self._main_world_id,
            "worlds": [self._worlds[world_id].to_json_dict() for world_id in self.world_ids],
            "buildings": [
                building.to_json_dict()
                for world_id in sorted(self._buildings)
                for building in self._buildings[world_id]
            ],
            "tree": self.tree.to_json_dict(),
            "connections": self.connections.to_json_list(),
        }


__all__ = ["WorldRegistry"]
