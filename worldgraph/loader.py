"""Loading and connecting every world reachable from the outdoor map.

Loading runs in three passes over state owned by a single
:class:`WorldLoader`:

1. Parse the outdoor map and each building interior it declares, then
   point every outdoor door at the interior of the building containing it.
2. Starting at the outdoor world, resolve every descending door and load
   whatever worlds they lead to. No connections are made yet.
3. Walk the worlds again from the root, pair each door with its partner
   (the door with the negated id in the neighbouring world), fill the
   connection table and grow the world tree.

World ids are allocated the moment a world is first referenced, so a door
can point at an interior before that interior's file has been read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .doors import (
    DirectWorldId,
    NamedWorld,
    ShareTag,
    UnknownTag,
    UnloadedBuilding,
    UnloadedDoor,
    find_door_building,
    find_partner_door,
    find_share_sibling,
    parse_door,
)
from .errors import ParseFailure, TopologyError
from .graph import ROOT_INDEX, ConnectionTable, WorldTree
from .mapfile import (
    BUILDINGS_LAYER,
    PROPERTY_BUILDING_WORLD,
    PROPERTY_DOOR_ID,
    MapSource,
    TileMap,
)
from .options import LoaderOptions
from .tiles import Location, TileRect, WorldID
from .world import Building, World

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class LoadedWorld:
    """A parsed world together with the doors and buildings found in it."""

    world: World
    tile_map: TileMap
    is_building: bool
    doors: List[UnloadedDoor] = field(default_factory=list)
    buildings: List[UnloadedBuilding] = field(default_factory=list)

    @property
    def id(self) -> WorldID:
        return self.world.id


@dataclass(slots=True)
class LoadResult:
    """Everything produced by a successful load, ready for transfer."""

    main_world_id: WorldID
    worlds: Dict[WorldID, World]
    buildings: List[Building]
    tree: WorldTree
    connections: ConnectionTable
    door_count: int


class WorldLoader:
    """Single-use load session: id counter, parsed worlds and their doors."""

    def __init__(self, source: MapSource, options: Optional[LoaderOptions] = None) -> None:
        self._source = source
        self._options = options or LoaderOptions()
        self._last_world_id: WorldID = 0
        self._loaded_worlds: Dict[WorldID, LoadedWorld] = {}

    @property
    def loaded_worlds(self) -> Dict[WorldID, LoadedWorld]:
        return dict(self._loaded_worlds)

    def generate_world_id(self) -> WorldID:
        world_id = self._last_world_id
        self._last_world_id += 1
        return world_id

    def get_loaded_world(self, world_id: WorldID) -> Optional[LoadedWorld]:
        return self._loaded_worlds.get(world_id)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------
    def load_worlds(self, main_world_name: str) -> LoadResult:
        """Load ``main_world_name`` and every world reachable through its doors.

        Raises :class:`ParseFailure` or :class:`TopologyError`; on failure
        nothing is returned and the loader should be discarded.
        """

        main_world = self.load_world(main_world_name, is_building=False)

        for building in main_world.buildings:
            LOGGER.debug(
                "Found building %d %r in main world",
                building.inside_world_id,
                building.inside_world_name,
            )
            self.load_world(building.inside_world_name, is_building=True, world_id=building.inside_world_id)

        # doors on the outdoor map lead into the building containing them
        for door in main_world.doors:
            owner = find_door_building(main_world.buildings, door)
            if owner is None:
                LOGGER.error("A door at (%d, %d) is not in any buildings", door.tile[0], door.tile[1])
                raise TopologyError(
                    "Door is not in any building",
                    world_id=main_world.id,
                    door_id=door.door_id,
                    tile=door.tile,
                )
            share_source = None if isinstance(door.tag, ShareTag) else door.share_key
            door.tag = DirectWorldId(owner.inside_world_id, share_source)
            door.world_id = owner.inside_world_id
            owner.doors.append(door.tile)

        self._discover(main_world, set())

        tree = WorldTree(main_world.id)
        connections = ConnectionTable()
        self._connect(tree, ROOT_INDEX, main_world, connections, set())
        connections.freeze()

        for world_id, loaded in self._loaded_worlds.items():
            if tree.node_for_world(world_id) is None:
                LOGGER.warning("World %d %r is loaded but unreachable through doors", world_id, loaded.world.name)

        return LoadResult(
            main_world_id=main_world.id,
            worlds={world_id: loaded.world for world_id, loaded in self._loaded_worlds.items()},
            buildings=self._collect_buildings(main_world),
            tree=tree,
            connections=connections,
            door_count=sum(len(loaded.doors) for loaded in self._loaded_worlds.values()),
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------
    def load_world(self, name: str, is_building: bool, world_id: Optional[WorldID] = None) -> LoadedWorld:
        """Parse the map ``name`` and register it under ``world_id``.

        A fresh id is allocated when none is given. Building markers found in
        the map get their interior ids allocated here as well.
        """

        if world_id is None:
            world_id = self.generate_world_id()
        tile_size = self._options.tile_size

        LOGGER.debug("Began loading world %d %r", world_id, name)
        tile_map = self._source.load(name, is_building)
        world = World.from_tile_map(world_id, name, not is_building, tile_map, tile_size)
        loaded = LoadedWorld(world=world, tile_map=tile_map, is_building=is_building)
        self._loaded_worlds[world_id] = loaded

        layer = tile_map.find_layer(BUILDINGS_LAYER)
        if layer is None:
            LOGGER.debug('No "buildings" layer in world %r', name)
        else:
            map_path = str(tile_map.path) if tile_map.path is not None else None
            for record in layer.items:
                prop = record.shape
                if prop is None:
                    continue
                if prop.has_property(PROPERTY_BUILDING_WORLD):
                    bounds = TileRect.from_pixels(
                        record.position[0],
                        record.position[1],
                        prop.dimensions[0],
                        prop.dimensions[1],
                        tile_size,
                    )
                    loaded.buildings.append(
                        UnloadedBuilding(
                            inside_world_id=self.generate_world_id(),
                            inside_world_name=prop.get_property(PROPERTY_BUILDING_WORLD),
                            bounds=bounds,
                        )
                    )
                elif prop.has_property(PROPERTY_DOOR_ID):
                    loaded.doors.append(parse_door(record, tile_size, map_path))

        LOGGER.info(
            "Loaded world %d %r (%d building(s), %d door(s))",
            world_id,
            name,
            len(loaded.buildings),
            len(loaded.doors),
        )
        return loaded

    # ------------------------------------------------------------------
    # Pass 2: discovery
    # ------------------------------------------------------------------
    def _discover(self, loaded: LoadedWorld, visited: Set[WorldID]) -> None:
        if loaded.id in visited:
            return
        visited.add(loaded.id)

        for door in loaded.doors:
            # only descending doors lead to new worlds
            if not door.is_descending:
                continue
            target = self._resolve_door(loaded, door)
            self._discover(target, visited)

    def _resolve_door(self, loaded: LoadedWorld, door: UnloadedDoor) -> LoadedWorld:
        """Resolve ``door``'s destination world, loading it if needed."""

        if door.world_id is not None:
            return self._require_loaded(door.world_id, loaded, door)

        tag = door.tag
        if isinstance(tag, DirectWorldId):
            door.world_id = tag.world_id

        elif isinstance(tag, NamedWorld):
            LOGGER.debug("Door %d loads world %r", door.door_id, tag.world_name)
            try:
                target = self.load_world(tag.world_name, is_building=True)
            except ParseFailure as exc:
                LOGGER.error("Cannot find building world %r, owner of door %d", tag.world_name, door.door_id)
                raise TopologyError(
                    f"Cannot find building world {tag.world_name!r}",
                    world_id=loaded.id,
                    door_id=door.door_id,
                    tile=door.tile,
                ) from exc
            door.world_id = target.id
            return target

        elif isinstance(tag, ShareTag):
            sibling = find_share_sibling(loaded.doors, door)
            if sibling is None:
                LOGGER.error("Door %d has an unknown world share tag %r", door.door_id, tag.share)
                raise TopologyError(
                    "Door has an unknown world share tag",
                    world_id=loaded.id,
                    door_id=door.door_id,
                    tile=door.tile,
                    share_tag=tag.share,
                )
            door.world_id = self._resolve_door(loaded, sibling).id

        elif isinstance(tag, UnknownTag):
            LOGGER.error("Door %d has no assigned door tag", door.door_id)
            raise TopologyError(
                "Door has no assigned door tag",
                world_id=loaded.id,
                door_id=door.door_id,
                tile=door.tile,
            )

        else:
            raise TypeError(f"Unsupported door tag: {tag!r}")

        return self._require_loaded(door.world_id, loaded, door)

    def _require_loaded(self, world_id: WorldID, loaded: LoadedWorld, door: UnloadedDoor) -> LoadedWorld:
        target = self._loaded_worlds.get(world_id)
        if target is None:
            LOGGER.error("World %d has not been loaded, referenced by door %d", world_id, door.door_id)
            raise TopologyError(
                f"Door references world {world_id}, which has not been loaded",
                world_id=loaded.id,
                door_id=door.door_id,
                tile=door.tile,
            )
        return target

    # ------------------------------------------------------------------
    # Pass 3: connections
    # ------------------------------------------------------------------
    def _connect(
        self,
        tree: WorldTree,
        node_index: int,
        loaded: LoadedWorld,
        connections: ConnectionTable,
        visited: Set[WorldID],
    ) -> None:
        if loaded.id in visited:
            return
        visited.add(loaded.id)

        for door in loaded.doors:
            if door.is_descending:
                neighbour_id = door.world_id
            else:
                parent = tree.parent_of(node_index)
                if parent is None:
                    LOGGER.error("Door %d in world %d leads up, but the world has no parent", door.door_id, loaded.id)
                    raise TopologyError(
                        "Ascending door in a world with no parent",
                        world_id=loaded.id,
                        door_id=door.door_id,
                        tile=door.tile,
                    )
                neighbour_id = parent.world_id

            neighbour = None if neighbour_id is None else self._loaded_worlds.get(neighbour_id)
            if neighbour is None:
                LOGGER.error("World %s has not been loaded yet while connecting doors", neighbour_id)
                raise TopologyError(
                    f"Door leads to world {neighbour_id}, which has not been loaded",
                    world_id=loaded.id,
                    door_id=door.door_id,
                    tile=door.tile,
                )

            partner = find_partner_door(neighbour.doors, door.door_id)
            if partner is None:
                LOGGER.error(
                    "Cannot find partner door in world %d for door %d in world %d",
                    neighbour.id,
                    door.door_id,
                    loaded.id,
                )
                raise TopologyError(
                    f"Cannot find partner door {-door.door_id} in world {neighbour.id}",
                    world_id=loaded.id,
                    door_id=door.door_id,
                    tile=door.tile,
                )

            src = Location(loaded.id, door.tile)
            try:
                connections.add(src, Location(neighbour.id, partner.tile))
            except KeyError:
                LOGGER.error("Two doors occupy tile %s in world %d", door.tile, loaded.id)
                raise TopologyError(
                    "Two doors occupy the same tile",
                    world_id=loaded.id,
                    door_id=door.door_id,
                    tile=door.tile,
                ) from None
            LOGGER.debug(
                "Added world connection %s to %d from %d through door %d",
                "down" if door.is_descending else "up",
                neighbour.id,
                loaded.id,
                door.door_id,
            )

            # ascending doors reuse the existing parent link
            if door.is_descending and neighbour.id not in visited:
                child = tree.add_child(node_index, door.tile, neighbour.id)
                self._connect(tree, child.index, neighbour, connections, visited)

    # ------------------------------------------------------------------
    def _collect_buildings(self, main_world: LoadedWorld) -> List[Building]:
        buildings: List[Building] = []
        for building_id, unloaded in enumerate(main_world.buildings):
            building = Building(
                id=building_id,
                bounds=unloaded.bounds,
                outside_world_id=main_world.id,
                inside_world_id=unloaded.inside_world_id,
                inside_world_name=unloaded.inside_world_name,
            )
            for tile in unloaded.doors:
                building.add_door(Location(main_world.id, tile))
            buildings.append(building)
        return buildings


__all__ = ["LoadResult", "LoadedWorld", "WorldLoader"]
