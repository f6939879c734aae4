"""World tree and door connection table.

The tree is stored as a flat node table; parent links are indices into it,
so walking back up from an interior never needs an owning back-pointer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .tiles import Location, Tile, WorldID

LOGGER = logging.getLogger(__name__)

ROOT_INDEX = 0


@dataclass(slots=True)
class WorldTreeNode:
    index: int
    world_id: WorldID
    parent: Optional[int] = None
    children: Dict[Tile, int] = field(default_factory=dict)
    """Door tile in this node's world -> index of the child node it leads to."""


class WorldTree:
    """Tree of worlds rooted at the outdoor world."""

    def __init__(self, root_world_id: WorldID) -> None:
        self._nodes: List[WorldTreeNode] = [WorldTreeNode(ROOT_INDEX, root_world_id)]
        self._by_world: Dict[WorldID, int] = {root_world_id: ROOT_INDEX}

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root(self) -> WorldTreeNode:
        return self._nodes[ROOT_INDEX]

    def node(self, index: int) -> WorldTreeNode:
        return self._nodes[index]

    def node_for_world(self, world_id: WorldID) -> Optional[WorldTreeNode]:
        index = self._by_world.get(world_id)
        return None if index is None else self._nodes[index]

    def parent_of(self, index: int) -> Optional[WorldTreeNode]:
        parent = self._nodes[index].parent
        return None if parent is None else self._nodes[parent]

    def add_child(self, parent_index: int, door_tile: Tile, world_id: WorldID) -> WorldTreeNode:
        """Attach a node for ``world_id`` below ``parent_index`` through ``door_tile``."""

        if world_id in self._by_world:
            raise ValueError(f"World {world_id} already has a node in the tree")
        node = WorldTreeNode(len(self._nodes), world_id, parent=parent_index)
        self._nodes.append(node)
        self._nodes[parent_index].children[door_tile] = node.index
        self._by_world[world_id] = node.index
        LOGGER.debug(
            "Tree node %d: world %d below world %d via door tile %s",
            node.index,
            world_id,
            self._nodes[parent_index].world_id,
            door_tile,
        )
        return node

    def depth_first(self) -> Iterator[WorldTreeNode]:
        stack = [ROOT_INDEX]
        while stack:
            node = self._nodes[stack.pop()]
            yield node
            stack.extend(reversed(list(node.children.values())))

    def path_to_root(self, world_id: WorldID) -> List[WorldID]:
        """Return world ids from ``world_id`` up to the root, inclusive."""

        index = self._by_world.get(world_id)
        if index is None:
            raise KeyError(world_id)
        path: List[WorldID] = []
        current: Optional[int] = index
        while current is not None:
            node = self._nodes[current]
            path.append(node.world_id)
            current = node.parent
        return path

    def to_json_dict(self, index: int = ROOT_INDEX) -> Dict[str, Any]:
        node = self._nodes[index]
        return {
            "world": node.world_id,
            "children": [
                {"door": [tile[0], tile[1]], "node": self.to_json_dict(child)}
                for tile, child in node.children.items()
            ],
        }


class ConnectionTable:
    """Maps a door's location to the location of its partner door.

    Entries are only added while loading; :meth:`freeze` makes the table
    read-only once the load has finished.
    """

    def __init__(self) -> None:
        self._table: Dict[Location, Location] = {}
        self._frozen = False

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, src: object) -> bool:
        return src in self._table

    def add(self, src: Location, dst: Location) -> None:
        if self._frozen:
            raise RuntimeError("ConnectionTable is read-only after loading")
        if src in self._table:
            raise KeyError(f"Connection from {src} already exists")
        self._table[src] = dst

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def resolve(self, world_id: WorldID, tile: Tile) -> Optional[Location]:
        return self._table.get(Location(world_id, tile))

    def items(self) -> Iterator[Tuple[Location, Location]]:
        return iter(self._table.items())

    def to_json_list(self) -> List[Dict[str, Any]]:
        return [{"from": src.to_json_dict(), "to": dst.to_json_dict()} for src, dst in self._table.items()]


__all__ = ["ConnectionTable", "ROOT_INDEX", "WorldTree", "WorldTreeNode"]
