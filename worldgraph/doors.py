"""Door classification and pairing helpers.

Each door read from a ``buildings`` layer carries a signed door id and a
door tag describing how its destination world is found:

* :class:`DirectWorldId` - the destination world id is known up front.
* :class:`NamedWorld` - the destination is a map name, loaded on demand.
* :class:`ShareTag` - the destination is whatever world the sibling door in
  the same map with the same share string leads to.
* :class:`UnknownTag` - nothing usable was set; only legal on doors that
  never need resolving (ascending doors, or outdoor doors whose tag is
  overwritten from their building).

Positive door ids step *down* into a child world and the matching door in
that child carries the negated id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Union

from .errors import ParseFailure, TopologyError
from .mapfile import (
    PROPERTY_DOOR_ID,
    PROPERTY_DOOR_WORLD,
    PROPERTY_DOOR_WORLD_ID,
    PROPERTY_DOOR_WORLD_SHARE,
    PROPERTY_DOOR_WORLD_SHARE_SOURCE,
    TileRecord,
)
from .tiles import Tile, TileRect, WorldID, pixel_to_tile

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DirectWorldId:
    world_id: WorldID
    share_source: Optional[str] = None


@dataclass(frozen=True, slots=True)
class NamedWorld:
    world_name: str
    share_source: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ShareTag:
    share: str


@dataclass(frozen=True, slots=True)
class UnknownTag:
    pass


DoorTag = Union[DirectWorldId, NamedWorld, ShareTag, UnknownTag]


@dataclass(slots=True)
class UnloadedDoor:
    """A door read from a map, before and during resolution."""

    tile: Tile
    door_id: int
    tag: DoorTag = field(default_factory=UnknownTag)
    world_id: Optional[WorldID] = None
    """Destination world once resolved; only meaningful for descending doors."""

    @property
    def is_descending(self) -> bool:
        return self.door_id > 0

    @property
    def share_key(self) -> Optional[str]:
        """Share string this door answers to, or carries when it is a share door."""

        tag = self.tag
        if isinstance(tag, ShareTag):
            return tag.share
        if isinstance(tag, (DirectWorldId, NamedWorld)):
            return tag.share_source
        return None


@dataclass(slots=True)
class UnloadedBuilding:
    """A building marker read from a map, with its interior's allocated id."""

    inside_world_id: WorldID
    inside_world_name: str
    bounds: TileRect
    doors: List[Tile] = field(default_factory=list)


def classify_door_tag(properties: Mapping[str, str], door_id: Optional[int] = None) -> DoorTag:
    """Classify a door's property bundle into exactly one door tag.

    Priority is fixed: a direct world id wins, then a world name, then a
    share tag; anything else is :class:`UnknownTag`. The share-source
    property marks the canonical side of a shared pair and is only kept on
    direct and named doors. Carrying both share properties on one door is
    rejected as ambiguous.
    """

    share = properties.get(PROPERTY_DOOR_WORLD_SHARE)
    share_source = properties.get(PROPERTY_DOOR_WORLD_SHARE_SOURCE)
    if share is not None and share_source is not None:
        LOGGER.error("Door %s has both share tag %r and share source %r", door_id, share, share_source)
        raise TopologyError(
            "Door carries both a share tag and a share source",
            door_id=door_id,
            share_tag=share,
        )

    if PROPERTY_DOOR_WORLD_ID in properties:
        raw = properties[PROPERTY_DOOR_WORLD_ID]
        try:
            world_id = int(raw)
        except ValueError:
            LOGGER.error("Door %s has a non-integer world id %r", door_id, raw)
            raise TopologyError(f"Door has a non-integer world id {raw!r}", door_id=door_id) from None
        if share is not None:
            LOGGER.debug("Door %s: direct world id takes precedence over share tag %r", door_id, share)
        return DirectWorldId(world_id, share_source)

    if PROPERTY_DOOR_WORLD in properties:
        if share is not None:
            LOGGER.debug("Door %s: world name takes precedence over share tag %r", door_id, share)
        return NamedWorld(properties[PROPERTY_DOOR_WORLD], share_source)

    if share is not None:
        return ShareTag(share)

    if share_source is not None:
        LOGGER.debug("Door %s has a share source but no destination; left untagged", door_id)
    return UnknownTag()


def parse_door(record: TileRecord, tile_size: int, map_path: Optional[str] = None) -> UnloadedDoor:
    """Build an :class:`UnloadedDoor` from a door marker object."""

    shape = record.shape
    if shape is None or not shape.has_property(PROPERTY_DOOR_ID):
        LOGGER.error("Door marker at %s carries no door id", record.position)
        raise ParseFailure(map_path or "<memory>", f"door marker at {record.position} has no door id")
    raw_id = shape.get_property(PROPERTY_DOOR_ID)
    try:
        door_id = int(raw_id)
    except ValueError:
        LOGGER.error("Door id %r is not an integer", raw_id)
        raise ParseFailure(map_path or "<memory>", f"door id {raw_id!r} is not an integer") from None

    tile = pixel_to_tile(record.position[0], record.position[1], tile_size)
    if door_id == 0:
        LOGGER.error("Door at (%d, %d) has id 0", tile[0], tile[1])
        raise TopologyError("Door id 0 cannot be paired", door_id=door_id, tile=tile)

    tag = classify_door_tag(shape.properties, door_id)
    return UnloadedDoor(tile=tile, door_id=door_id, tag=tag)


def find_share_sibling(doors: Iterable[UnloadedDoor], door: UnloadedDoor) -> Optional[UnloadedDoor]:
    """Return the non-share door in the same map carrying ``door``'s share string."""

    share = door.share_key
    if share is None:
        return None
    for other in doors:
        if other is door or isinstance(other.tag, (ShareTag, UnknownTag)):
            continue
        if other.share_key == share:
            return other
    return None


def find_partner_door(doors: Iterable[UnloadedDoor], door_id: int) -> Optional[UnloadedDoor]:
    """Return the door whose id is the negation of ``door_id``."""

    for door in doors:
        if door.door_id == -door_id:
            return door
    return None


def find_door_building(
    buildings: Iterable[UnloadedBuilding], door: UnloadedDoor
) -> Optional[UnloadedBuilding]:
    """Return the first building whose bounds contain the door's tile."""

    for building in buildings:
        if building.bounds.contains(door.tile):
            return building
    return None


__all__ = [
    "DirectWorldId",
    "DoorTag",
    "NamedWorld",
    "ShareTag",
    "UnknownTag",
    "UnloadedBuilding",
    "UnloadedDoor",
    "classify_door_tag",
    "find_door_building",
    "find_partner_door",
    "find_share_sibling",
    "parse_door",
]
