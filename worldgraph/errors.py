"""Exceptions raised while loading and connecting worlds."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from .tiles import Tile, WorldID


class WorldLoadError(RuntimeError):
    """Base class for every failure that aborts a world load."""


class ParseFailure(WorldLoadError):
    """Raised when a map file is missing, unreadable or malformed."""

    def __init__(self, path: Union[str, Path], reason: str) -> None:
        super().__init__(f"Failed to parse map {str(path)!r}: {reason}")
        self.path = Path(path)
        self.reason = reason


class TopologyError(WorldLoadError):
    """Raised for door/building authoring mistakes.

    The offending world, door, tile and share tag are kept as attributes and
    echoed in the message so that the map author can find the content.
    """

    def __init__(
        self,
        message: str,
        *,
        world_id: Optional[WorldID] = None,
        door_id: Optional[int] = None,
        tile: Optional[Tile] = None,
        share_tag: Optional[str] = None,
    ) -> None:
        context: List[str] = []
        if world_id is not None:
            context.append(f"world={world_id}")
        if door_id is not None:
            context.append(f"door={door_id}")
        if tile is not None:
            context.append(f"tile=({tile[0]}, {tile[1]})")
        if share_tag is not None:
            context.append(f"share={share_tag!r}")
        full = f"{message} [{', '.join(context)}]" if context else message
        super().__init__(full)
        self.world_id = world_id
        self.door_id = door_id
        self.tile = tile
        self.share_tag = share_tag


__all__ = ["ParseFailure", "TopologyError", "WorldLoadError"]
