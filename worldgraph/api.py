"""Public API for loading a connected world graph.

Exposes `load_worlds(main_world, options=None, source=None, physics_factory=None)`
which runs the loader, builds every world's collision map, logs summary
metrics at INFO, and returns a populated `WorldRegistry`.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .collision import CollisionMap, PhysicsWorld, RecordingPhysicsWorld
from .loader import WorldLoader
from .mapfile import FileMapSource, MapSource
from .options import LoaderOptions
from .registry import WorldRegistry
from .world import World

LOGGER = logging.getLogger(__name__)

PhysicsFactory = Callable[[World], Optional[PhysicsWorld]]


def _default_physics(_world: World) -> PhysicsWorld:
    return RecordingPhysicsWorld()


def load_worlds(
    main_world: str,
    options: Optional[LoaderOptions] = None,
    source: Optional[MapSource] = None,
    physics_factory: Optional[PhysicsFactory] = None,
) -> WorldRegistry:
    """Load ``main_world`` and everything reachable from it.

    - Runs the three loader passes (buildings, discovery, connections)
    - Builds collision geometry for every world and hands it to physics
    - Transfers worlds and buildings into a new `WorldRegistry`

    Any `WorldLoadError` propagates; no registry is produced in that case.
    """

    opts = options or LoaderOptions()
    map_source = source if source is not None else FileMapSource(opts)
    make_physics = physics_factory or _default_physics

    t0_ns = time.perf_counter_ns()
    LOGGER.debug("Starting to load worlds from %r", main_world)

    loader = WorldLoader(map_source, opts)
    result = loader.load_worlds(main_world)

    rect_count = 0
    for world_id in sorted(result.worlds):
        world = result.worlds[world_id]
        world.collision_map = CollisionMap.build(world, opts, make_physics(world))
        rect_count += len(world.collision_map.rects)

    registry = WorldRegistry(
        result.main_world_id,
        result.worlds,
        result.buildings,
        result.tree,
        result.connections,
    )

    duration_ms = int((time.perf_counter_ns() - t0_ns) / 1_000_000)
    LOGGER.info(
        "load_worlds metrics: main=%s worlds=%d buildings=%d doors=%d connections=%d collision_rects=%d duration_ms=%d",
        main_world,
        len(result.worlds),
        len(result.buildings),
        result.door_count,
        len(result.connections),
        rect_count,
        duration_ms,
    )
    return registry


__all__ = ["load_worlds"]
