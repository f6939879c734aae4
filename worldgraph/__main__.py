"""Command-line interface for loading and inspecting a world graph.

Usage examples:
  python -m worldgraph --root maps --buildings maps/buildings --world town
  python -m worldgraph --config worlds.json --world town --json
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List

from .api import load_worlds
from .errors import WorldLoadError
from .options import LoaderOptions
from .registry import WorldRegistry

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="worldgraph",
        description="Load an outdoor map and its building interiors into a connected world graph",
    )

    p.add_argument("--world", required=True, help="Name of the outdoor map, without extension")

    # Locations
    p.add_argument("--config", type=str, default=None, help="JSON file with loader options")
    p.add_argument("--root", type=str, default=None, help="Directory containing the outdoor map")
    p.add_argument("--buildings", type=str, default=None, help="Directory containing building interiors")
    p.add_argument("--extension", type=str, default=None, help="Map file extension (default .json)")

    # Geometry
    p.add_argument("--tile-size", type=int, default=None, help="Tile size in pixels")
    p.add_argument("--pixels-per-metre", type=float, default=None, help="Pixel to physics unit scale")

    # Output
    p.add_argument("--json", action="store_true", help="Output the loaded graph as JSON")
    p.add_argument("--out", "--output", dest="out_path", type=str, default=None, help="Write output to file instead of stdout")

    # Logging
    p.add_argument("--log-level", default="INFO", choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], help="Logging level")

    return p


def _options_from_args(args: argparse.Namespace) -> LoaderOptions:
    opts = LoaderOptions.from_file(args.config) if args.config else LoaderOptions()

    if args.root is not None:
        opts.root_dir = Path(args.root)
    if args.buildings is not None:
        opts.buildings_dir = Path(args.buildings)
    if args.extension is not None:
        opts.extension = args.extension if args.extension.startswith(".") else "." + args.extension
    if args.tile_size is not None:
        if args.tile_size <= 0:
            raise ValueError(f"--tile-size must be positive; got {args.tile_size}")
        opts.tile_size = args.tile_size
    if args.pixels_per_metre is not None:
        if args.pixels_per_metre <= 0:
            raise ValueError(f"--pixels-per-metre must be positive; got {args.pixels_per_metre}")
        opts.pixels_per_metre = args.pixels_per_metre

    return opts


def _format_human(registry: WorldRegistry) -> str:
    lines: List[str] = [f"main_world: {registry.main_world.id} ({registry.main_world.name})", "worlds:"]
    for world_id in registry.world_ids:
        world = registry.get_world(world_id)
        kind = "outdoor" if world.is_outside else "interior"
        rects = len(world.collision_map.rects) if world.collision_map is not None else 0
        lines.append(
            f"  - {world.id}: {world.name} [{kind}] {world.tile_size[0]}x{world.tile_size[1]} rects={rects}"
        )

    lines.append("tree:")
    depths = {registry.tree.root.index: 0}
    for node in registry.tree.depth_first():
        depth = depths[node.index]
        for child in node.children.values():
            depths[child] = depth + 1
        lines.append(f"{'  ' * (depth + 1)}- {node.world_id}")

    lines.append(f"connections: {len(registry.connections)}")
    for src, dst in registry.connections.items():
        lines.append(
            f"  - {src.world_id}@({src.tile[0]}, {src.tile[1]}) -> {dst.world_id}@({dst.tile[0]}, {dst.tile[1]})"
        )
    return "\n".join(lines) + "\n"


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))

    try:
        options = _options_from_args(args)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    try:
        registry = load_worlds(args.world, options=options)
    except WorldLoadError as exc:
        LOGGER.debug("Load failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        out_text = json.dumps(registry.to_json_dict(), indent=2) + "\n"
    else:
        out_text = _format_human(registry)

    if getattr(args, "out_path", None):
        out_file = Path(args.out_path)
        out_file.parent.mkdir(parents=True, exist_ok=True)
        out_file.write_text(out_text, encoding="utf-8")
    else:
        print(out_text, end="")

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
