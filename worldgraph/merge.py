"""Greedy rectangle merging over a collidable tile grid.

Unit tile rectangles are coalesced in two sweeps: first into horizontal
runs along each row, then those runs are stacked into columns of identical
strips. The result is not a minimal cover but is produced in a single
sorted pass per phase.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Sequence

from .tiles import Rect, Tile

NextRowPredicate = Callable[[Rect, Rect], bool]

# Sorts after nothing and can never merge with a real rectangle
_SENTINEL = Rect(-100.0, -100.0, 0.0, 0.0)


def _horizontal_key(rect: Rect):
    return (rect.top, rect.left)


def _vertical_key(rect: Rect):
    return (rect.left, rect.top)


def horizontal_break(tile_size: float) -> NextRowPredicate:
    """Return the phase-one predicate for ``tile_size``.

    A new run starts when the candidate is further than one tile from the
    previous rectangle, or does not continue it along the same row.
    """

    limit = tile_size * tile_size

    def _predicate(last: Rect, rect: Rect) -> bool:
        if (rect.left - last.left) ** 2 + (rect.top - last.top) ** 2 > limit:
            return True
        return not (rect.top == last.top and rect.height == last.height and rect.left == last.right)

    return _predicate


def vertical_break(last: Rect, rect: Rect) -> bool:
    """Phase-two predicate: continue only on an identical strip directly below."""

    touching = (
        last.left <= rect.right
        and rect.left <= last.right
        and last.top <= rect.bottom
        and rect.top <= last.bottom
    )
    same_shape = last.width == rect.width and last.height == rect.height
    stacked = rect.left == last.left and rect.top == last.bottom
    return not (touching and same_shape and stacked)


def sweep(rects: Sequence[Rect], next_row: NextRowPredicate) -> List[Rect]:
    """Merge an already-sorted sequence of rectangles in one pass."""

    merged: List[Rect] = []
    current = None
    last = None
    for rect in list(rects) + [_SENTINEL]:
        if current is None:
            current = last = rect
            continue
        if next_row(last, rect):
            merged.append(current)
            current = last = rect
            continue
        current = current.union_bounds(rect)
        last = rect
    return merged


def merge_rects(rects: Iterable[Rect], tile_size: float) -> List[Rect]:
    """Coalesce rectangles horizontally, then vertically."""

    rows = sweep(sorted(rects, key=_horizontal_key), horizontal_break(tile_size))
    return sweep(sorted(rows, key=_vertical_key), vertical_break)


def tile_rects(tiles: Iterable[Tile], tile_size: float) -> List[Rect]:
    return [Rect.for_tile(tile, tile_size) for tile in tiles]


def border_rects(pixel_width: float, pixel_height: float, thickness: float, padding: float) -> List[Rect]:
    """Return four rectangles enclosing a map of the given pixel size."""

    return [
        Rect(-thickness - padding, 0.0, thickness, pixel_height),
        Rect(0.0, -thickness - padding, pixel_width, thickness),
        Rect(pixel_width + padding, 0.0, thickness, pixel_height),
        Rect(0.0, pixel_height + padding, pixel_width, thickness),
    ]


__all__ = [
    "border_rects",
    "horizontal_break",
    "merge_rects",
    "sweep",
    "tile_rects",
    "vertical_break",
]
