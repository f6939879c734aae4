from __future__ import annotations

import pytest
from shapely.ops import unary_union

from worldgraph.merge import (
    border_rects,
    horizontal_break,
    merge_rects,
    sweep,
    tile_rects,
    vertical_break,
)
from worldgraph.tiles import Rect

T = 32.0


def _merge(tiles):
    return merge_rects(tile_rects(tiles, T), T)


def _coverage(rects):
    return unary_union([r.to_polygon() for r in rects])


def _assert_exact_cover(tiles, merged):
    expected = _coverage(tile_rects(tiles, T))
    actual = _coverage(merged)
    assert actual.symmetric_difference(expected).area == pytest.approx(0.0)
    # no overlaps: summed areas match the union
    assert sum(r.area for r in merged) == pytest.approx(expected.area)


def test_single_isolated_tile_yields_one_rect():
    assert _merge([(4, 7)]) == [Rect(4 * T, 7 * T, T, T)]


def test_empty_input_yields_nothing():
    assert _merge([]) == []


def test_row_run_is_merged_horizontally():
    merged = _merge([(2, 1), (3, 1), (4, 1)])
    assert merged == [Rect(2 * T, T, 3 * T, T)]


def test_gap_in_row_breaks_run():
    merged = _merge([(0, 0), (1, 0), (3, 0)])
    assert sorted(merged, key=lambda r: r.left) == [Rect(0, 0, 2 * T, T), Rect(3 * T, 0, T, T)]


def test_identical_rows_stack_into_one_block():
    tiles = [(x, y) for y in range(3) for x in range(1, 3)]
    assert _merge(tiles) == [Rect(T, 0, 2 * T, 3 * T)]


def test_rows_of_different_width_stay_separate():
    tiles = [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1)]
    merged = _merge(tiles)
    assert len(merged) == 2
    _assert_exact_cover(tiles, merged)


def test_row_wrap_does_not_join_rows():
    # last tile of row 0 and first tile of row 1 are in the same column
    tiles = [(5, 0), (5, 1), (6, 1)]
    merged = _merge(tiles)
    _assert_exact_cover(tiles, merged)


def test_diagonal_tiles_are_not_merged():
    tiles = [(0, 0), (1, 1), (2, 2)]
    merged = _merge(tiles)
    assert len(merged) == 3
    _assert_exact_cover(tiles, merged)


@pytest.mark.parametrize(
    "tiles",
    [
        [(x, y) for y in range(4) for x in range(4) if (x + y) % 2 == 0],
        [(0, 0), (0, 1), (0, 2), (1, 2), (2, 2)],
        [(x, y) for y in range(5) for x in range(6) if not (1 <= x <= 3 and 1 <= y <= 2)],
        [(3, 0), (4, 0), (0, 1), (1, 1), (2, 1), (3, 1), (4, 1), (2, 2)],
    ],
)
def test_merge_covers_input_exactly_and_is_idempotent(tiles):
    merged = _merge(tiles)
    _assert_exact_cover(tiles, merged)
    assert sorted(merge_rects(merged, T), key=lambda r: (r.left, r.top)) == sorted(
        merged, key=lambda r: (r.left, r.top)
    )


def test_merge_is_independent_of_input_order():
    tiles = [(x, y) for y in range(3) for x in range(4) if (x, y) != (1, 1)]
    forward = _merge(tiles)
    backward = _merge(list(reversed(tiles)))
    assert sorted(forward, key=lambda r: (r.left, r.top)) == sorted(backward, key=lambda r: (r.left, r.top))


def test_horizontal_break_requires_adjacency_on_same_row():
    pred = horizontal_break(T)
    last = Rect(0, 0, T, T)
    assert pred(last, Rect(T, 0, T, T)) is False
    assert pred(last, Rect(2 * T, 0, T, T)) is True
    assert pred(last, Rect(0, T, T, T)) is True


def test_vertical_break_requires_identical_strip_directly_below():
    last = Rect(0, 0, 2 * T, T)
    assert vertical_break(last, Rect(0, T, 2 * T, T)) is False
    assert vertical_break(last, Rect(0, T, T, T)) is True
    assert vertical_break(last, Rect(0, 2 * T, 2 * T, T)) is True
    assert vertical_break(last, Rect(2 * T, T, 2 * T, T)) is True


def test_sweep_flushes_final_accumulator():
    rects = [Rect(0, 0, T, T), Rect(T, 0, T, T)]
    assert sweep(rects, horizontal_break(T)) == [Rect(0, 0, 2 * T, T)]


def test_border_rects_enclose_map():
    borders = border_rects(320.0, 160.0, 32.0, 8.0)
    assert borders == [
        Rect(-40.0, 0.0, 32.0, 160.0),
        Rect(0.0, -40.0, 320.0, 32.0),
        Rect(328.0, 0.0, 32.0, 160.0),
        Rect(0.0, 168.0, 320.0, 32.0),
    ]
