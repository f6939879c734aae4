from __future__ import annotations

import logging

import pytest

from worldgraph.doors import (
    DirectWorldId,
    NamedWorld,
    ShareTag,
    UnknownTag,
    UnloadedBuilding,
    UnloadedDoor,
    classify_door_tag,
    find_door_building,
    find_partner_door,
    find_share_sibling,
    parse_door,
)
from worldgraph.errors import ParseFailure, TopologyError
from worldgraph.mapfile import PropertyObject, TileRecord
from worldgraph.tiles import TileRect


def _record(x, y, **properties):
    props = {key.replace("_", "-"): str(value) for key, value in properties.items()}
    return TileRecord(position=(x, y), shape=PropertyObject((32.0, 32.0), props))


@pytest.mark.parametrize(
    "properties, expected",
    [
        ({"door-world-id": "4", "door-world": "shop", "door-world-share": "a"}, DirectWorldId(4)),
        ({"door-world": "shop", "door-world-share": "a"}, NamedWorld("shop")),
        ({"door-world-share": "a"}, ShareTag("a")),
        ({"door-world-share-source": "a"}, UnknownTag()),
        ({}, UnknownTag()),
        ({"door-world": "shop", "door-world-share-source": "stairs"}, NamedWorld("shop", "stairs")),
        ({"door-world-id": "2", "door-world-share-source": "stairs"}, DirectWorldId(2, "stairs")),
    ],
)
def test_classification_follows_fixed_priority(properties, expected):
    assert classify_door_tag(properties, door_id=1) == expected


def test_share_and_share_source_together_are_rejected():
    with pytest.raises(TopologyError, match="both a share tag and a share source") as excinfo:
        classify_door_tag({"door-world-share": "a", "door-world-share-source": "a"}, door_id=6)
    assert excinfo.value.door_id == 6
    assert excinfo.value.share_tag == "a"


def test_non_integer_world_id_is_rejected():
    with pytest.raises(TopologyError, match="non-integer world id"):
        classify_door_tag({"door-world-id": "kitchen"}, door_id=2)


def test_parse_door_converts_pixels_to_tiles():
    door = parse_door(_record(96.0, 160.0, door=5, door_world="shop"), 32)

    assert door.tile == (3, 5)
    assert door.door_id == 5
    assert door.tag == NamedWorld("shop")
    assert door.world_id is None
    assert door.is_descending


def test_parse_door_rejects_bad_ids():
    with pytest.raises(ParseFailure, match="not an integer"):
        parse_door(_record(0.0, 0.0, door="front"), 32, "town.json")
    with pytest.raises(TopologyError, match="Door id 0") as excinfo:
        parse_door(_record(64.0, 32.0, door=0), 32)
    assert excinfo.value.tile == (2, 1)


def test_share_key_depends_on_tag():
    assert UnloadedDoor((0, 0), 1, ShareTag("alley")).share_key == "alley"
    assert UnloadedDoor((0, 0), 1, NamedWorld("shop", "alley")).share_key == "alley"
    assert UnloadedDoor((0, 0), 1, DirectWorldId(3)).share_key is None
    assert UnloadedDoor((0, 0), -1).share_key is None


def test_share_sibling_ignores_other_share_doors():
    share = UnloadedDoor((1, 0), 2, ShareTag("alley"))
    other_share = UnloadedDoor((2, 0), 3, ShareTag("alley"))
    source = UnloadedDoor((3, 0), 4, NamedWorld("backyard", "alley"))
    unrelated = UnloadedDoor((4, 0), 5, NamedWorld("backyard", "street"))

    assert find_share_sibling([share, other_share, unrelated], share) is None
    assert find_share_sibling([share, other_share, unrelated, source], share) is source
    assert find_share_sibling([source], UnloadedDoor((0, 0), 6)) is None


def test_partner_door_has_negated_id():
    doors = [UnloadedDoor((0, 0), -2), UnloadedDoor((1, 0), -3), UnloadedDoor((2, 0), 3)]

    assert find_partner_door(doors, 3).tile == (1, 0)
    assert find_partner_door(doors, -3).tile == (2, 0)
    assert find_partner_door(doors, 4) is None


def test_door_building_containment_includes_far_edges():
    shop = UnloadedBuilding(1, "shop", TileRect(2, 2, 3, 3))
    house = UnloadedBuilding(2, "house", TileRect(4, 4, 2, 2))

    assert find_door_building([shop, house], UnloadedDoor((5, 5), 1)) is shop
    assert find_door_building([shop, house], UnloadedDoor((6, 6), 1)) is house
    assert find_door_building([shop, house], UnloadedDoor((1, 3), 1)) is None
    assert find_door_building([shop, house], UnloadedDoor((7, 3), 1)) is None


def test_parse_door_requires_a_door_id_property():
    with pytest.raises(ParseFailure, match="no door id"):
        parse_door(TileRecord(position=(32.0, 32.0), gid=3), 32, "town.json")
    with pytest.raises(ParseFailure, match="no door id"):
        parse_door(_record(32.0, 32.0, door_world="shop"), 32, "town.json")


@pytest.mark.parametrize(
    "record",
    [
        _record(64.0, 32.0, door=0),
        _record(0.0, 0.0, door=2, door_world_id="kitchen"),
        _record(0.0, 0.0, door=3, door_world_share="a", door_world_share_source="a"),
    ],
)
def test_rejected_doors_are_logged_before_raising(record, caplog):
    with caplog.at_level(logging.ERROR, logger="worldgraph.doors"):
        with pytest.raises(TopologyError):
            parse_door(record, 32)
    assert [r.levelno for r in caplog.records] == [logging.ERROR]
