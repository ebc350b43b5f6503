"""
Unit tests for flat-to-tree grouping.
"""

import random

import pytest

from fetchplan.grouping import ChildShape, GroupedResult, RowShape, flatten_grouped, group_flat_rows

pytestmark = pytest.mark.unit


ITEMS = ChildShape(
    name="items",
    key="items__id",
    fields={"item_id": "items__id", "item_name": "items__name"},
)
TAGS = ChildShape(name="tags", key="tags__id", fields={"tag_id": "tags__id"})
SHAPE = RowShape(key="id", fields={"id": "id", "name": "name"}, children=(ITEMS,))


def _row(parent, name, item_id=None, item_name=None):
    return {"id": parent, "name": name, "items__id": item_id, "items__name": item_name}


def test_four_parents_five_rows():
    rows = [
        _row(1, "A", 10, "book"),
        _row(1, "A", 11, "pen"),
        _row(2, "B"),
        _row(3, "C"),
        _row(4, "D"),
    ]

    results = group_flat_rows(rows, SHAPE)

    assert [result.key for result in results] == [1, 2, 3, 4]
    assert [len(result.children["items"]) for result in results] == [2, 0, 0, 0]
    assert results[0].children["items"] == [
        {"item_id": 10, "item_name": "book"},
        {"item_id": 11, "item_name": "pen"},
    ]
    assert results[1]["name"] == "B"


def test_duplicate_child_identity_is_dropped():
    rows = [_row(1, "A", 10, "book"), _row(1, "A", 10, "book"), _row(1, "A", 11, "pen")]

    results = group_flat_rows(rows, SHAPE)

    assert [child["item_id"] for child in results[0].children["items"]] == [10, 11]


def test_same_child_identity_under_different_parents_is_kept():
    rows = [_row(1, "A", 10, "book"), _row(2, "B", 10, "book")]

    results = group_flat_rows(rows, SHAPE)

    assert results[0].children["items"] == results[1].children["items"]


def test_parent_fields_come_from_first_row():
    rows = [_row(1, "first", 10, "book"), _row(1, "second", 11, "pen")]

    results = group_flat_rows(rows, SHAPE)

    assert results[0].fields == {"id": 1, "name": "first"}


def test_parent_order_is_first_appearance():
    rows = [_row(3, "C"), _row(1, "A", 10, "book"), _row(3, "C"), _row(2, "B")]

    results = group_flat_rows(rows, SHAPE)

    assert [result.key for result in results] == [3, 1, 2]


def test_empty_input_groups_to_empty_output():
    assert group_flat_rows([], SHAPE) == []


def test_parent_without_associations_has_no_children():
    shape = RowShape(key="id", fields=["id", "name"])

    results = group_flat_rows([{"id": 1, "name": "A"}], shape)

    assert results == [GroupedResult(key=1, fields={"id": 1, "name": "A"}, children={})]


def test_multiple_associations_deduplicate_cartesian_rows():
    shape = RowShape(key="id", fields=["id"], children=(ITEMS, TAGS))
    rows = [
        {"id": 1, "items__id": item, "items__name": f"item{item}", "tags__id": tag}
        for item in (10, 11)
        for tag in (100, 101, 102)
    ]

    results = group_flat_rows(rows, shape)

    assert len(results) == 1
    assert [child["item_id"] for child in results[0].children["items"]] == [10, 11]
    assert [child["tag_id"] for child in results[0].children["tags"]] == [100, 101, 102]


def test_regrouping_flattened_output_is_idempotent():
    shape = RowShape(key="id", fields=["id", "name"], children=(ITEMS, TAGS))
    rows = [
        {"id": 1, "name": "A", "items__id": 10, "items__name": "book", "tags__id": 100},
        {"id": 1, "name": "A", "items__id": 11, "items__name": "pen", "tags__id": 100},
        {"id": 2, "name": "B", "items__id": None, "items__name": None, "tags__id": 101},
        {"id": 3, "name": "C", "items__id": None, "items__name": None, "tags__id": None},
    ]

    grouped = group_flat_rows(rows, shape)
    regrouped = group_flat_rows(flatten_grouped(grouped, shape), shape)

    assert regrouped == grouped


def test_reordering_rows_within_a_parent_keeps_parent_order():
    rows = [_row(1, "A", child, str(child)) for child in range(5)] + [_row(2, "B", 9, "x")]
    shuffled = rows[:5]
    random.Random(7).shuffle(shuffled)

    results = group_flat_rows(shuffled + rows[5:], SHAPE)

    assert [result.key for result in results] == [1, 2]
    assert sorted(child["item_id"] for child in results[0].children["items"]) == list(range(5))


def test_child_shape_requires_projected_key():
    with pytest.raises(ValueError):
        ChildShape(name="items", key="items__id", fields={"item_name": "items__name"})
