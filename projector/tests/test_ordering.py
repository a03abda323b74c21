"""
Tests for projected entry ordering.
"""

from projector.ordering import name_of, sort_projected_last


def _owned(item):
    return item["name"].startswith("sb-")


def test_unowned_keep_relative_order():
    items = [{"name": "z"}, {"name": "sb-b"}, {"name": "a"}, {"name": "sb-a"}, {"name": "m"}]

    result = sort_projected_last(items, _owned, name_of)

    assert [i["name"] for i in result] == ["z", "a", "m", "sb-a", "sb-b"]


def test_input_not_modified():
    items = [{"name": "sb-a"}, {"name": "x"}]

    sort_projected_last(items, _owned, name_of)

    assert [i["name"] for i in items] == ["sb-a", "x"]


def test_no_owned_entries():
    items = [{"name": "b"}, {"name": "a"}]

    assert sort_projected_last(items, _owned, name_of) == items


def test_name_of_missing_name():
    assert name_of({}) == ""
