# tests/base/test_request_builders.py

import pytest

from dynamo_repository.base.exceptions import (InvalidRequestCondition,
                                               MarshalItemFailed)
from dynamo_repository.base.request import (Action, Condition, Relationship,
                                            Request, RequestCondition,
                                            UpdateValue)
from dynamo_repository.base.values import Value, ValueKind


def test_builders_chain_and_return_request():
    request = Request(table="orders", action=Action.PUT)
    returned = (
        request.add_key("id", "o-1")
        .add_item("total", 12)
        .and_("id", Condition.NOT_EXISTS)
    )
    assert returned is request
    assert request.key == {"id": "o-1"}
    assert request.item == {"total": 12}
    assert len(request.request_conditions) == 1


def test_add_condition_converts_value():
    request = Request(table="t").add_condition("age", Condition.GREATER_THAN, Relationship.AND, 30)
    condition = request.request_conditions[0]
    assert condition.value == Value(ValueKind.NUMBER, 30)
    assert condition.relationship_string() == "AND"


def test_or_sets_relationship():
    request = Request(table="t").and_("a", Condition.EXISTS).or_("b", Condition.EXISTS)
    assert [c.relationship for c in request.request_conditions] == [Relationship.AND, Relationship.OR]
    assert request.request_conditions[1].relationship_string() == "OR"


def test_add_filter_goes_to_result_filter():
    request = Request(table="t").add_filter("status", Condition.EQUAL, Relationship.AND, "open")
    assert not request.request_conditions
    assert request.result_filter[0].field == "status"


def test_unsupported_condition_value_is_rejected():
    with pytest.raises(InvalidRequestCondition):
        RequestCondition("f", Condition.EQUAL, value=object())


def test_add_update_value_prefixes_slash():
    request = Request(table="t").add_update_value("name", Action.UPDATE, "x")
    assert request.updates[0].path == "/name"
    assert request.updates[0].segments() == ["name"]


def test_update_value_segments_of_nested_path():
    update = UpdateValue(Action.PUT, "/path/0/in/-", 1)
    assert update.segments() == ["path", "0", "in", "-"]


def test_update_value_with_unsupported_value():
    with pytest.raises(MarshalItemFailed):
        UpdateValue(Action.PUT, "/x", object())


@pytest.mark.parametrize(
    "length, expected_action",
    [(0, Action.DELETE), (1, Action.UPDATE), (3, Action.UPDATE)],
)
def test_update_add_remove_value(length, expected_action):
    request = Request(table="t").update_add_remove_value("tags", length, ["a"])
    update = request.updates[0]
    assert update.action is expected_action
    assert update.path == "/tags"


def test_copy_is_deep():
    request = Request(table="t").add_key("id", "1").add_item("tags", ["a"])
    clone = request.copy()
    clone.item["tags"].append("b")
    clone.key["id"] = "2"
    assert request.item == {"tags": ["a"]}
    assert request.key == {"id": "1"}


def test_repr_mentions_table_and_action():
    text = repr(Request(table="orders", action=Action.QUERY_PAGER, page=2, page_size=5))
    assert "orders" in text
    assert "QUERY_PAGER" in text
    assert "page=2" in text
