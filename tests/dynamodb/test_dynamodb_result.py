# tests/dynamodb/test_dynamodb_result.py

from typing import List

import pytest

from dynamo_repository.base.exceptions import UnmarshalItemFailed
from dynamo_repository.dynamodb.result import DynamoDBResult

ITEM = {
    "id": {"S": "c-1"},
    "age": {"N": "36"},
    "score": {"N": "4.5"},
    "active": {"BOOL": True},
    "tags": {"L": [{"S": "admin"}, {"S": "beta"}]},
    "roles": {"SS": ["writer", "reader"]},
    "address": {"M": {"street": {"S": "1 Loop Rd"}, "city": {"S": "London"}}},
}


@pytest.fixture
def result():
    return DynamoDBResult(items=[ITEM])


def test_counts(result):
    assert result.item_count == 1
    assert result.found
    assert not DynamoDBResult().found


def test_typed_accessors(result):
    assert result.get_item(0, "id") == {"S": "c-1"}
    assert result.get_string_item(0, "id") == "c-1"
    assert result.get_number_item(0, "age") == 36
    assert result.get_bool_item(0, "active") is True
    assert result.get_string_list_item(0, "tags") == ["admin", "beta"]
    assert result.get_string_list_item(0, "roles") == ["reader", "writer"]


def test_accessors_on_missing_or_mismatched_fields(result):
    assert result.get_string_item(0, "missing") is None
    assert result.get_string_item(0, "age") is None
    assert result.get_number_item(0, "score") is None
    assert result.get_bool_item(0, "id") is None
    assert result.get_string_list_item(0, "address") is None


def test_out_of_range_index(result):
    with pytest.raises(IndexError):
        result.get_string_item(3, "id")


def test_unmarshal_item_into_model(result, customer):
    address = result.unmarshal_item(0, "address", type(customer.address))
    assert address == customer.address
    assert result.unmarshal_item(0, "tags", List[str]) == ["admin", "beta"]
    assert result.unmarshal_item(0, "age", int) == 36
    assert result.unmarshal_item(0, "missing", int) is None


def test_unmarshal_item_failure(result):
    with pytest.raises(UnmarshalItemFailed):
        result.unmarshal_item(0, "address", int)


def test_records_and_old_attributes():
    result = DynamoDBResult(
        items=[{"id": {"S": "1"}, "n": {"N": "2"}}],
        attributes={"id": {"S": "1"}},
    )
    assert result.records() == [{"id": "1", "n": 2.0}]
    assert result.old_attributes() == {"id": "1"}
    assert DynamoDBResult().old_attributes() is None


def test_last_evaluated_key():
    assert DynamoDBResult().last_evaluated_key() is None
    result = DynamoDBResult(last_key={"id": {"S": "9"}, "n": {"N": "3"}})
    assert result.last_evaluated_key() == {"id": "9", "n": 3}
