# tests/base/test_config.py

from unittest.mock import MagicMock

import pytest

from dynamo_repository.config import Option, StoreConfig
from dynamo_repository.db_implementations.dynamodb_datastore import \
    DynamoDBDatastore
from dynamo_repository.dynamodb.driver import Boto3Driver
from dynamo_repository.factory import StoreKind, connect


def test_missing_options_use_defaults():
    config = StoreConfig()
    assert config.get(Option.ENDPOINT) is None
    assert config.get_string(Option.ENDPOINT) == ""
    assert config.get_int(Option.ENDPOINT) == -1
    assert config.get_handle(Option.SESSION) is None


def test_present_options():
    session = object()
    config = StoreConfig({Option.TABLE_PREFIX: "dev_", Option.SESSION: session})
    assert config.get_string(Option.TABLE_PREFIX) == "dev_"
    assert config.get_handle(Option.SESSION) is session


@pytest.mark.parametrize("value", [5, b"x", ["x"]])
def test_get_string_wrong_type(value):
    with pytest.raises(TypeError):
        StoreConfig({Option.ENDPOINT: value}).get_string(Option.ENDPOINT)


@pytest.mark.parametrize("value", ["5", True, 1.5])
def test_get_int_wrong_type(value):
    with pytest.raises(TypeError):
        StoreConfig({Option.REGION: value}).get_int(Option.REGION)


def test_connect_uses_given_driver(fake_driver):
    store = connect(StoreKind.DYNAMODB, StoreConfig({
        Option.DRIVER: fake_driver,
        Option.TABLE_PREFIX: "prod_",
    }))
    assert isinstance(store, DynamoDBDatastore)
    assert store.driver is fake_driver
    assert store.table_prefix == "prod_"


def test_connect_builds_boto3_client_from_session():
    session = MagicMock()
    store = connect(StoreKind.DYNAMODB, StoreConfig({
        Option.SESSION: session,
        Option.ENDPOINT: "http://localhost:8000",
        Option.REGION: "eu-west-1",
    }))
    session.client.assert_called_once_with(
        "dynamodb", endpoint_url="http://localhost:8000", region_name="eu-west-1"
    )
    assert isinstance(store.driver, Boto3Driver)
    assert store.driver.client is session.client.return_value
    assert store.table_prefix == ""


def test_connect_unknown_store():
    with pytest.raises(ValueError, match="unknown store"):
        connect("cassandra", StoreConfig())
