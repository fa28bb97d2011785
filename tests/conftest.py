# tests/conftest.py
import copy
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import boto3
import pytest
from botocore.exceptions import ClientError
from pydantic import BaseModel, Field

from dynamo_repository.db_implementations.dynamodb_datastore import \
    DynamoDBDatastore

# Silence verbose loggers
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("boto3").setLevel(logging.WARNING)

TEST_REGION = "us-east-1"

_PATH_STEP = re.compile(r"(#\w+)|\[(\d+)\]")
_EXISTS = re.compile(r"^attribute_(not_)?exists\((#\w+)\)$")


def client_error(code: str, operation: str, message: str = "stubbed failure") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeDynamoDriver:
    """
    In-memory DynamoDB driver.

    Stores items in wire format keyed by ``key_names``, applies SET/REMOVE
    update expressions, honours attribute_exists/attribute_not_exists
    conditions and serves scripted query responses and pages. Every call is
    recorded in ``calls`` as ``(method, params)``.
    """

    def __init__(self, key_names: Sequence[str] = ("id",)):
        self.key_names = tuple(key_names)
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.failures: Dict[str, ClientError] = {}
        self.query_responses: List[Dict[str, Any]] = []
        self.pages: List[Dict[str, Any]] = []

    # --- test helpers ---
    def fail(self, method: str, code: str = "InternalServerError") -> None:
        self.failures[method] = client_error(code, method)

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    def params(self, method: str) -> List[Dict[str, Any]]:
        return [params for name, params in self.calls if name == method]

    def stored(self, table: str, **key: Any) -> Optional[Dict[str, Any]]:
        """The stored wire item for a plain string/number key, if any."""
        wire_key = {
            name: {"N": str(v)} if isinstance(v, (int, float)) else {"S": v}
            for name, v in key.items()
        }
        return self.tables.get(table, {}).get(self._storage_key(wire_key))

    # --- driver protocol ---
    def put_item(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._record("put_item", params)
        table = self.tables.setdefault(params["TableName"], {})
        storage_key = self._storage_key(params["Item"])
        self._check_condition(params, table.get(storage_key), "PutItem")
        table[storage_key] = copy.deepcopy(params["Item"])
        return {}

    def get_item(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._record("get_item", params)
        item = self.tables.get(params["TableName"], {}).get(self._storage_key(params["Key"]))
        return {"Item": copy.deepcopy(item)} if item is not None else {}

    def delete_item(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._record("delete_item", params)
        table = self.tables.setdefault(params["TableName"], {})
        storage_key = self._storage_key(params["Key"])
        old = table.get(storage_key)
        self._check_condition(params, old, "DeleteItem")
        table.pop(storage_key, None)
        return self._old_values(params, old)

    def update_item(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._record("update_item", params)
        table = self.tables.setdefault(params["TableName"], {})
        storage_key = self._storage_key(params["Key"])
        old = table.get(storage_key)
        self._check_condition(params, old, "UpdateItem")

        item = copy.deepcopy(old) if old is not None else copy.deepcopy(params["Key"])
        names = params.get("ExpressionAttributeNames", {})
        values = params.get("ExpressionAttributeValues", {})
        set_clauses, remove_clauses = self._split_update(params["UpdateExpression"])
        for clause in set_clauses:
            path, alias = [part.strip() for part in clause.split("=")]
            self._set_path(item, self._steps(path, names), copy.deepcopy(values[alias]))
        for path in remove_clauses:
            self._remove_path(item, self._steps(path, names))

        table[storage_key] = item
        return self._old_values(params, old)

    def query(self, params: Dict[str, Any]) -> Dict[str, Any]:
        self._record("query", params)
        if self.query_responses:
            return self.query_responses.pop(0)
        return {"Items": [], "Count": 0}

    def query_pages(self, params: Dict[str, Any], callback: Callable[[Dict[str, Any], bool], bool]) -> None:
        self._record("query_pages", params)
        for position, page in enumerate(self.pages):
            if not callback(page, position == len(self.pages) - 1):
                break

    # --- internals ---
    def _record(self, method: str, params: Dict[str, Any]) -> None:
        self.calls.append((method, copy.deepcopy(params)))
        if method in self.failures:
            raise self.failures[method]

    def _storage_key(self, item: Dict[str, Any]) -> str:
        return json.dumps({name: item.get(name) for name in self.key_names}, sort_keys=True)

    @staticmethod
    def _old_values(params: Dict[str, Any], old: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if params.get("ReturnValues") == "ALL_OLD" and old is not None:
            return {"Attributes": copy.deepcopy(old)}
        return {}

    @staticmethod
    def _check_condition(params: Dict[str, Any], current: Optional[Dict[str, Any]], operation: str) -> None:
        expression = params.get("ConditionExpression")
        if not expression:
            return
        names = params.get("ExpressionAttributeNames", {})
        for part in expression.split(" AND "):
            match = _EXISTS.match(part.strip())
            if match is None:
                raise NotImplementedError(f"Fake driver cannot evaluate '{part}'")
            present = current is not None and names[match.group(2)] in current
            if present == bool(match.group(1)):
                raise client_error("ConditionalCheckFailedException", operation,
                                   "The conditional request failed")

    @staticmethod
    def _split_update(expression: str) -> Tuple[List[str], List[str]]:
        set_part, _, remove_part = expression.partition("REMOVE ")
        set_part = set_part.strip()
        set_clauses = [c.strip() for c in set_part[len("SET "):].split(",")] if set_part else []
        remove_clauses = [c.strip() for c in remove_part.split(",")] if remove_part else []
        return set_clauses, remove_clauses

    @staticmethod
    def _steps(path: str, names: Dict[str, str]) -> List[Any]:
        steps: List[Any] = []
        for alias, index in _PATH_STEP.findall(path):
            steps.append(names[alias] if alias else int(index))
        return steps

    @staticmethod
    def _container(item: Dict[str, Any], steps: List[Any], operation: str) -> Any:
        container: Any = item
        for step in steps:
            try:
                attribute = container[step]
            except (KeyError, IndexError):
                raise client_error("ValidationException", operation,
                                   "The document path provided in the update expression is invalid for update")
            container = attribute["M"] if "M" in attribute else attribute["L"]
        return container

    def _set_path(self, item: Dict[str, Any], steps: List[Any], value: Dict[str, Any]) -> None:
        container = self._container(item, steps[:-1], "UpdateItem")
        last = steps[-1]
        if isinstance(last, int) and last >= len(container):
            container.append(value)
        else:
            container[last] = value

    def _remove_path(self, item: Dict[str, Any], steps: List[Any]) -> None:
        container = self._container(item, steps[:-1], "UpdateItem")
        last = steps[-1]
        if isinstance(last, int):
            if last < len(container):
                container.pop(last)
        else:
            container.pop(last, None)


# --- Models ---
class Address(BaseModel):
    street: str
    city: str


class Customer(BaseModel):
    id: str
    name: str
    age: int = 0
    tags: List[str] = Field(default_factory=list)
    address: Optional[Address] = None


# --- Fixtures ---
@pytest.fixture
def fake_driver():
    return FakeDynamoDriver()


@pytest.fixture
def datastore(fake_driver):
    return DynamoDBDatastore(fake_driver, table_prefix="test_")


@pytest.fixture
def dynamodb_client():
    return boto3.client(
        "dynamodb",
        region_name=TEST_REGION,
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def customer():
    return Customer(
        id="c-1",
        name="Ada",
        age=36,
        tags=["admin", "beta"],
        address=Address(street="1 Loop Rd", city="London"),
    )
