# src/dynamo_repository/base/request.py

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import (InvalidRequestCondition, MarshalItemFailed,
                         UnsupportedValueType)
from .values import Value


class Action(Enum):
    """Operation performed by a Request (also the action of an UpdateValue)."""

    PUT = "put"
    GET = "get"
    UPDATE = "update"
    DELETE = "delete"
    QUERY = "query"
    QUERY_PAGER = "query_pager"


class Condition(Enum):
    """Kinds of request conditions."""

    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"
    EQUAL = "eq"
    BEGINS_WITH = "begins_with"


class Relationship(Enum):
    """How a condition combines with the one before it."""

    AND = "and"
    OR = "or"


@dataclass
class RequestCondition:
    """A single condition: ``field <condition> value``.

    ``value`` is converted to a :class:`Value` on construction; whether its
    kind suits the condition is checked by the condition compiler.
    """

    field: str
    condition: Condition
    relationship: Relationship = Relationship.AND
    value: Any = None

    def __post_init__(self) -> None:
        try:
            self.value = Value.of(self.value)
        except UnsupportedValueType as e:
            raise InvalidRequestCondition(
                f"Invalid request condition on '{self.field}': {e}"
            ) from e

    def relationship_string(self) -> str:
        return self.relationship.value.upper()


@dataclass
class UpdateValue:
    """An update to the attribute addressed by ``path``.

    Paths are slash-delimited pointers (``/map/key/0/list``). Numeric segments
    address list positions and a trailing ``-`` appends to a list. A missing
    leading slash is added.
    """

    action: Action
    path: str = ""
    value: Any = None

    def __post_init__(self) -> None:
        if self.path and not self.path.startswith("/"):
            self.path = "/" + self.path
        try:
            self.value = Value.of(self.value)
        except UnsupportedValueType as e:
            raise MarshalItemFailed(
                f"Could not marshal update value for '{self.path}': {e}"
            ) from e

    def segments(self) -> List[str]:
        return self.path.split("/")[1:]


@dataclass
class Request:
    """A generic, backend-agnostic description of one datastore operation."""

    table: str = ""
    action: Action = Action.GET
    key: Dict[str, Any] = field(default_factory=dict)
    item: Optional[Any] = None
    updates: List[UpdateValue] = field(default_factory=list)
    page_size: int = 0
    page: int = 0
    index: str = ""
    return_values: bool = False
    consistent_read: bool = False
    live_data: bool = False
    limit: int = 0
    last_key: Dict[str, Any] = field(default_factory=dict)
    request_conditions: List[RequestCondition] = field(default_factory=list)
    result_filter: List[RequestCondition] = field(default_factory=list)

    def add_key(self, name: str, value: Any) -> "Request":
        self.key[name] = value
        return self

    def add_item(self, name: str, value: Any) -> "Request":
        if self.item is None:
            self.item = {}
        self.item[name] = value
        return self

    def add_condition(
        self,
        field_name: str,
        condition: Condition,
        relationship: Relationship,
        value: Any = None,
    ) -> "Request":
        self.request_conditions.append(
            RequestCondition(field_name, condition, relationship, value)
        )
        return self

    def and_(self, field_name: str, condition: Condition, value: Any = None) -> "Request":
        return self.add_condition(field_name, condition, Relationship.AND, value)

    def or_(self, field_name: str, condition: Condition, value: Any = None) -> "Request":
        return self.add_condition(field_name, condition, Relationship.OR, value)

    def add_filter(
        self,
        field_name: str,
        condition: Condition,
        relationship: Relationship,
        value: Any = None,
    ) -> "Request":
        self.result_filter.append(
            RequestCondition(field_name, condition, relationship, value)
        )
        return self

    def add_update_value(self, path: str, action: Action, value: Any = None) -> "Request":
        self.updates.append(UpdateValue(action=action, path=path, value=value))
        return self

    def update_add_remove_value(self, field_name: str, length: int, value: Any = None) -> "Request":
        """Sets ``field_name`` to ``value``, or removes it when ``length`` is 0."""
        if length == 0:
            return self.add_update_value("/" + field_name, Action.DELETE)
        return self.add_update_value("/" + field_name, Action.UPDATE, value)

    def copy(self) -> "Request":
        """Deep copy, so the executor never mutates a caller's request."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        parts = [f"table={self.table!r}", f"action={self.action.name}"]
        if self.key:
            parts.append(f"key={self.key!r}")
        if self.updates:
            parts.append(f"updates={len(self.updates)}")
        if self.request_conditions:
            parts.append(f"conditions={len(self.request_conditions)}")
        if self.result_filter:
            parts.append(f"filter={len(self.result_filter)}")
        if self.action is Action.QUERY_PAGER:
            parts.append(f"page={self.page}")
            parts.append(f"page_size={self.page_size}")
        return f"Request({', '.join(parts)})"
