# src/dynamo_repository/dynamodb/expressions.py

"""
Compilers from the generic request model to DynamoDB expressions.

Both compilers write into an :class:`ExpressionAttributes`, the pair of
placeholder tables sent as ``ExpressionAttributeNames`` and
``ExpressionAttributeValues``. Aliases are minted from the current table
sizes, so several expressions compiled into the same tables (key condition
and filter of one query) never share an alias.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from dynamo_repository.base.exceptions import (InvalidRequestCondition,
                                               InvalidUpdateExpression,
                                               InvalidUpdateOperation)
from dynamo_repository.base.request import (Action, Condition,
                                            RequestCondition, UpdateValue)
from dynamo_repository.dynamodb.marshal import (AttributeValue, marshal_items,
                                                marshal_value)

log = logging.getLogger(__name__)

NAME_ALIAS_PREFIX = "#ename"
VALUE_ALIAS_PREFIX = ":val"
APPEND_MARKER = "-"

# DynamoDB has no append operator, but SET on an index past the end of a
# list appends. Appends are therefore written to LIST_APPEND_SENTINEL + n.
# Hard limitation: a list that already holds that many elements gets the
# element overwritten instead of appended. A real fix needs an append
# primitive from the driver (list_append), not a bigger number.
LIST_APPEND_SENTINEL = 9990


class ExpressionAttributes:
    """Name and value placeholder tables shared by the compilers."""

    def __init__(
        self,
        names: Optional[Dict[str, str]] = None,
        values: Optional[Dict[str, AttributeValue]] = None,
    ):
        self.names: Dict[str, str] = names if names is not None else {}
        self.values: Dict[str, AttributeValue] = values if values is not None else {}

    def name(self, attribute_name: str) -> str:
        """Mints a fresh alias bound to ``attribute_name``."""
        alias = _mint(self.names, NAME_ALIAS_PREFIX)
        self.names[alias] = attribute_name
        return alias

    def value(self, attribute: AttributeValue) -> str:
        """Mints a fresh alias bound to an encoded attribute value."""
        alias = _mint(self.values, VALUE_ALIAS_PREFIX)
        self.values[alias] = attribute
        return alias

    def apply(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Adds the non-empty tables to a request parameter dict."""
        if self.names:
            params["ExpressionAttributeNames"] = dict(self.names)
        if self.values:
            params["ExpressionAttributeValues"] = dict(self.values)
        return params

    def __repr__(self) -> str:
        return f"ExpressionAttributes(names={self.names!r}, values={self.values!r})"


def _mint(table: Dict[str, Any], prefix: str) -> str:
    counter = len(table)
    alias = f"{prefix}{counter}"
    while alias in table:
        counter += 1
        alias = f"{prefix}{counter}"
    return alias


# --- Condition expressions ---
def build_condition_expression(
    conditions: Sequence[RequestCondition], attributes: ExpressionAttributes
) -> str:
    """
    Compiles ordered conditions into a single boolean expression.

    Usable anywhere DynamoDB takes a condition: ConditionExpression,
    KeyConditionExpression or FilterExpression.

    Args:
        conditions: Conditions in order; the relationship of the first one
            is ignored.
        attributes: Placeholder tables to mint aliases into.

    Returns:
        The expression, or an empty string for no conditions.

    Raises:
        InvalidRequestCondition: If a condition's value does not suit its
            kind, or the kind is unknown.
    """
    parts: List[str] = []
    for position, condition in enumerate(conditions):
        kind = condition.condition
        value = condition.value

        if kind in (Condition.GREATER_THAN, Condition.LESS_THAN) and not value.is_numeric:
            raise InvalidRequestCondition(
                f"Invalid request condition: {kind.name} condition value must be a number"
            )
        if kind is Condition.EQUAL and not (value.is_numeric or value.is_string):
            raise InvalidRequestCondition(
                "Invalid request condition: EQUAL condition value must be a number or a string"
            )
        if kind is Condition.BEGINS_WITH and not value.is_string:
            raise InvalidRequestCondition(
                "Invalid request condition: BEGINS_WITH condition value must be a string"
            )
        if not isinstance(kind, Condition):
            raise InvalidRequestCondition("Unknown request condition")

        if position > 0:
            parts.append(condition.relationship_string())

        name = attributes.name(condition.field)
        if kind is Condition.EXISTS:
            parts.append(f"attribute_exists({name})")
        elif kind is Condition.NOT_EXISTS:
            parts.append(f"attribute_not_exists({name})")
        elif kind is Condition.GREATER_THAN:
            parts.append(f"{name} > {attributes.value(marshal_value(value))}")
        elif kind is Condition.LESS_THAN:
            parts.append(f"{name} < {attributes.value(marshal_value(value))}")
        elif kind is Condition.EQUAL:
            parts.append(f"{name} = {attributes.value(marshal_value(value))}")
        else:
            parts.append(f"begins_with({name}, {attributes.value(marshal_value(value))})")

    expression = " ".join(parts)
    log.debug(f"Compiled condition expression: {expression!r}")
    return expression


# --- Update expressions ---
def parse_update_path(path: str, attributes: ExpressionAttributes) -> str:
    """
    Translates a slash-delimited pointer into a DynamoDB document path.

    ``/path/0/in/another/3/list`` becomes ``#ename0[0].#ename1.#ename2[3].#ename3``:
    numeric segments are list indices folded onto the path so far, other
    segments get a fresh name alias, and a trailing ``-`` is kept verbatim
    as the list-append marker.

    Raises:
        InvalidUpdateExpression: For an empty path or segment, a leading list
            index, or an append marker that is not the last segment.
    """
    segments = path.split("/")[1:] if path.startswith("/") else path.split("/")
    if not segments or segments == [""]:
        raise InvalidUpdateExpression(f"Invalid update expression: empty path '{path}'")

    translated = ""
    last = len(segments) - 1
    for position, segment in enumerate(segments):
        if segment.isascii() and segment.isdigit():
            if not translated:
                raise InvalidUpdateExpression(
                    f"Invalid update expression: path '{path}' cannot start with a list index"
                )
            translated += f"[{int(segment)}]"
            continue

        if segment == APPEND_MARKER:
            if position != last or not translated:
                raise InvalidUpdateExpression(
                    f"Invalid update expression: '-' must be the last segment of a list path ('{path}')"
                )
            alias = APPEND_MARKER
        elif not segment:
            raise InvalidUpdateExpression(
                f"Invalid update expression: empty segment in path '{path}'"
            )
        else:
            alias = attributes.name(segment)

        translated = alias if not translated else f"{translated}.{alias}"
    return translated


def build_update_expression(
    updates: Sequence[UpdateValue], attributes: ExpressionAttributes
) -> str:
    """
    Compiles ordered updates into a ``SET ... REMOVE ...`` expression.

    Delete actions become REMOVE clauses; Put and Update actions become SET
    clauses whose value is marshalled and bound to a fresh ``:valN`` alias.

    Raises:
        InvalidUpdateExpression: For no updates, a bad path, or a value that
            marshals to nothing (an empty string).
        InvalidUpdateOperation: For an unsupported action, or a Delete of
            the append marker.
        MarshalItemFailed: If a value cannot be encoded.
    """
    if not updates:
        raise InvalidUpdateExpression("Invalid update expression: no updates given")

    set_clauses: List[str] = []
    remove_clauses: List[str] = []

    for position, update in enumerate(updates):
        if update.action not in (Action.PUT, Action.UPDATE, Action.DELETE):
            raise InvalidUpdateOperation(
                f"Invalid update operation: {update.action!r} on '{update.path}'"
            )

        path = parse_update_path(update.path, attributes)
        appends = path.endswith(APPEND_MARKER)

        if update.action is Action.DELETE:
            if appends:
                raise InvalidUpdateOperation(
                    f"Invalid update operation: cannot remove the append marker of '{update.path}'"
                )
            remove_clauses.append(path)
            continue

        encoded = marshal_items({path: update.value})
        if path not in encoded:
            raise InvalidUpdateExpression(
                f"Invalid update expression: empty string value for '{update.path}', use a Delete"
            )
        alias = attributes.value(encoded[path])
        if appends:
            # strip ".-" and address a position past the end of the list
            path = f"{path[:-2]}[{LIST_APPEND_SENTINEL + position}]"
        set_clauses.append(f"{path} = {alias}")

    parts = []
    if set_clauses:
        parts.append("SET " + ", ".join(set_clauses))
    if remove_clauses:
        parts.append("REMOVE " + ", ".join(remove_clauses))

    expression = " ".join(parts)
    log.debug(f"Compiled update expression: {expression!r}")
    return expression
