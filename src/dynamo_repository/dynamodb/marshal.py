# src/dynamo_repository/dynamodb/marshal.py

"""
Conversion between plain field mappings and DynamoDB's tagged wire format.

Encoding rules:
- a top-level field holding an empty string is skipped entirely;
- empty lists and maps are encoded as ``{"L": []}`` / ``{"M": {}}``, never as
  ``NULL``;
- anything the typed value model rejects raises MarshalItemFailed.

Decoding is total: numbers come back as ``float`` (the wire form is decimal
text and does not keep an int/float distinction) and sets come back as
sorted lists. Only structurally malformed wire data raises
UnmarshalItemFailed.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from dynamo_repository.base.exceptions import (MarshalItemFailed,
                                               UnmarshalItemFailed,
                                               UnsupportedValueType)
from dynamo_repository.base.values import Value, ValueKind

log = logging.getLogger(__name__)

AttributeValue = Dict[str, Any]
WireItem = Dict[str, AttributeValue]

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def marshal_value(value: Value) -> AttributeValue:
    """Encodes a single Value as a DynamoDB attribute value."""
    # Keep empty collections as collections, never NULL
    if value.kind is ValueKind.LIST and not value.data:
        return {"L": []}
    if value.kind is ValueKind.MAP and not value.data:
        return {"M": {}}
    try:
        return _serializer.serialize(value.to_python())
    except (TypeError, ValueError, ArithmeticError) as e:
        raise MarshalItemFailed(f"Could not marshal item: {e}") from e


def marshal_items(fields: Mapping[str, Any]) -> WireItem:
    """
    Encodes a field mapping into a DynamoDB item.

    Args:
        fields: Field name to plain Python value (or Value).

    Returns:
        Field name to attribute value, without empty-string fields.

    Raises:
        MarshalItemFailed: If a value has no DynamoDB representation.
    """
    encoded: WireItem = {}
    for name, raw in fields.items():
        try:
            value = Value.of(raw)
        except UnsupportedValueType as e:
            raise MarshalItemFailed(f"Could not marshal item: field '{name}': {e}") from e
        if value.kind is ValueKind.STRING and not value.data:
            log.debug(f"Skipping empty string field '{name}'")
            continue
        encoded[name] = marshal_value(value)
    return encoded


def unmarshal_value(attribute: AttributeValue, exact_numbers: bool = False) -> Any:
    """
    Decodes a single attribute value.

    Args:
        attribute: A tagged value such as ``{"S": "x"}``.
        exact_numbers: Keep numbers as Decimal instead of float.

    Raises:
        UnmarshalItemFailed: If the attribute is malformed.
    """
    try:
        raw = _deserializer.deserialize(attribute)
    except (TypeError, ValueError, AttributeError, KeyError, IndexError, ArithmeticError) as e:
        raise UnmarshalItemFailed(f"Could not unmarshal item: {e}") from e
    return _normalize(raw, exact_numbers)


def unmarshal_items(
    item: Optional[Mapping[str, AttributeValue]], exact_numbers: bool = False
) -> Dict[str, Any]:
    """Decodes a DynamoDB item into a plain field mapping (``None`` gives ``{}``)."""
    if item is None:
        return {}
    if not isinstance(item, Mapping):
        raise UnmarshalItemFailed(
            f"Could not unmarshal item: expected a mapping, got {type(item).__name__}"
        )
    return {name: unmarshal_value(attr, exact_numbers) for name, attr in item.items()}


def _normalize(obj: Any, exact_numbers: bool) -> Any:
    if isinstance(obj, Decimal):
        return obj if exact_numbers else float(obj)
    if isinstance(obj, Binary):
        return bytes(obj.value)
    if isinstance(obj, dict):
        return {k: _normalize(v, exact_numbers) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_normalize(v, exact_numbers) for v in obj]
    if isinstance(obj, (set, frozenset)):
        items = [_normalize(v, exact_numbers) for v in obj]
        try:
            return sorted(items)
        except TypeError:
            return items
    return obj
