# src/dynamo_repository/dynamodb/result.py

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import TypeAdapter, ValidationError

from dynamo_repository.base.exceptions import UnmarshalItemFailed
from dynamo_repository.base.interfaces import Result
from dynamo_repository.dynamodb.marshal import (AttributeValue, WireItem,
                                                unmarshal_items,
                                                unmarshal_value)

T = TypeVar("T")


class DynamoDBResult(Result):
    """
    Result of a DynamoDB operation, kept in wire format.

    Items are decoded lazily by the accessors, so a Get that is only checked
    for ``found`` never pays for unmarshalling.
    """

    def __init__(
        self,
        items: Optional[List[WireItem]] = None,
        attributes: Optional[WireItem] = None,
        page_count: int = 0,
        last_key: Optional[WireItem] = None,
    ):
        self._items: List[WireItem] = list(items) if items else []
        self._attributes = attributes
        self._page_count = page_count
        self._last_key = last_key

    @property
    def item_count(self) -> int:
        return len(self._items)

    @property
    def items(self) -> List[WireItem]:
        """The wire-format items."""
        return self._items

    @property
    def attributes(self) -> Optional[WireItem]:
        """The wire-format old attributes (``ReturnValues=ALL_OLD``)."""
        return self._attributes

    @property
    def page_count(self) -> int:
        return self._page_count

    def _field(self, index: int, name: str) -> Optional[AttributeValue]:
        return self._items[index].get(name)

    def get_item(self, index: int, name: str) -> Optional[AttributeValue]:
        return self._field(index, name)

    def get_string_item(self, index: int, name: str) -> Optional[str]:
        attribute = self._field(index, name)
        if not attribute or "S" not in attribute:
            return None
        return attribute["S"]

    def get_number_item(self, index: int, name: str) -> Optional[int]:
        attribute = self._field(index, name)
        if not attribute or "N" not in attribute:
            return None
        try:
            number = Decimal(attribute["N"])
        except InvalidOperation:
            return None
        if not number.is_finite() or number != number.to_integral_value():
            return None
        return int(number)

    def get_string_list_item(self, index: int, name: str) -> Optional[List[str]]:
        attribute = self._field(index, name)
        if not attribute:
            return None
        if "SS" in attribute:
            return sorted(attribute["SS"])
        if "L" in attribute and all("S" in element for element in attribute["L"]):
            return [element["S"] for element in attribute["L"]]
        return None

    def get_bool_item(self, index: int, name: str) -> Optional[bool]:
        attribute = self._field(index, name)
        if not attribute or "BOOL" not in attribute:
            return None
        return attribute["BOOL"]

    def unmarshal_item(self, index: int, name: str, target_type: Type[T]) -> Optional[T]:
        attribute = self._field(index, name)
        if attribute is None:
            return None
        value = unmarshal_value(attribute)
        try:
            return TypeAdapter(target_type).validate_python(value)
        except ValidationError as e:
            raise UnmarshalItemFailed(
                f"Could not unmarshal item field '{name}' into {target_type!r}: {e}"
            ) from e

    def records(self) -> List[Dict[str, Any]]:
        return [unmarshal_items(item) for item in self._items]

    def old_attributes(self) -> Optional[Dict[str, Any]]:
        if self._attributes is None:
            return None
        return unmarshal_items(self._attributes)

    def last_evaluated_key(self) -> Optional[Dict[str, Any]]:
        if not self._last_key:
            return None
        # Decimal numbers so the key can be fed back as Request.last_key
        return unmarshal_items(self._last_key, exact_numbers=True)

    def __repr__(self) -> str:
        return (
            f"DynamoDBResult(items={self.item_count}, "
            f"attributes={self._attributes is not None}, "
            f"page_count={self._page_count}, last_key={self._last_key!r})"
        )
