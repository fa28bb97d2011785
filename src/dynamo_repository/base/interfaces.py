# src/dynamo_repository/base/interfaces.py

from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from dynamo_repository.base.exceptions import (DatastoreException,
                                               RollbackIncomplete)
from dynamo_repository.base.request import Request

T = TypeVar("T")


class RollbackOrder(Enum):
    """Order in which logged operations are compensated."""

    # Historical behaviour: compensate in the order operations were recorded.
    RECORDED = "recorded"
    # Last-in-first-out, so dependent writes are undone before what they depend on.
    REVERSE = "reverse"


class Result(ABC):
    """
    Output of a single datastore operation.

    Item accessors take the item position within the result and a field
    name. They return ``None`` when the field is missing or holds a value of
    another type; an out-of-range position raises ``IndexError``.
    """

    @property
    @abstractmethod
    def item_count(self) -> int:
        """Number of items returned by the operation."""
        pass

    @property
    def found(self) -> bool:
        return self.item_count > 0

    @abstractmethod
    def get_item(self, index: int, name: str) -> Optional[Any]:
        """Raw backend value of a field."""
        pass

    @abstractmethod
    def get_string_item(self, index: int, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_number_item(self, index: int, name: str) -> Optional[int]:
        """Integral number field as an ``int``."""
        pass

    @abstractmethod
    def get_string_list_item(self, index: int, name: str) -> Optional[List[str]]:
        pass

    @abstractmethod
    def get_bool_item(self, index: int, name: str) -> Optional[bool]:
        pass

    @abstractmethod
    def unmarshal_item(self, index: int, name: str, target_type: Type[T]) -> Optional[T]:
        """
        Converts a field into ``target_type``.

        Returns:
            The converted value, or None when the field is missing.

        Raises:
            UnmarshalItemFailed: If the field cannot be converted.
        """
        pass

    @abstractmethod
    def records(self) -> List[Dict[str, Any]]:
        """All items as plain field mappings."""
        pass

    @abstractmethod
    def old_attributes(self) -> Optional[Dict[str, Any]]:
        """Attributes as they were before an Update/Delete, when requested."""
        pass

    @abstractmethod
    def last_evaluated_key(self) -> Optional[Dict[str, Any]]:
        """Continuation key of a limited Query, or None when exhausted."""
        pass

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Total number of pages for a paged query."""
        pass


class Datastore(ABC):
    """
    Base interface of a datastore handle.

    A handle runs requests one at a time, optionally records them as a
    pseudo-transaction that can be rolled back, and caches Get results.
    Handles are not thread-safe; use one per unit of work.
    """

    @abstractmethod
    def run(self, request: Request) -> Result:
        """
        Runs a single request against the backend.

        Args:
            request: The request to run. It is never modified.

        Returns:
            The result of the operation.

        Raises:
            DatastoreException: A subclass naming what failed.
        """
        pass

    @abstractmethod
    def start_transaction(self) -> None:
        """Starts recording successful operations so they can be rolled back."""
        pass

    @abstractmethod
    def finish_transaction(self) -> None:
        """Stops recording and discards the recorded operations."""
        pass

    @abstractmethod
    def rollback(self) -> List[DatastoreException]:
        """
        Compensates every recorded operation.

        Returns:
            The errors of compensations that failed. An empty list means the
            rollback completed; callers must check it.
        """
        pass

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        pass

    @abstractmethod
    def clear_cache(self) -> None:
        pass

    @abstractmethod
    def cache_on(self) -> None:
        pass

    @abstractmethod
    def cache_off(self) -> None:
        pass

    @contextmanager
    def transaction(self) -> Iterator["Datastore"]:
        """
        Runs the enclosed block as a pseudo-transaction.

        The transaction is finished when the block exits normally and rolled
        back when it raises. The original exception is re-raised; if some
        compensations failed it is chained to a RollbackIncomplete instead.
        """
        self.start_transaction()
        try:
            yield self
        except BaseException as exc:
            errors = self.rollback()
            if errors:
                raise RollbackIncomplete(errors) from exc
            raise
        else:
            self.finish_transaction()
