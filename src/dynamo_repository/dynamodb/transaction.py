# src/dynamo_repository/dynamodb/transaction.py

"""
Operation log entries and the compensations that undo them.

DynamoDB offers no multi-request transaction here, so a transaction is a log
of successful operations. Rolling back replays, for each entry, a request
that restores the state the entry changed:

- Put -> Delete of the same key
- Delete -> Put of the attributes returned as ALL_OLD
- Update -> Update restoring (or removing) every path it touched; list
  element and append paths restore the whole list
- reads -> nothing
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from dynamo_repository.base.interfaces import Result
from dynamo_repository.base.request import Action, Request
from dynamo_repository.dynamodb.expressions import APPEND_MARKER
from dynamo_repository.dynamodb.marshal import unmarshal_items

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operation:
    """A successful operation recorded while a transaction is active."""

    request: Request
    result: Result

    @classmethod
    def record(cls, request: Request, result: Result) -> "Operation":
        # Snapshot, so callers mutating their request cannot rewrite history
        return cls(request.copy(), result)


def reverse_operation(operation: Operation) -> Optional[Request]:
    """
    Builds the compensating request for a logged operation.

    Returns:
        The request to run, or None when there is nothing to undo.

    Raises:
        UnmarshalItemFailed: If the recorded old attributes are malformed.
    """
    request = operation.request
    action = request.action

    if action is Action.PUT:
        return Request(
            table=request.table, action=Action.DELETE, key=copy.deepcopy(request.key)
        )

    if action is Action.DELETE:
        old = _old_attributes(operation)
        if not old:
            log.warning(
                f"Delete on {request.table} {request.key!r} returned no old "
                "attributes; nothing to restore"
            )
            return None
        return Request(
            table=request.table,
            action=Action.PUT,
            key=copy.deepcopy(request.key),
            item=old,
        )

    if action is Action.UPDATE:
        return _reverse_update(request, _old_attributes(operation))

    return None


def _old_attributes(operation: Operation) -> Dict[str, Any]:
    attributes = getattr(operation.result, "attributes", None)
    # Decimals: restored numbers must be written back unchanged
    return unmarshal_items(attributes, exact_numbers=True)


def _reverse_update(request: Request, old: Dict[str, Any]) -> Request:
    reverse = Request(
        table=request.table, action=Action.UPDATE, key=copy.deepcopy(request.key)
    )
    paths: List[List[str]] = []
    for update in request.updates:
        segments = _restorable_path(update.segments(), old)
        if segments not in paths:
            paths.append(segments)

    # DynamoDB rejects overlapping paths; restoring an ancestor covers the rest
    paths = [
        segments for segments in paths
        if not any(
            len(other) < len(segments) and segments[: len(other)] == other
            for other in paths
        )
    ]

    for segments in paths:
        path = "/" + "/".join(segments)
        found, value = _lookup(old, segments)
        # top-level empty strings are never stored
        if found and value != "":
            reverse.add_update_value(path, Action.PUT, value)
        else:
            reverse.add_update_value(path, Action.DELETE)
    return reverse


def _restorable_path(segments: List[str], old: Dict[str, Any]) -> List[str]:
    """
    The path whose old value undoes a change at ``segments``.

    Appends and list element changes are undone on the whole list, since
    REMOVE shifts the elements that follow. A nested empty string cannot be
    written on its own, so its parent container is restored instead.
    """
    if len(segments) > 1 and (segments[-1] == APPEND_MARKER or segments[-1].isdigit()):
        segments = segments[:-1]
    if len(segments) > 1:
        found, value = _lookup(old, segments)
        if found and value == "":
            segments = _restorable_path(segments[:-1], old)
    return segments


def _lookup(document: Any, segments: List[str]) -> Tuple[bool, Any]:
    current = document
    for segment in segments:
        if isinstance(current, dict):
            if segment not in current:
                return False, None
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return False, None
            current = current[index]
        else:
            return False, None
    return True, current
