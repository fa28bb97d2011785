# src/dynamo_repository/dynamodb/cache.py

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from dynamo_repository.base.exceptions import UnsupportedValueType
from dynamo_repository.base.interfaces import Result
from dynamo_repository.base.request import Request
from dynamo_repository.base.values import canonical_key

log = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    table: str
    key: Mapping[str, Any]
    result: Result


def keys_equal(first: Mapping[str, Any], second: Mapping[str, Any]) -> bool:
    """
    Structural key equality: same field names, equal values.

    Keys whose values have no canonical form never match.
    """
    if len(first) != len(second):
        return False
    try:
        return canonical_key(first) == canonical_key(second)
    except UnsupportedValueType:
        return False


class ResultCache:
    """
    Get results keyed by table and item key.

    Unbounded: entries live until :meth:`clear`, or until :meth:`discard`
    drops the entries of a key a rollback wrote to. Not synchronised; owned
    by a single datastore handle.
    """

    def __init__(self):
        self._entries: List[CacheEntry] = []
        self.enabled = True

    def lookup(self, request: Request) -> Optional[Result]:
        """Returns the cached result for the request's table and key, if any."""
        if not self.enabled:
            return None
        # newest first, so a live re-read supersedes older entries
        for entry in reversed(self._entries):
            if entry.table == request.table and keys_equal(entry.key, request.key):
                return entry.result
        return None

    def store(self, request: Request, result: Result) -> None:
        # stores even while disabled; the toggle only gates lookups
        self._entries.append(CacheEntry(request.table, dict(request.key), result))
        log.debug(f"Cached result for {request.table} {request.key!r}")

    def discard(self, table: str, key: Mapping[str, Any]) -> int:
        """Drops every entry for ``key`` in ``table``; returns how many."""
        kept = [
            entry for entry in self._entries
            if not (entry.table == table and keys_equal(entry.key, key))
        ]
        dropped = len(self._entries) - len(kept)
        self._entries = kept
        return dropped

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
