# src/dynamo_repository/config.py

from enum import Enum
from typing import Any, Optional


class Option(Enum):
    """Keys understood by the datastore factory."""

    # boto3.session.Session used to build the client
    SESSION = "session"
    # Endpoint override (DynamoDB Local, LocalStack)
    ENDPOINT = "endpoint"
    # Namespace prepended to every table name
    TABLE_PREFIX = "table_prefix"
    REGION = "region"
    # Ready-made driver; takes precedence over SESSION/ENDPOINT/REGION
    DRIVER = "driver"


class StoreConfig(dict):
    """
    Option store for a datastore handle.

    A plain mapping from :class:`Option` to value with typed accessors.
    Missing options yield the accessor's default; a present option of the
    wrong type raises ``TypeError``.
    """

    def get_string(self, option: Option) -> str:
        value = self.get(option)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise TypeError(
                f"Option {option.name} must be a string, got {type(value).__name__}."
            )
        return value

    def get_int(self, option: Option) -> int:
        value = self.get(option)
        if value is None:
            return -1
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(
                f"Option {option.name} must be an int, got {type(value).__name__}."
            )
        return value

    def get_handle(self, option: Option) -> Optional[Any]:
        """Opaque objects (sessions, drivers) are returned untouched."""
        return self.get(option)

    def __repr__(self) -> str:
        parts = ", ".join(f"{k.name}={v!r}" for k, v in self.items())
        return f"StoreConfig({parts})"
