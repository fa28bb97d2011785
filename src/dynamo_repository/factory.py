# src/dynamo_repository/factory.py

import logging
from enum import Enum
from typing import Optional

from dynamo_repository.base.interfaces import Datastore
from dynamo_repository.config import StoreConfig
from dynamo_repository.db_implementations.dynamodb_datastore import \
    DynamoDBDatastore

log = logging.getLogger(__name__)


class StoreKind(Enum):
    """Backends a datastore can be created for."""

    DYNAMODB = "dynamodb"


def connect(kind: StoreKind, config: Optional[StoreConfig] = None) -> Datastore:
    """
    Creates a datastore handle for the given backend.

    Args:
        kind: The backend to connect to.
        config: Options for the backend; empty when not given.

    Raises:
        ValueError: For a backend that is not available.
    """
    config = config if config is not None else StoreConfig()
    if kind is StoreKind.DYNAMODB:
        log.debug(f"Connecting to dynamodb with {config!r}")
        return DynamoDBDatastore.from_config(config)
    raise ValueError("unknown store")
