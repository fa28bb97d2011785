# src/dynamo_repository/__init__.py

"""
DynamoDB Repository Library Initialization.

This package provides a generic request model executed against DynamoDB,
with expression compilation, pseudo-transactions rolled back through
compensating writes, a Get result cache and page-number pagination.

It initializes a logger with a NullHandler and makes the request model,
exceptions, configuration and the DynamoDB datastore available at the top
level.
"""

import logging

# --------------------------------------------------------------------------
# Logging Setup
# --------------------------------------------------------------------------
# Library logs are discarded unless the consuming application configures
# logging for "dynamo_repository".
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())
logger.propagate = False

# --------------------------------------------------------------------------
# Core Interface and Exception Exports
# --------------------------------------------------------------------------
from .base.interfaces import Datastore, Result, RollbackOrder
from .base.exceptions import (DatastoreException, DeleteItemFailed,
                              GetItemFailed, InvalidFilterCondition,
                              InvalidRequestCondition, InvalidUpdateExpression,
                              InvalidUpdateOperation, MarshalItemFailed,
                              PutItemFailed, QueryFailed, RollbackIncomplete,
                              UnmarshalItemFailed, UnsupportedValueType,
                              UpdateItemFailed)

# --------------------------------------------------------------------------
# Request Model Exports
# --------------------------------------------------------------------------
from .base.request import (Action, Condition, Relationship, Request,
                           RequestCondition, UpdateValue)
from .base.values import Value, ValueKind

# --------------------------------------------------------------------------
# Configuration and Implementation Exports
# --------------------------------------------------------------------------
from .config import Option, StoreConfig
from .dynamodb.driver import Boto3Driver, DynamoDriver
from .db_implementations.dynamodb_datastore import DynamoDBDatastore
from .factory import StoreKind, connect

__all__ = [
    # Core
    "Datastore",
    "Result",
    "RollbackOrder",
    # Exceptions
    "DatastoreException",
    "InvalidRequestCondition",
    "InvalidFilterCondition",
    "InvalidUpdateExpression",
    "InvalidUpdateOperation",
    "MarshalItemFailed",
    "UnmarshalItemFailed",
    "PutItemFailed",
    "GetItemFailed",
    "UpdateItemFailed",
    "DeleteItemFailed",
    "QueryFailed",
    "RollbackIncomplete",
    "UnsupportedValueType",
    # Request model
    "Action",
    "Condition",
    "Relationship",
    "Request",
    "RequestCondition",
    "UpdateValue",
    "Value",
    "ValueKind",
    # Configuration
    "Option",
    "StoreConfig",
    # Implementations
    "DynamoDriver",
    "Boto3Driver",
    "DynamoDBDatastore",
    "StoreKind",
    "connect",
    # Logging
    "logger",
]
