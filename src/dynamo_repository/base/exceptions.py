from typing import List, Optional


class DatastoreException(Exception):
    """Base class for every error raised by the datastore layer.

    ``code`` is a stable identifier callers can switch on without matching
    message text.
    """

    code: str = "DatastoreError"
    default_message: str = "The datastore operation failed."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


# --- Caller errors (raised before any backend call, never retryable) ---
class RequestValidationError(DatastoreException, ValueError):
    """Base class for malformed requests detected locally."""

    default_message = "The request is invalid."


class InvalidRequestCondition(RequestValidationError):
    code = "InvalidRequestCondition"
    default_message = "Invalid request condition."


class InvalidFilterCondition(RequestValidationError):
    code = "InvalidFilterCondition"
    default_message = "Invalid filter condition."


class InvalidUpdateExpression(RequestValidationError):
    code = "InvalidUpdateExpression"
    default_message = "Invalid update expression."


class InvalidUpdateOperation(RequestValidationError):
    code = "InvalidUpdateOperation"
    default_message = "Invalid update operation."


class MarshalItemFailed(RequestValidationError):
    code = "MarshalItemFailed"
    default_message = "Could not marshal item."


# --- Backend errors (wrap the driver's exception) ---
class PutItemFailed(DatastoreException):
    code = "PutItemFailed"
    default_message = "Unable to put item in the database."


class GetItemFailed(DatastoreException):
    code = "GetItemFailed"
    default_message = "Unable to retrieve item from the database."


class DeleteItemFailed(DatastoreException):
    code = "DeleteItemFailed"
    default_message = "Unable to delete item in the database."


class UpdateItemFailed(DatastoreException):
    code = "UpdateItemFailed"
    default_message = "Unable to update item in the database."


class QueryFailed(DatastoreException):
    code = "QueryFailed"
    default_message = "Unable to query the database."


class UnmarshalItemFailed(DatastoreException):
    code = "UnmarshalItemFailed"
    default_message = "Could not unmarshal item."


class RollbackIncomplete(DatastoreException):
    """Raised by ``Datastore.transaction()`` when compensations failed."""

    code = "RollbackIncomplete"
    default_message = "Rollback did not complete."

    def __init__(self, errors: List[DatastoreException], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(
            message or f"Rollback did not complete: {len(self.errors)} compensation(s) failed."
        )


class UnsupportedValueType(TypeError):
    """A Python value has no representation in the typed value model."""
    pass
