# src/dynamo_repository/db_implementations/dynamodb_datastore.py

import logging
from typing import Any, Callable, Dict, List, Mapping, Tuple, Type

from botocore.exceptions import BotoCoreError, ClientError

from dynamo_repository.base.exceptions import (DatastoreException,
                                               DeleteItemFailed, GetItemFailed,
                                               InvalidFilterCondition,
                                               InvalidRequestCondition,
                                               MarshalItemFailed, PutItemFailed,
                                               QueryFailed, UpdateItemFailed)
from dynamo_repository.base.interfaces import Datastore, Result, RollbackOrder
from dynamo_repository.base.request import Action, Request
from dynamo_repository.base.utils import prepare_for_storage
from dynamo_repository.config import Option, StoreConfig
from dynamo_repository.dynamodb.cache import ResultCache
from dynamo_repository.dynamodb.driver import Boto3Driver, DynamoDriver
from dynamo_repository.dynamodb.expressions import (ExpressionAttributes,
                                                    build_condition_expression,
                                                    build_update_expression)
from dynamo_repository.dynamodb.marshal import marshal_items
from dynamo_repository.dynamodb.pagination import PageWindow
from dynamo_repository.dynamodb.result import DynamoDBResult
from dynamo_repository.dynamodb.transaction import (Operation,
                                                    reverse_operation)

BACKEND_ERRORS = (ClientError, BotoCoreError)

# Actions addressing a single item through Request.key
ITEM_ACTIONS = {
    Action.PUT: PutItemFailed,
    Action.GET: GetItemFailed,
    Action.UPDATE: UpdateItemFailed,
    Action.DELETE: DeleteItemFailed,
}


class DynamoDBDatastore(Datastore):
    """
    Datastore over DynamoDB.

    Translates generic requests into DynamoDB calls on the driver, emulates
    transactions with an operation log and compensating writes, and caches
    Get results. One handle per unit of work: nothing here is synchronised.
    """

    def __init__(
        self,
        driver: DynamoDriver,
        table_prefix: str = "",
        rollback_order: RollbackOrder = RollbackOrder.RECORDED,
    ):
        """
        Initialize the datastore.

        Args:
            driver: Backend driver, usually a :class:`Boto3Driver`.
            table_prefix: Namespace prepended to every table name.
            rollback_order: Order in which rollback compensates the log.
        """
        self._driver = driver
        self._table_prefix = table_prefix
        self._rollback_order = rollback_order
        self._operations: List[Operation] = []
        self._in_transaction = False
        self._cache = ResultCache()

        self._handlers: Dict[Action, Callable[[Request], Result]] = {
            Action.PUT: self._put,
            Action.GET: self._get,
            Action.UPDATE: self._update,
            Action.DELETE: self._delete,
            Action.QUERY: self._query,
            Action.QUERY_PAGER: self._query_pages,
        }

        self._logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}[{table_prefix}]"
        )
        self._logger.info(
            f"Datastore created (table prefix '{table_prefix}', "
            f"rollback order {rollback_order.name})."
        )

    @classmethod
    def from_config(
        cls,
        config: StoreConfig,
        rollback_order: RollbackOrder = RollbackOrder.RECORDED,
    ) -> "DynamoDBDatastore":
        """
        Builds a datastore from an option store.

        ``Option.DRIVER`` wins when present; otherwise a boto3 client is built
        from ``SESSION`` (a new session when absent), ``ENDPOINT`` and
        ``REGION``.
        """
        driver = config.get_handle(Option.DRIVER)
        if driver is None:
            driver = Boto3Driver.from_session(
                session=config.get_handle(Option.SESSION),
                endpoint_url=config.get_string(Option.ENDPOINT) or None,
                region_name=config.get_string(Option.REGION) or None,
            )
        return cls(
            driver,
            table_prefix=config.get_string(Option.TABLE_PREFIX),
            rollback_order=rollback_order,
        )

    @property
    def driver(self) -> DynamoDriver:
        return self._driver

    @property
    def table_prefix(self) -> str:
        return self._table_prefix

    @property
    def rollback_order(self) -> RollbackOrder:
        return self._rollback_order

    @property
    def operations(self) -> Tuple[Operation, ...]:
        """The operation log of the active transaction."""
        return tuple(self._operations)

    @property
    def cache(self) -> ResultCache:
        return self._cache

    # --- Execution ---
    def run(self, request: Request) -> Result:
        prepared = request.copy()
        prepared.table = self._table_prefix + prepared.table
        return self._dispatch(prepared)

    def _dispatch(self, request: Request) -> Result:
        """Runs a request whose table name is already prefixed."""
        handler = self._handlers.get(request.action)
        if handler is None:
            raise DatastoreException(f"Unsupported action {request.action!r}.")

        error_cls = ITEM_ACTIONS.get(request.action)
        if error_cls is not None and not request.key:
            raise error_cls(
                f"{error_cls.default_message.rstrip('.')} [no key given for {request.table}]"
            )

        if request.action is Action.GET and not request.live_data:
            cached = self._cache.lookup(request)
            if cached is not None:
                return cached

        self._logger.debug(f"Dispatching {request!r}")
        result = handler(request)

        if self._in_transaction:
            self._operations.append(Operation.record(request, result))
        if request.action is Action.GET:
            self._cache.store(request, result)
        return result

    def _put(self, request: Request) -> Result:
        item = request.item if request.item is not None else {}
        if not isinstance(item, Mapping):
            item = prepare_for_storage(item)
        if not isinstance(item, Mapping):
            raise MarshalItemFailed(
                f"Could not marshal item: expected a mapping, got {type(item).__name__}"
            )
        # key fields win over item fields, on a copy of the caller's item
        fields = dict(item)
        fields.update(request.key)

        params: Dict[str, Any] = {
            "TableName": request.table,
            "Item": marshal_items(fields),
        }
        attributes = ExpressionAttributes()
        self._add_condition(params, request, attributes)
        attributes.apply(params)

        try:
            self._driver.put_item(params)
        except BACKEND_ERRORS as e:
            self._handle_db_error(e, PutItemFailed, f"putting item in {request.table}")
        return DynamoDBResult()

    def _get(self, request: Request) -> Result:
        params = {
            "TableName": request.table,
            "Key": marshal_items(request.key),
            "ConsistentRead": request.consistent_read,
        }
        try:
            response = self._driver.get_item(params)
        except BACKEND_ERRORS as e:
            self._handle_db_error(e, GetItemFailed, f"getting item from {request.table}")
        item = response.get("Item")
        return DynamoDBResult(items=[item] if item else [])

    def _update(self, request: Request) -> Result:
        attributes = ExpressionAttributes()
        params: Dict[str, Any] = {
            "TableName": request.table,
            "Key": marshal_items(request.key),
            "UpdateExpression": build_update_expression(request.updates, attributes),
        }
        self._add_condition(params, request, attributes)
        attributes.apply(params)
        self._add_return_values(params, request)
        self._logger.debug(f"Update expression: {params['UpdateExpression']}")

        try:
            response = self._driver.update_item(params)
        except BACKEND_ERRORS as e:
            self._handle_db_error(e, UpdateItemFailed, f"updating item in {request.table}")
        return DynamoDBResult(attributes=response.get("Attributes"))

    def _delete(self, request: Request) -> Result:
        params: Dict[str, Any] = {
            "TableName": request.table,
            "Key": marshal_items(request.key),
        }
        attributes = ExpressionAttributes()
        self._add_condition(params, request, attributes)
        attributes.apply(params)
        self._add_return_values(params, request)

        try:
            response = self._driver.delete_item(params)
        except BACKEND_ERRORS as e:
            self._handle_db_error(e, DeleteItemFailed, f"deleting item from {request.table}")
        return DynamoDBResult(attributes=response.get("Attributes"))

    def _query(self, request: Request) -> Result:
        attributes = ExpressionAttributes()
        params = self._query_params(request, attributes)
        if request.result_filter:
            try:
                params["FilterExpression"] = build_condition_expression(
                    request.result_filter, attributes
                )
            except InvalidRequestCondition as e:
                raise InvalidFilterCondition(f"Invalid filter condition [{e}]") from e
        if request.limit > 0:
            params["Limit"] = request.limit
        if request.last_key:
            params["ExclusiveStartKey"] = marshal_items(request.last_key)
        attributes.apply(params)

        try:
            response = self._driver.query(params)
        except BACKEND_ERRORS as e:
            self._handle_db_error(e, QueryFailed, f"querying {request.table}")
        return DynamoDBResult(
            items=response.get("Items"), last_key=response.get("LastEvaluatedKey")
        )

    def _query_pages(self, request: Request) -> Result:
        try:
            window = PageWindow(request.page_size, request.page)
        except ValueError as e:
            raise QueryFailed(f"Unable to query the database [{e}]") from e

        if request.result_filter:
            self._logger.warning(
                f"Ignoring {len(request.result_filter)} filter condition(s) on paged "
                f"query of {request.table}; only key conditions apply."
            )
        attributes = ExpressionAttributes()
        params = self._query_params(request, attributes)
        attributes.apply(params)

        try:
            self._driver.query_pages(params, window.collect)
        except BACKEND_ERRORS as e:
            self._handle_db_error(e, QueryFailed, f"paging through {request.table}")
        self._logger.debug(f"Collected {window!r}")
        return DynamoDBResult(items=window.items, page_count=window.page_count)

    def _query_params(
        self, request: Request, attributes: ExpressionAttributes
    ) -> Dict[str, Any]:
        if not request.request_conditions:
            raise InvalidRequestCondition(
                "Invalid request condition: a query needs at least one key condition"
            )
        params: Dict[str, Any] = {
            "TableName": request.table,
            "KeyConditionExpression": build_condition_expression(
                request.request_conditions, attributes
            ),
        }
        if request.index:
            params["IndexName"] = request.index
        if request.consistent_read:
            params["ConsistentRead"] = True
        return params

    def _add_condition(
        self, params: Dict[str, Any], request: Request, attributes: ExpressionAttributes
    ) -> None:
        if request.request_conditions:
            params["ConditionExpression"] = build_condition_expression(
                request.request_conditions, attributes
            )

    def _add_return_values(self, params: Dict[str, Any], request: Request) -> None:
        # Old values feed the compensation of a rollback
        if request.return_values or self._in_transaction:
            params["ReturnValues"] = "ALL_OLD"

    def _handle_db_error(
        self, error: Exception, error_cls: Type[DatastoreException], context: str
    ) -> None:
        """Logs a backend error and re-raises it as ``error_cls``."""
        self._logger.error(f"Backend error while {context}: {error}", exc_info=True)
        raise error_cls(f"{error_cls.default_message.rstrip('.')} [{error}]") from error

    # --- Transactions ---
    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def start_transaction(self) -> None:
        if self._in_transaction:
            self._logger.warning(
                f"Transaction restarted; discarding {len(self._operations)} logged operation(s)."
            )
        self._operations = []
        self._in_transaction = True
        self._logger.info("Transaction started.")

    def finish_transaction(self) -> None:
        self._logger.info(
            f"Transaction finished ({len(self._operations)} operation(s) logged)."
        )
        self._operations = []
        self._in_transaction = False

    def rollback(self) -> List[DatastoreException]:
        operations = self._operations
        self._operations = []
        self._in_transaction = False

        if self._rollback_order is RollbackOrder.REVERSE:
            operations = list(reversed(operations))

        self._logger.info(f"Rolling back {len(operations)} operation(s).")
        errors: List[DatastoreException] = []
        for operation in operations:
            try:
                compensation = reverse_operation(operation)
                if compensation is None:
                    continue
                # cached reads of this key predate the compensation
                self._cache.discard(compensation.table, compensation.key)
                # already prefixed
                self._dispatch(compensation)
            except DatastoreException as e:
                self._logger.warning(
                    f"Compensation failed for {operation.request!r}: {e}"
                )
                errors.append(e)

        if errors:
            self._logger.warning(f"Rollback incomplete: {len(errors)} compensation(s) failed.")
        else:
            self._logger.info("Rollback complete.")
        return errors

    # --- Cache ---
    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_on(self) -> None:
        self._cache.enabled = True

    def cache_off(self) -> None:
        self._cache.enabled = False

    def __repr__(self) -> str:
        return (
            f"DynamoDBDatastore(table_prefix={self._table_prefix!r}, "
            f"in_transaction={self._in_transaction}, cached={len(self._cache)})"
        )
