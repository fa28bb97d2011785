# src/dynamo_repository/dynamodb/driver.py

"""
The narrow backend surface the datastore talks to.

Requests and responses are the low-level DynamoDB dicts (``TableName``,
``Key``, ``ExpressionAttributeNames`` ...), exactly as a ``boto3`` client
takes and returns them. Network, retries and authentication belong to the
driver.
"""

import logging
from typing import Any, Callable, Dict, Optional, Protocol

import boto3

log = logging.getLogger(__name__)

Params = Dict[str, Any]
Response = Dict[str, Any]
PageCallback = Callable[[Response, bool], bool]


class DynamoDriver(Protocol):
    """Low-level DynamoDB operations used by the datastore."""

    def put_item(self, params: Params) -> Response: ...

    def get_item(self, params: Params) -> Response: ...

    def delete_item(self, params: Params) -> Response: ...

    def update_item(self, params: Params) -> Response: ...

    def query(self, params: Params) -> Response: ...

    def query_pages(self, params: Params, callback: PageCallback) -> None:
        """
        Calls ``callback(page, last_page)`` for each result page.

        Iteration stops early when the callback returns ``False``.
        """
        ...


class Boto3Driver:
    """:class:`DynamoDriver` over a ``boto3`` DynamoDB client."""

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_session(
        cls,
        session: Optional[boto3.session.Session] = None,
        endpoint_url: Optional[str] = None,
        region_name: Optional[str] = None,
    ) -> "Boto3Driver":
        """Builds the client from a session (a new one when not given)."""
        session = session or boto3.session.Session()
        kwargs: Dict[str, Any] = {}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if region_name:
            kwargs["region_name"] = region_name
        log.debug(f"Creating dynamodb client {kwargs}")
        return cls(session.client("dynamodb", **kwargs))

    @property
    def client(self) -> Any:
        return self._client

    def put_item(self, params: Params) -> Response:
        return self._client.put_item(**params)

    def get_item(self, params: Params) -> Response:
        return self._client.get_item(**params)

    def delete_item(self, params: Params) -> Response:
        return self._client.delete_item(**params)

    def update_item(self, params: Params) -> Response:
        return self._client.update_item(**params)

    def query(self, params: Params) -> Response:
        return self._client.query(**params)

    def query_pages(self, params: Params, callback: PageCallback) -> None:
        paginator = self._client.get_paginator("query")
        for page in paginator.paginate(**params):
            last_page = "LastEvaluatedKey" not in page
            if not callback(page, last_page) or last_page:
                break
