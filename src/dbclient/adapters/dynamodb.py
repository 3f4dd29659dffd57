# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Amazon DynamoDB adapter speaking PartiQL through boto3.

DynamoDB has no connections: every pooled "connection" is a session object
sharing one boto3 client. The session carries the transaction buffer.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import TYPE_CHECKING, Any

from .base import PooledAdapter

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# DSN keys (case-insensitive) -> boto3.client() keyword
_DSN_KEYS = {
    "region": "region_name",
    "akid": "aws_access_key_id",
    "secretkey": "aws_secret_access_key",
    "secret_key": "aws_secret_access_key",
    "sessiontoken": "aws_session_token",
    "endpoint": "endpoint_url",
}


def parse_dsn(dsn: str) -> dict[str, str]:
    """Parse ``Region=..;AkId=..;SecretKey=..;Endpoint=..`` into boto3 kwargs.

    Unknown keys are ignored.

    Raises:
        ValueError: If a non-empty part has no ``=``.
    """
    kwargs: dict[str, str] = {}
    for part in dsn.split(";"):
        part = part.strip()
        if not part:
            continue
        if "=" not in part:
            raise ValueError(f"Invalid DynamoDB DSN part: '{part}'. Expected 'Key=Value'.")
        key, value = part.split("=", 1)
        target = _DSN_KEYS.get(key.strip().lower())
        if target is None:
            logger.debug("godynamo: ignoring DSN key %s", key)
            continue
        kwargs[target] = value.strip()
    return kwargs


def _is_read(query: str) -> bool:
    return query.lstrip()[:6].upper() == "SELECT"


class DynamoSession:
    """Per-connection state: the shared client and the transaction buffer."""

    def __init__(self, client: Any):
        self.client = client
        self.pending: list[dict[str, Any]] | None = None


class DynamoCursor:
    """Cursor over execute_statement pages, fetching the next page lazily.

    Columns are the attribute names of the first page with items, sorted;
    execute() skips empty leading pages. Items of later pages are projected
    onto them (missing attributes read as None).
    """

    rowcount = -1
    lastrowid = None

    def __init__(self, adapter: DynamoAdapter, session: DynamoSession, request: dict[str, Any], page: dict[str, Any]):
        self._adapter = adapter
        self._session = session
        self._request = request
        self._next_token = page.get("NextToken")
        items = page.get("Items")
        if items is None:
            self.description = None
            self._columns: list[str] = []
        else:
            self._columns = sorted({name for item in items for name in item})
            self.description = [(name, None, None, None, None, None, None) for name in self._columns]
        self._buffer: deque[tuple[Any, ...]] = deque(self._convert(items or []))

    def _convert(self, items: list[dict[str, Any]]) -> list[tuple[Any, ...]]:
        decode = self._adapter.deserializer.deserialize
        return [
            tuple(decode(item[name]) if name in item else None for name in self._columns)
            for item in items
        ]

    async def _fetch_page(self) -> None:
        request = dict(self._request, NextToken=self._next_token)
        page = await asyncio.to_thread(self._session.client.execute_statement, **request)
        self._next_token = page.get("NextToken")
        self._buffer.extend(self._convert(page.get("Items", [])))

    async def fetchone(self) -> tuple[Any, ...] | None:
        while not self._buffer and self._next_token:
            await self._fetch_page()
        return self._buffer.popleft() if self._buffer else None

    async def fetchall(self) -> list[tuple[Any, ...]]:
        while self._next_token:
            await self._fetch_page()
        rows = list(self._buffer)
        self._buffer.clear()
        return rows

    async def close(self) -> None:
        self._buffer.clear()
        self._next_token = None


class DynamoAdapter(PooledAdapter):
    """DynamoDB PartiQL adapter.

    Placeholders are ``?``; arguments are converted with boto3's
    TypeSerializer and results with TypeDeserializer (numbers come back as
    Decimal).

    Transactions: reads run immediately, write statements are buffered and
    submitted together with ExecuteTransaction on commit(); rollback()
    discards the buffer. Buffered writes report a rowcount of -1.
    """

    driver = "godynamo"
    extra = "dynamodb"

    def __init__(self, dsn: str, max_open: int = 0):
        super().__init__(dsn, max_open)
        self.client_kwargs = parse_dsn(dsn)
        from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

        self.serializer = TypeSerializer()
        self.deserializer = TypeDeserializer()
        self._client: Any = None

    def make_client(self) -> Any:
        """Create the boto3 DynamoDB client."""
        import boto3

        return boto3.client("dynamodb", **self.client_kwargs)

    async def connect(self) -> DynamoSession:
        if self._client is None:
            self._client = await asyncio.to_thread(self.make_client)
        return DynamoSession(self._client)

    async def disconnect(self, conn: DynamoSession) -> None:
        conn.pending = None

    def _request(self, query: str, args: Sequence[Any]) -> dict[str, Any]:
        request: dict[str, Any] = {"Statement": query}
        if args:
            request["Parameters"] = [self.serializer.serialize(arg) for arg in args]
        return request

    async def execute(
        self, conn: DynamoSession, query: str, args: Sequence[Any] = (), *, prepared: bool = False
    ) -> DynamoCursor:
        request = self._request(query, args)
        if conn.pending is not None and not _is_read(query):
            conn.pending.append(request)
            return DynamoCursor(self, conn, request, {})
        page = await asyncio.to_thread(conn.client.execute_statement, **request)
        # Filtered scans may return empty pages before the first match
        while not page.get("Items") and page.get("NextToken"):
            page = await asyncio.to_thread(
                conn.client.execute_statement, **dict(request, NextToken=page["NextToken"])
            )
        return DynamoCursor(self, conn, request, page)

    async def begin(self, conn: DynamoSession) -> None:
        conn.pending = []

    async def commit(self, conn: DynamoSession) -> None:
        statements, conn.pending = conn.pending or [], None
        if statements:
            await asyncio.to_thread(conn.client.execute_transaction, TransactStatements=statements)

    async def rollback(self, conn: DynamoSession) -> None:
        conn.pending = None

    async def ping(self, conn: DynamoSession) -> None:
        await asyncio.to_thread(conn.client.list_tables, Limit=1)
