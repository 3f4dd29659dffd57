# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Adapter for synchronous DB-API 2.0 drivers, run in worker threads.

Drivers without an asyncio API (ClickHouse, SQL Server, Oracle) are called
through ``asyncio.to_thread``. A connection is only ever used by one
coroutine at a time (the pool hands it out exclusively), so the driver's
threadsafety level 1 is enough.
"""

from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import TYPE_CHECKING, Any

from .base import PooledAdapter

if TYPE_CHECKING:
    from collections.abc import Sequence


class ThreadedCursor:
    """Async facade over a DB-API cursor."""

    def __init__(self, cursor: Any):
        self._cursor = cursor

    @property
    def description(self) -> Any:
        return self._cursor.description

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def lastrowid(self) -> Any:
        return getattr(self._cursor, "lastrowid", None)

    async def fetchone(self) -> Any:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> Any:
        return await asyncio.to_thread(self._cursor.fetchall)

    async def close(self) -> None:
        await asyncio.to_thread(self._cursor.close)


class ThreadedAdapter(PooledAdapter):
    """Base for adapters over a blocking DB-API 2.0 module.

    Subclasses implement connect_sync(). Connections are kept in autocommit
    mode; begin() turns autocommit off and commit()/rollback() turn it back on.
    """

    @abstractmethod
    def connect_sync(self) -> Any:
        """Open a DB-API connection (runs in a worker thread)."""
        ...

    def set_autocommit(self, conn: Any, enabled: bool) -> None:
        """Switch autocommit on a DB-API connection (runs in a worker thread)."""
        conn.autocommit = enabled

    async def connect(self) -> Any:
        return await asyncio.to_thread(self.connect_sync)

    async def disconnect(self, conn: Any) -> None:
        await asyncio.to_thread(conn.close)

    async def execute(
        self, conn: Any, query: str, args: Sequence[Any] = (), *, prepared: bool = False
    ) -> ThreadedCursor:
        return ThreadedCursor(await asyncio.to_thread(self._execute_sync, conn, query, args))

    def _execute_sync(self, conn: Any, query: str, args: Sequence[Any]) -> Any:
        cursor = conn.cursor()
        params = self.bind(args)
        try:
            if params is None:
                cursor.execute(query)
            else:
                cursor.execute(query, params)
        except BaseException:
            cursor.close()
            raise
        return cursor

    async def begin(self, conn: Any) -> None:
        await asyncio.to_thread(self.set_autocommit, conn, False)

    async def commit(self, conn: Any) -> None:
        await asyncio.to_thread(self._finish_sync, conn, conn.commit)

    async def rollback(self, conn: Any) -> None:
        await asyncio.to_thread(self._finish_sync, conn, conn.rollback)

    def _finish_sync(self, conn: Any, finish: Any) -> None:
        try:
            finish()
        finally:
            self.set_autocommit(conn, True)
