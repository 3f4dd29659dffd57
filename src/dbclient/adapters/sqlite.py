# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""SQLite async adapter using aiosqlite with the built-in connection pool."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite

from .base import PooledAdapter, leading_keyword

if TYPE_CHECKING:
    from collections.abc import Sequence


class SqliteAdapter(PooledAdapter):
    """SQLite async adapter.

    DSN is a file path, ``:memory:`` or a ``file:`` URI. Each pooled
    connection is a separate aiosqlite connection, so an in-memory database
    is private to one connection: open it with ``max_open=1`` to share it.

    Connections run with ``isolation_level=None`` (autocommit); transactions
    are started with an explicit BEGIN. Placeholders are ``?`` or ``:name``.
    """

    driver = "sqlite"
    extra = "sqlite"

    def __init__(self, dsn: str, max_open: int = 0):
        super().__init__(dsn or ":memory:", max_open)
        self.uri = self.dsn.startswith("file:")
        if not self.uri and self.dsn != ":memory:":
            path = Path(self.dsn).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path = str(path)
        else:
            self.db_path = self.dsn

    async def connect(self) -> aiosqlite.Connection:
        """Open new autocommit connection."""
        return await aiosqlite.connect(self.db_path, isolation_level=None, uri=self.uri)

    async def disconnect(self, conn: aiosqlite.Connection) -> None:
        """Close connection."""
        await conn.close()

    async def execute(
        self,
        conn: aiosqlite.Connection,
        query: str,
        args: Sequence[Any] = (),
        *,
        prepared: bool = False,
    ) -> aiosqlite.Cursor:
        """Execute query, return the aiosqlite cursor.

        sqlite3 keeps its own statement cache, so ``prepared`` needs no
        special handling.
        """
        return await conn.execute(query, self.bind(args))

    async def prepare(self, conn: aiosqlite.Connection, query: str) -> None:
        """Compile query through EXPLAIN, which never runs the statement.

        sqlite3 compiles before it checks the parameter count, so the
        missing-bindings error means the text compiled.
        """
        if leading_keyword(query) != "EXPLAIN":
            query = f"EXPLAIN {query}"
        try:
            cursor = await conn.execute(query)
        except sqlite3.ProgrammingError as e:
            if not str(e).startswith("Incorrect number of bindings"):
                raise
            return
        await cursor.close()
