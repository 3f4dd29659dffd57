# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Oracle adapter using python-oracledb in thin mode."""

from __future__ import annotations

import asyncio
from typing import Any

from .base import leading_keyword
from .threaded import ThreadedAdapter

_PARSEABLE = frozenset({"SELECT", "INSERT", "UPDATE", "DELETE", "MERGE", "WITH"})


class OracleAdapter(ThreadedAdapter):
    """Oracle adapter over oracledb.

    DSN is ``user/password@host:port/service_name`` (or any connect string
    oracledb accepts). Placeholders are ``:1`` or ``:name``.
    """

    driver = "oracle"
    extra = "oracle"

    def __init__(self, dsn: str, max_open: int = 0):
        super().__init__(dsn, max_open)
        import oracledb

        self._oracledb = oracledb

    def connect_sync(self) -> Any:
        conn = self._oracledb.connect(dsn=self.dsn)
        conn.autocommit = True
        return conn

    async def ping(self, conn: Any) -> None:
        """Oracle has no bare SELECT 1; use the driver round-trip."""
        await asyncio.to_thread(conn.ping)

    async def prepare(self, conn: Any, query: str) -> None:
        """Parse query on the server without executing it.

        Oracle runs DDL as soon as it is parsed, so only DML is checked.
        """
        if leading_keyword(query) in _PARSEABLE:
            await asyncio.to_thread(self._parse_sync, conn, query)

    def _parse_sync(self, conn: Any, query: str) -> None:
        cursor = conn.cursor()
        try:
            cursor.parse(query)
        finally:
            cursor.close()
