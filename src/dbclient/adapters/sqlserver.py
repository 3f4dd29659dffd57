# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Microsoft SQL Server adapter using pyodbc."""

from __future__ import annotations

from typing import Any

from .threaded import ThreadedAdapter


class SqlServerAdapter(ThreadedAdapter):
    """SQL Server adapter over pyodbc.

    DSN is an ODBC connection string, e.g.
    ``DRIVER={ODBC Driver 18 for SQL Server};SERVER=host,1433;DATABASE=db;UID=sa;PWD=secret``.
    Placeholders are ``?``.
    """

    driver = "sqlserver"
    extra = "sqlserver"

    def __init__(self, dsn: str, max_open: int = 0):
        super().__init__(dsn, max_open)
        import pyodbc

        self._pyodbc = pyodbc

    def connect_sync(self) -> Any:
        return self._pyodbc.connect(self.dsn, autocommit=True)
