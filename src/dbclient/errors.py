# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Error taxonomy for the SQL client.

Two families:

PreconditionError:
    Raised by Client when an operation is called out of sequence. The text
    of each subclass is fixed; callers and test suites match it verbatim.

SqlError:
    Raised by the driver-neutral database layer (closed statements, finished
    transactions, empty results, unknown driver tags). Errors coming from the
    driver libraries themselves are never wrapped and propagate unchanged.
"""

from __future__ import annotations


class PreconditionError(RuntimeError):
    """Operation called before the state it depends on was set up."""

    message: str = ""

    def __init__(self) -> None:
        super().__init__(self.message)


class NotOpenError(PreconditionError):
    """No connection: Client.open() was not called (or close() was)."""

    message = "please call Open first"


class NoPrepareError(PreconditionError):
    """No prepared statement outside a transaction."""

    message = "please call SetPrepare first"


class NoTransactionError(PreconditionError):
    """No active transaction."""

    message = "please call BeginTransaction first"


class NoPrepareTransactionError(PreconditionError):
    """No prepared statement inside the active transaction."""

    message = "please call SetPrepareTransaction first"


class SqlError(Exception):
    """Base class for errors raised by the driver-neutral database layer."""


class NoRowsError(SqlError):
    """A single-row query matched nothing."""

    def __init__(self) -> None:
        super().__init__("sql: no rows in result set")


class TransactionDoneError(SqlError):
    """Transaction used after commit or rollback."""

    def __init__(self) -> None:
        super().__init__("sql: transaction has already been committed or rolled back")


class StatementClosedError(SqlError):
    """Prepared statement used after close."""

    def __init__(self) -> None:
        super().__init__("sql: statement is closed")


class DatabaseClosedError(SqlError):
    """Database handle used after close."""

    def __init__(self) -> None:
        super().__init__("sql: database is closed")


class UnknownDriverError(SqlError, ValueError):
    """Driver tag does not match any registered adapter."""

    def __init__(self, driver: str):
        self.driver = driver
        super().__init__(f'sql: unknown driver "{driver}"')


class DriverNotInstalledError(SqlError, ImportError):
    """Known driver tag whose Python library is missing."""

    def __init__(self, driver: str, extra: str):
        self.driver = driver
        self.extra = extra
        super().__init__(
            f"Driver '{driver}' requires an optional dependency. "
            f"Install with: pip install dbclient[{extra}]"
        )


__all__ = [
    "PreconditionError",
    "NotOpenError",
    "NoPrepareError",
    "NoTransactionError",
    "NoPrepareTransactionError",
    "SqlError",
    "NoRowsError",
    "TransactionDoneError",
    "StatementClosedError",
    "DatabaseClosedError",
    "UnknownDriverError",
    "DriverNotInstalledError",
]
