# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""dbclient: one async SQL handle over many database drivers."""

from .adapters import Driver, get_adapter, register_adapter
from .client import Client
from .config import ClientConfig, config_from_env
from .database import Database, Result, Row, Rows, Statement, Transaction
from .errors import (
    DatabaseClosedError,
    DriverNotInstalledError,
    NoPrepareError,
    NoPrepareTransactionError,
    NoRowsError,
    NotOpenError,
    NoTransactionError,
    PreconditionError,
    SqlError,
    StatementClosedError,
    TransactionDoneError,
    UnknownDriverError,
)

__version__ = "0.1.0"

__all__ = [
    "Client",
    "ClientConfig",
    "config_from_env",
    "Driver",
    "get_adapter",
    "register_adapter",
    # Database layer
    "Database",
    "Transaction",
    "Statement",
    "Rows",
    "Row",
    "Result",
    # Exceptions
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
