# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for the error taxonomy."""

import pytest

from dbclient.errors import (
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


class TestPreconditionErrors:
    """Tests for the precondition messages."""

    @pytest.mark.parametrize(
        "error_class,text",
        [
            (NotOpenError, "please call Open first"),
            (NoPrepareError, "please call SetPrepare first"),
            (NoTransactionError, "please call BeginTransaction first"),
            (NoPrepareTransactionError, "please call SetPrepareTransaction first"),
        ],
    )
    def test_message_text(self, error_class, text):
        """Each precondition error carries its exact text."""
        error = error_class()
        assert str(error) == text
        assert error.message == text
        assert isinstance(error, PreconditionError)
        assert isinstance(error, RuntimeError)

    def test_preconditions_are_not_sql_errors(self):
        """Precondition and database-layer families stay apart."""
        assert not isinstance(NotOpenError(), SqlError)


class TestSqlErrors:
    """Tests for database-layer errors."""

    def test_no_rows(self):
        """NoRowsError message."""
        assert str(NoRowsError()) == "sql: no rows in result set"

    def test_closed_states(self):
        """Closed statement, database and finished transaction messages."""
        assert str(StatementClosedError()) == "sql: statement is closed"
        assert str(DatabaseClosedError()) == "sql: database is closed"
        assert "already been committed or rolled back" in str(TransactionDoneError())

    def test_unknown_driver(self):
        """UnknownDriverError names the tag and is a ValueError."""
        error = UnknownDriverError("nope")
        assert error.driver == "nope"
        assert str(error) == 'sql: unknown driver "nope"'
        assert isinstance(error, ValueError)
        assert isinstance(error, SqlError)

    def test_driver_not_installed(self):
        """DriverNotInstalledError suggests the pip extra."""
        error = DriverNotInstalledError("postgres", "postgresql")
        assert error.driver == "postgres"
        assert error.extra == "postgresql"
        assert "pip install dbclient[postgresql]" in str(error)
        assert isinstance(error, ImportError)
