# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for the DynamoDB PartiQL adapter over a mocked boto3 client."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from dbclient.adapters.dynamodb import DynamoAdapter, parse_dsn
from dbclient.database import Database
from dbclient.errors import NoRowsError


class MockedDynamoAdapter(DynamoAdapter):
    """DynamoAdapter whose boto3 client is a MagicMock."""

    def __init__(self, dsn: str, max_open: int = 0):
        super().__init__(dsn, max_open)
        self.mock = MagicMock()

    def make_client(self):
        return self.mock


@pytest.fixture
def adapter():
    pytest.importorskip("boto3")
    return MockedDynamoAdapter("Region=us-east-1;AkId=key;SecretKey=secret", max_open=1)


class TestParseDsn:
    """Tests for DynamoDB DSN parsing."""

    def test_all_keys(self):
        """Every known key maps to its boto3 keyword."""
        kwargs = parse_dsn(
            "Region=eu-west-1;AkId=AKIA;Secret_Key=shh;SessionToken=tok;Endpoint=http://localhost:8000"
        )
        assert kwargs == {
            "region_name": "eu-west-1",
            "aws_access_key_id": "AKIA",
            "aws_secret_access_key": "shh",
            "aws_session_token": "tok",
            "endpoint_url": "http://localhost:8000",
        }

    def test_case_and_spacing(self):
        """Keys are case-insensitive; blanks and empty parts are ignored."""
        assert parse_dsn(" region = us-east-1 ; ;SECRETKEY=x;") == {
            "region_name": "us-east-1",
            "aws_secret_access_key": "x",
        }

    def test_unknown_keys_ignored(self):
        """Keys without a boto3 counterpart are dropped."""
        assert parse_dsn("Region=us-east-1;TimeoutMs=1000") == {"region_name": "us-east-1"}

    def test_invalid_part(self):
        """A part without '=' is rejected."""
        with pytest.raises(ValueError, match="Key=Value"):
            parse_dsn("Region=us-east-1;oops")


class TestDynamoAdapter:
    """Tests for statement execution and buffered transactions."""

    async def test_ping_lists_tables(self, adapter):
        """ping calls ListTables."""
        database = Database(adapter)
        await database.ping()
        adapter.mock.list_tables.assert_called_once_with(Limit=1)
        await database.close()

    async def test_client_created_once(self, adapter):
        """All sessions share one boto3 client."""
        adapter.make_client = MagicMock(return_value=adapter.mock)
        adapter.max_open = 2
        first = await adapter.acquire()
        second = await adapter.acquire()
        assert first.client is second.client
        adapter.make_client.assert_called_once()
        await adapter.release(first)
        await adapter.release(second)
        await adapter.shutdown()

    async def test_parameters_serialized(self, adapter):
        """Arguments are converted to attribute values."""
        adapter.mock.execute_statement.return_value = {}
        database = Database(adapter)
        await database.exec('INSERT INTO "t" VALUE {\'id\': ?, \'n\': ?}', "a", 1)
        adapter.mock.execute_statement.assert_called_once_with(
            Statement='INSERT INTO "t" VALUE {\'id\': ?, \'n\': ?}',
            Parameters=[{"S": "a"}, {"N": "1"}],
        )
        await database.close()

    async def test_query_pages(self, adapter):
        """Rows come from every page; columns are the sorted attribute names."""
        adapter.mock.execute_statement.side_effect = [
            {
                "Items": [{"id": {"S": "a"}, "n": {"N": "1"}}],
                "NextToken": "page-2",
            },
            {"Items": [{"id": {"S": "b"}}]},
        ]
        database = Database(adapter)
        rows = await database.query('SELECT * FROM "t"')
        assert rows.columns == ["id", "n"]
        assert await rows.fetchall() == [("a", Decimal("1")), ("b", None)]

        second_call = adapter.mock.execute_statement.call_args_list[1]
        assert second_call.kwargs == {"Statement": 'SELECT * FROM "t"', "NextToken": "page-2"}
        await database.close()

    async def test_empty_first_page(self, adapter):
        """Empty leading pages are skipped before the columns are read."""
        adapter.mock.execute_statement.side_effect = [
            {"Items": [], "NextToken": "t1"},
            {"Items": [{"a": {"N": "1"}, "b": {"S": "x"}}]},
        ]
        database = Database(adapter)
        rows = await database.query('SELECT * FROM "t" WHERE b = ?', "x")
        assert rows.columns == ["a", "b"]
        assert await rows.fetchall() == [(Decimal("1"), "x")]
        assert adapter.mock.execute_statement.call_args_list[1].kwargs["NextToken"] == "t1"
        await database.close()

    async def test_query_row_after_empty_pages(self, adapter):
        """query_row finds the first item behind several empty pages."""
        adapter.mock.execute_statement.side_effect = [
            {"Items": [], "NextToken": "t1"},
            {"Items": [], "NextToken": "t2"},
            {"Items": [{"a": {"N": "2"}}], "NextToken": "t3"},
        ]
        database = Database(adapter)
        row = await database.query_row('SELECT a FROM "t" WHERE a > ?', 1)
        assert row.scan() == (Decimal("2"),)
        assert adapter.mock.execute_statement.call_count == 3
        await database.close()

    async def test_query_row_empty(self, adapter):
        """An empty page means no rows."""
        adapter.mock.execute_statement.return_value = {"Items": []}
        database = Database(adapter)
        row = await database.query_row('SELECT * FROM "t" WHERE id = ?', "x")
        with pytest.raises(NoRowsError):
            row.scan()
        await database.close()

    async def test_commit_sends_buffered_writes(self, adapter):
        """Writes inside a transaction go out together on commit."""
        adapter.mock.execute_statement.return_value = {"Items": [{"n": {"N": "0"}}]}
        database = Database(adapter)
        tx = await database.begin()

        await tx.exec('UPDATE "t" SET n = ? WHERE id = ?', 2, "a")
        await tx.exec('DELETE FROM "t" WHERE id = ?', "b")
        adapter.mock.execute_statement.assert_not_called()

        row = await tx.query_row('SELECT n FROM "t" WHERE id = ?', "a")
        assert row.scan() == (Decimal("0"),)
        adapter.mock.execute_statement.assert_called_once()

        await tx.commit()
        adapter.mock.execute_transaction.assert_called_once_with(
            TransactStatements=[
                {
                    "Statement": 'UPDATE "t" SET n = ? WHERE id = ?',
                    "Parameters": [{"N": "2"}, {"S": "a"}],
                },
                {"Statement": 'DELETE FROM "t" WHERE id = ?', "Parameters": [{"S": "b"}]},
            ]
        )
        await database.close()

    async def test_rollback_discards_writes(self, adapter):
        """Rollback drops buffered writes without a request."""
        database = Database(adapter)
        tx = await database.begin()
        await tx.exec('DELETE FROM "t" WHERE id = ?', "a")
        await tx.rollback()
        adapter.mock.execute_statement.assert_not_called()
        adapter.mock.execute_transaction.assert_not_called()

        adapter.mock.execute_statement.return_value = {}
        await database.exec('DELETE FROM "t" WHERE id = ?', "a")
        adapter.mock.execute_statement.assert_called_once()
        await database.close()

    async def test_empty_commit(self, adapter):
        """Commit without writes sends nothing."""
        database = Database(adapter)
        tx = await database.begin()
        await tx.commit()
        adapter.mock.execute_transaction.assert_not_called()
        await database.close()
