# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter classes for async database drivers."""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

from ..errors import DatabaseClosedError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)


class AsyncCursor(Protocol):
    """What the database layer needs from a driver cursor.

    aiosqlite, psycopg and aiomysql cursors satisfy this natively; the
    threaded and DynamoDB adapters return their own wrappers.
    """

    description: Any
    rowcount: int

    async def fetchone(self) -> Any: ...

    async def fetchall(self) -> Any: ...

    async def close(self) -> Any: ...


class DbAdapter(ABC):
    """Abstract base class for async database adapters.

    Provides a unified interface for every supported backend with:
    - Connection management (acquire, release, shutdown)
    - Transaction control (begin, commit, rollback on connection)
    - Raw statement execution returning a driver cursor

    Connection model:
    - acquire(): Returns a connection, at most ``max_open`` at a time
    - release(conn): Returns connection to the pool
    - shutdown(): Closes the pool; later acquire() calls fail

    Connections are used in autocommit mode outside transactions. begin()
    switches the connection into an explicit transaction until commit() or
    rollback().

    Placeholder syntax is never rewritten: the query text reaches the driver
    exactly as the caller wrote it. Only the compile check in prepare() may
    send a rewritten copy to servers whose PREPARE wants other markers.
    """

    driver: str = ""  # Override in subclass
    extra: str = ""  # pip extra that installs the driver library

    def __init__(self, dsn: str, max_open: int = 0):
        self.dsn = dsn
        self.max_open = max_open
        self._closed = False

    @abstractmethod
    async def acquire(self) -> Any:
        """Acquire a connection, waiting while ``max_open`` are in use."""
        ...

    @abstractmethod
    async def release(self, conn: Any) -> None:
        """Return connection to the pool."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Close the pool. Connections still in use close on release."""
        ...

    # -------------------------------------------------------------------------
    # Connection-bound operations
    # -------------------------------------------------------------------------

    @abstractmethod
    async def execute(
        self, conn: Any, query: str, args: Sequence[Any] = (), *, prepared: bool = False
    ) -> AsyncCursor:
        """Execute query on connection, return the driver cursor.

        ``prepared`` is set for executions of a prepared statement; drivers
        with server-side prepared statements use it, others ignore it.
        """
        ...

    async def prepare(self, conn: Any, query: str) -> None:
        """Compile query on connection without running it.

        Errors the server reports at compile time (syntax, unknown tables
        or columns) are raised here. The default does nothing: drivers
        without a compile-only call report such errors on first execution.
        """

    async def begin(self, conn: Any) -> None:
        """Start an explicit transaction on connection."""
        await self._run(conn, "BEGIN")

    async def commit(self, conn: Any) -> None:
        """Commit transaction on connection."""
        await self._run(conn, "COMMIT")

    async def rollback(self, conn: Any) -> None:
        """Rollback transaction on connection."""
        await self._run(conn, "ROLLBACK")

    async def ping(self, conn: Any) -> None:
        """Round-trip to the server to verify the connection."""
        cursor = await self.execute(conn, "SELECT 1")
        try:
            await cursor.fetchall()
        finally:
            await cursor.close()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def bind(self, args: Sequence[Any]) -> Any:
        """Return driver parameters for positional ``args``.

        A single mapping argument is passed as named parameters, anything
        else as a tuple. None when there is nothing to bind, so drivers
        using ``%`` placeholders leave literal percent signs alone.
        """
        if not args:
            return None
        if len(args) == 1 and isinstance(args[0], Mapping):
            return args[0]
        return tuple(args)

    async def _run(self, conn: Any, query: str) -> None:
        cursor = await self.execute(conn, query)
        await cursor.close()


class PooledAdapter(DbAdapter):
    """Adapter whose driver has no pool of its own.

    Keeps idle connections for reuse and never holds more than ``max_open``
    connections at once (``max_open <= 0`` means unlimited); acquire() waits
    when the limit is reached. Subclasses only open and close raw connections.
    """

    def __init__(self, dsn: str, max_open: int = 0):
        super().__init__(dsn, max_open)
        self._idle: list[Any] = []
        self._open_count = 0
        self._cond = asyncio.Condition()

    @abstractmethod
    async def connect(self) -> Any:
        """Open a new driver connection for ``self.dsn``."""
        ...

    @abstractmethod
    async def disconnect(self, conn: Any) -> None:
        """Close a driver connection."""
        ...

    async def acquire(self) -> Any:
        """Return an idle connection or open a new one within the limit."""
        async with self._cond:
            while True:
                if self._closed:
                    raise DatabaseClosedError()
                if self._idle:
                    return self._idle.pop()
                if self.max_open <= 0 or self._open_count < self.max_open:
                    self._open_count += 1
                    break
                await self._cond.wait()

        try:
            conn = await self.connect()
        except BaseException:
            async with self._cond:
                self._open_count -= 1
                self._cond.notify()
            raise
        logger.debug(
            "%s: opened connection %d/%s", self.driver, self._open_count, self.max_open or "unlimited"
        )
        return conn

    async def release(self, conn: Any) -> None:
        """Put connection back in the idle list, or close it after shutdown."""
        async with self._cond:
            if not self._closed:
                self._idle.append(conn)
                self._cond.notify()
                return
            self._open_count -= 1
        await self.disconnect(conn)

    async def shutdown(self) -> None:
        """Close idle connections and wake up waiters."""
        async with self._cond:
            self._closed = True
            idle, self._idle = self._idle, []
            self._open_count -= len(idle)
            self._cond.notify_all()
        for conn in idle:
            await self.disconnect(conn)


_PYFORMAT = re.compile(r"%%|%\((?P<name>[^)]+)\)[sbt]|%[sbt]")


def leading_keyword(query: str) -> str:
    """Upper-cased first word of query, skipping whitespace and parentheses."""
    match = re.match(r"[\s(]*([A-Za-z]+)", query)
    return match.group(1).upper() if match else ""


def pyformat_placeholders(query: str, marker: Callable[[int], str]) -> str:
    """Rewrite ``%s`` / ``%(name)s`` markers with ``marker(n)``.

    Positional markers are numbered in order; a name keeps the number of its
    first use. ``%%`` becomes a literal percent sign.
    """
    names: dict[str, int] = {}
    count = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal count
        if match.group(0) == "%%":
            return "%"
        name = match["name"]
        if name is None:
            count += 1
            return marker(count)
        if name not in names:
            count += 1
            names[name] = count
        return marker(names[name])

    return _PYFORMAT.sub(replace, query)
