# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Connection configuration for the SQL client.

Configuration via environment variables:
    DBCLIENT_DRIVER: Driver tag (default: sqlite)
    DBCLIENT_DSN: Driver-specific connection string (default: :memory:)
    DBCLIENT_MAX_OPEN: Maximum open connections (default: 1)
    DBCLIENT_CONNECT_TIMEOUT: Seconds allowed for open + first ping (default: none)

Usage:
    config = config_from_env()
    async with Client() as client:
        await client.open_config(config)
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class ClientConfig:
    """Everything Client.open() needs.

    Attributes:
        driver: Driver tag ("sqlite", "postgres", "mysql", ...).
        dsn: Connection string, passed to the driver untouched.
        max_open: Maximum number of simultaneously open connections.
        connect_timeout: Seconds allowed for pool creation and the initial
            ping. None waits as long as the driver does.
    """

    driver: str = "sqlite"
    dsn: str = ":memory:"
    max_open: int = 1
    connect_timeout: float | None = None


def config_from_env() -> ClientConfig:
    """Build ClientConfig from DBCLIENT_* environment variables.

    Raises:
        ValueError: If DBCLIENT_MAX_OPEN or DBCLIENT_CONNECT_TIMEOUT is not a number.
    """
    timeout = os.environ.get("DBCLIENT_CONNECT_TIMEOUT")
    return ClientConfig(
        driver=os.environ.get("DBCLIENT_DRIVER", "sqlite"),
        dsn=os.environ.get("DBCLIENT_DSN", ":memory:"),
        max_open=int(os.environ.get("DBCLIENT_MAX_OPEN", "1")),
        connect_timeout=float(timeout) if timeout else None,
    )


__all__ = ["ClientConfig", "config_from_env"]
