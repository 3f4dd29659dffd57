# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""CLI entry point for dbclient (python -m dbclient).

Usage:
    dbclient --help
    dbclient drivers
    dbclient --driver sqlite --dsn ./app.db query "SELECT * FROM t"
"""

from .cli import main

if __name__ == "__main__":
    main()
