"""Per-thread SQLite/SQLCipher connections and statement helpers."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from policy_ledger.core.config import AppConfig, get_required_env

try:
    from pysqlcipher3 import dbapi2 as sqlcipher

    SQLCIPHER_AVAILABLE = True
except ImportError:
    sqlcipher = None
    SQLCIPHER_AVAILABLE = False

logger = logging.getLogger(__name__)

INTEGRITY_ERRORS: tuple[type[Exception], ...] = (sqlite3.IntegrityError,)
if SQLCIPHER_AVAILABLE:
    INTEGRITY_ERRORS += (sqlcipher.IntegrityError,)

BUSY_TIMEOUT_MS = 5000


class ThreadLocalConnection:
    """One connection per request thread.

    Statements commit on their own unless they run inside ``transaction()``,
    which commits the whole group once or rolls all of it back.
    """

    def __init__(self, config: AppConfig):
        self._config = config
        self._local = threading.local()

    @property
    def path(self) -> Path:
        return Path(self._config.database.path)

    def _connect(self) -> sqlite3.Connection:
        db_path = self.path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        if SQLCIPHER_AVAILABLE:
            connection = sqlcipher.connect(str(db_path), check_same_thread=False)
            key = get_required_env(self._config.database.key_env, str(db_path)).replace("'", "''")
            connection.execute(f"PRAGMA key = '{key}'")
            connection.execute("PRAGMA cipher_compatibility = 4")
            kind = "SQLCipher"
        elif self._config.database.allow_sqlite_fallback:
            connection = sqlite3.connect(str(db_path), check_same_thread=False)
            kind = "SQLite"
        else:
            raise RuntimeError("SQLCipher is required but unavailable. Install pysqlcipher3 or enable fallback.")

        connection.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
        connection.row_factory = sqlite3.Row
        logger.debug("Opened %s connection to %s", kind, db_path)
        return connection

    def get_connection(self) -> sqlite3.Connection:
        connection = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._connect()
            self._local.connection = connection
            self._local.in_transaction = False
        return connection

    def close_connection(self) -> None:
        """Close the calling thread's connection, if it has one."""
        connection = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            self._local.connection = None
            self._local.in_transaction = False

    @property
    def in_transaction(self) -> bool:
        return bool(getattr(self._local, "in_transaction", False))

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit every statement in the block together; nested blocks join the outer one."""
        connection = self.get_connection()
        if self.in_transaction:
            yield connection
            return
        self._local.in_transaction = True
        try:
            yield connection
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            self._local.in_transaction = False

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        connection = self.get_connection()
        cursor = connection.cursor()
        if self.in_transaction:
            # A failed statement leaves earlier ones pending; the block decides.
            cursor.execute(query, params)
            return cursor
        try:
            cursor.execute(query, params)
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        return cursor

    def fetchall(self, query: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        return self.execute(query, params).fetchall()

    def fetchone(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Row | None:
        return self.execute(query, params).fetchone()

    def fetchvalue(self, query: str, params: tuple[Any, ...] = (), default: Any = None) -> Any:
        """First column of the first row, or ``default``."""
        row = self.fetchone(query, params)
        if row is None or row[0] is None:
            return default
        return row[0]
