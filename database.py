import logging
import queue
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from config import settings

logger = logging.getLogger(__name__)

# Default database file; LIBRARY_DB_FILE overrides it through settings.
DATABASE_FILE = settings.database_file


def _open_connection(db_file: str, timeout: float) -> sqlite3.Connection:
    # isolation_level=None puts the connection in autocommit mode, so
    # transactions are only ever opened by an explicit BEGIN.
    conn = sqlite3.connect(db_file, timeout=timeout, check_same_thread=False, isolation_level=None)
    conn.row_factory = sqlite3.Row
    # WAL for better concurrent access
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")
    return conn


class ConnectionPool:
    """A small pool of SQLite connections shared by request handlers."""

    def __init__(self, db_file: Optional[str] = None, size: Optional[int] = None,
                 timeout: Optional[float] = None) -> None:
        self.db_file = db_file or DATABASE_FILE
        self.size = size or settings.database_pool_size
        self.timeout = timeout or settings.database_timeout
        self._pool: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=self.size)
        for _ in range(self.size):
            self._pool.put(_open_connection(self.db_file, self.timeout))

    def acquire(self) -> sqlite3.Connection:
        """Take a connection from the pool, opening a fresh one if it is empty."""
        try:
            return self._pool.get_nowait()
        except queue.Empty:
            return _open_connection(self.db_file, self.timeout)

    def release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool for reuse."""
        if conn.in_transaction:
            # A connection must never go back to the pool mid-transaction.
            conn.rollback()
        try:
            self._pool.put_nowait(conn)
        except queue.Full:
            conn.close()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.acquire()
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self) -> None:
        while True:
            try:
                conn = self._pool.get_nowait()
            except queue.Empty:
                break
            conn.close()


def create_tables(pool: ConnectionPool) -> None:
    """Creates the required tables in the database if they don't exist."""
    with pool.connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title VARCHAR(255) NOT NULL,
                description TEXT,
                thumbnail_base64 TEXT,
                pdf_url VARCHAR(1024) NOT NULL,
                created_at TIMESTAMP NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_books_created_at ON books(created_at)")
    logger.info(f"Table 'books' is ready in {pool.db_file}")


def initialize_database(db_file: Optional[str] = None, pool_size: Optional[int] = None,
                        timeout: Optional[float] = None) -> ConnectionPool:
    """Opens the connection pool and makes sure the schema exists."""
    pool = ConnectionPool(db_file, pool_size, timeout)
    create_tables(pool)
    return pool
