import logging
import math
import sqlite3
from typing import Any, Dict, List, Optional, Tuple

from book import Book
from config import Settings, settings as default_settings
from database import ConnectionPool, initialize_database
from errors import NotFoundError, StorageError, ValidationError
from storage import StorageCleanup

logger = logging.getLogger(__name__)

_BOOK_COLUMNS = "id, title, description, thumbnail_base64, pdf_url, created_at"
_ORDER = "ORDER BY created_at DESC, id DESC"


def _positive_int(value: Any, default: int) -> int:
    """Parse paging input, falling back to ``default`` for anything not a positive integer."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class Library:
    """Manages the e-book catalog and the PDF objects its records point to."""

    def __init__(self, db_file: Optional[str] = None, settings: Optional[Settings] = None,
                 cleanup: Optional[StorageCleanup] = None, pool: Optional[ConnectionPool] = None) -> None:
        self.settings = settings or default_settings
        # The delete transaction holds the write lock across the storage call,
        # so writers must be willing to wait longer than that call can take.
        lock_timeout = max(self.settings.database_timeout, self.settings.storage_timeout + 5)
        self.pool = pool or initialize_database(db_file or self.settings.database_file,
                                                self.settings.database_pool_size, lock_timeout)
        self.cleanup = cleanup or StorageCleanup(settings=self.settings)

    # ------------------------- Queries ------------------------- #
    def list_books(self) -> List[Book]:
        """All books, newest first."""
        try:
            with self.pool.connection() as conn:
                rows = conn.execute(f"SELECT {_BOOK_COLUMNS} FROM books {_ORDER}").fetchall()
        except sqlite3.Error as e:
            logger.exception("Failed to list books")
            raise StorageError() from e
        return [Book.from_dict(dict(row)) for row in rows]

    def list_books_paginated(self, page: Any = None, limit: Any = None) -> Tuple[List[Book], Dict[str, int]]:
        """One page of books, newest first, with pagination metadata."""
        page = _positive_int(page, 1)
        limit = _positive_int(limit, self.settings.default_page_limit)
        offset = (page - 1) * limit
        try:
            with self.pool.connection() as conn:
                rows = conn.execute(
                    f"SELECT {_BOOK_COLUMNS} FROM books {_ORDER} LIMIT ? OFFSET ?",
                    (limit, offset),
                ).fetchall()
                total_books = conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]
        except sqlite3.Error as e:
            logger.exception("Failed to list books page")
            raise StorageError() from e
        pagination = {
            "currentPage": page,
            "totalPages": math.ceil(total_books / limit),
            "totalBooks": total_books,
        }
        return [Book.from_dict(dict(row)) for row in rows], pagination

    def find_book(self, book_id: int) -> Optional[Book]:
        try:
            with self.pool.connection() as conn:
                row = conn.execute(f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)).fetchone()
        except sqlite3.Error as e:
            logger.exception(f"Failed to load book {book_id}")
            raise StorageError() from e
        return Book.from_dict(dict(row)) if row else None

    # ------------------------- Mutations ------------------------- #
    def add_book(self, title: Optional[str], thumbnail_base64: Optional[str], pdf_url: Optional[str],
                 description: Optional[str] = None) -> Book:
        """Insert a new book. Title, thumbnail and PDF URL are required."""
        if not title or not thumbnail_base64 or not pdf_url:
            raise ValidationError("Incomplete data")
        try:
            with self.pool.connection() as conn:
                cursor = conn.execute(
                    "INSERT INTO books (title, description, thumbnail_base64, pdf_url) VALUES (?, ?, ?, ?)",
                    (title, description, thumbnail_base64, pdf_url),
                )
                row = conn.execute(
                    f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?", (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.exception("Failed to insert book")
            raise StorageError() from e
        return Book.from_dict(dict(row))

    def update_book(self, book_id: int, title: Optional[str], description: Optional[str],
                    thumbnail_base64: Optional[str], pdf_url: Optional[str],
                    old_pdf_url: Optional[str] = None) -> None:
        """Overwrite every editable field of a book.

        There is no partial update: a field passed as None is stored as NULL.
        When the caller reports the PDF it replaced (``old_pdf_url``) and it
        differs from the new one, the old object is discarded from storage.
        """
        try:
            with self.pool.connection() as conn:
                conn.execute(
                    "UPDATE books SET title = ?, description = ?, thumbnail_base64 = ?, pdf_url = ? WHERE id = ?",
                    (title, description, thumbnail_base64, pdf_url, book_id),
                )
        except sqlite3.Error as e:
            logger.exception(f"Failed to update book {book_id}")
            raise StorageError() from e

        if old_pdf_url and old_pdf_url != pdf_url:
            self.cleanup.discard(old_pdf_url)

    def remove_book(self, book_id: int) -> None:
        """Delete a book and, best-effort, the PDF object it references.

        The row is looked up and deleted inside one transaction. The storage
        delete is attempted before COMMIT but its outcome never affects the
        commit.
        """
        conn = self.pool.acquire()
        try:
            # Take the write lock up front; a deferred BEGIN could fail to
            # upgrade its read snapshot once another writer commits.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT pdf_url FROM books WHERE id = ?", (book_id,)).fetchone()
            if row is None:
                conn.execute("ROLLBACK")
                raise NotFoundError()

            conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            self.cleanup.discard(row["pdf_url"])
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.exception(f"Failed to delete book {book_id}")
            raise StorageError("Server error while deleting") from e
        finally:
            self.pool.release(conn)

    def close(self) -> None:
        self.pool.close()
