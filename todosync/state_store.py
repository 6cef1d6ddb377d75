"""Local todo list storage using SQLite"""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Dict, Tuple, Any, Iterable

from .models import LocalItem, LocalList, utcnow

logger = logging.getLogger(__name__)


def _datetime_to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to an ISO 8601 UTC string; naive values are taken as UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _iso_to_datetime(iso_str: Optional[str]) -> Optional[datetime]:
    """Convert ISO 8601 string to an aware UTC datetime"""
    if not iso_str:
        return None
    try:
        parsed = datetime.fromisoformat(iso_str)
    except ValueError as e:
        logger.warning(f"Failed to parse datetime '{iso_str}': {e}")
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class LocalStore:
    """Owns the SQLite database holding local lists and items"""

    SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS todo_lists (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        remote_id TEXT,
        created_at TEXT NOT NULL,   -- ISO 8601 format
        updated_at TEXT,            -- ISO 8601 format
        deleted_at TEXT,            -- tombstone marker
        row_version INTEGER NOT NULL DEFAULT 0
    );

    CREATE TABLE IF NOT EXISTS todo_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        list_id INTEGER NOT NULL REFERENCES todo_lists(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        is_complete INTEGER NOT NULL DEFAULT 0,  -- 0=open, 1=complete
        remote_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT,
        deleted_at TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_lists_remote_id ON todo_lists(remote_id);
    CREATE INDEX IF NOT EXISTS idx_items_list_id ON todo_items(list_id);
    CREATE INDEX IF NOT EXISTS idx_items_remote_id ON todo_items(remote_id);
    """

    def __init__(self, db_path: str = "todosync.db"):
        """
        Initialize LocalStore with SQLite database

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        self._initialize_database()

    def _initialize_database(self) -> None:
        try:
            logger.info(f"Initializing database at {self.db_path}")

            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(self.SCHEMA_SQL)
            self.conn.commit()

        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def close(self) -> None:
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Database connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open_session(self) -> "LocalSession":
        """Start a unit of work covering one sync cycle"""
        return LocalSession(self.conn)

    # Helpers standing in for the CRUD side of the application

    def get_lists(self) -> List[LocalList]:
        return self.open_session().load_lists()

    def create_list(self, name: str, items: Iterable[Tuple[str, bool]] = (),
                    now: Optional[datetime] = None) -> LocalList:
        """
        Create a local list with items in one commit

        Args:
            name: List name
            items: (name, is_complete) pairs
            now: Creation and modification timestamp

        Returns:
            The persisted list with ids assigned
        """
        now = now or utcnow()
        todo_list = LocalList(
            name=name,
            created_at=now,
            updated_at=now,
            items=[
                LocalItem(name=item_name, is_complete=is_complete, created_at=now, updated_at=now)
                for item_name, is_complete in items
            ],
        )
        session = self.open_session()
        session.add_list(todo_list)
        session.commit()
        return todo_list

    def mark_list_deleted(self, list_id: int, now: Optional[datetime] = None) -> None:
        now = _datetime_to_iso(now or utcnow())
        with self.conn:
            self.conn.execute(
                "UPDATE todo_lists SET deleted_at = ?, updated_at = ?, row_version = row_version + 1 "
                "WHERE id = ?",
                (now, now, list_id),
            )

    def mark_item_deleted(self, item_id: int, now: Optional[datetime] = None) -> None:
        now = _datetime_to_iso(now or utcnow())
        with self.conn:
            self.conn.execute(
                "UPDATE todo_items SET deleted_at = ?, updated_at = ? WHERE id = ?",
                (now, now, item_id),
            )


class LocalSession:
    """
    Pending change set over the local database

    Lists returned by load_lists() are tracked: any field change on them or on
    their items, and any item appended to them, is written by commit(). New
    lists are staged with add_list(). Nothing reaches the database until
    commit(), which applies everything in a single transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._loaded: List[LocalList] = []
        self._pending: List[LocalList] = []
        self._list_rows: Dict[int, Tuple[Any, ...]] = {}
        self._item_rows: Dict[int, Tuple[Any, ...]] = {}

    def load_lists(self) -> List[LocalList]:
        """Load every list, tombstoned ones included, with its items"""
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM todo_lists ORDER BY id")
        lists = [self._row_to_list(row) for row in cursor.fetchall()]
        by_id = {todo_list.id: todo_list for todo_list in lists}

        cursor.execute("SELECT * FROM todo_items ORDER BY id")
        for row in cursor.fetchall():
            item = self._row_to_item(row)
            owner = by_id.get(item.list_id)
            if owner is not None:
                owner.items.append(item)

        self._loaded = lists
        self._list_rows = {todo_list.id: self._list_values(todo_list) for todo_list in lists}
        self._item_rows = {
            item.id: self._item_values(item)
            for todo_list in lists for item in todo_list.items
        }
        logger.debug(f"Loaded {len(lists)} local lists")
        return lists

    def add_list(self, todo_list: LocalList) -> None:
        """Stage a new list (and its items) for insertion"""
        self._pending.append(todo_list)

    def commit(self) -> int:
        """
        Write all pending changes atomically

        Returns:
            Number of rows inserted or updated
        """
        written = 0
        try:
            with self.conn:
                for todo_list in self._loaded:
                    written += self._write_list(todo_list)
                for todo_list in self._pending:
                    written += self._write_list(todo_list)
        except sqlite3.Error as e:
            logger.error(f"Failed to commit local changes: {e}")
            raise

        self._loaded.extend(self._pending)
        self._pending = []
        self._list_rows = {todo_list.id: self._list_values(todo_list) for todo_list in self._loaded}
        self._item_rows = {
            item.id: self._item_values(item)
            for todo_list in self._loaded for item in todo_list.items
        }
        logger.debug(f"Committed {written} local row changes")
        return written

    def rollback(self) -> None:
        """Discard staged lists; tracked objects are simply never written"""
        self._pending = []
        self._loaded = []
        self._list_rows = {}
        self._item_rows = {}

    def _write_list(self, todo_list: LocalList) -> int:
        written = 0
        cursor = self.conn.cursor()

        if todo_list.id is None:
            cursor.execute("""
                INSERT INTO todo_lists (name, remote_id, created_at, updated_at, deleted_at, row_version)
                VALUES (?, ?, ?, ?, ?, ?)
            """, self._list_values(todo_list) + (todo_list.row_version,))
            todo_list.id = cursor.lastrowid
            written += 1
        elif self._list_rows.get(todo_list.id) != self._list_values(todo_list):
            todo_list.row_version += 1
            cursor.execute("""
                UPDATE todo_lists SET
                    name = ?, remote_id = ?, created_at = ?, updated_at = ?, deleted_at = ?,
                    row_version = ?
                WHERE id = ?
            """, self._list_values(todo_list) + (todo_list.row_version, todo_list.id))
            written += 1

        for item in todo_list.items:
            item.list_id = todo_list.id
            if item.id is None:
                cursor.execute("""
                    INSERT INTO todo_items (list_id, name, is_complete, remote_id, created_at, updated_at, deleted_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (todo_list.id,) + self._item_values(item))
                item.id = cursor.lastrowid
                written += 1
            elif self._item_rows.get(item.id) != self._item_values(item):
                cursor.execute("""
                    UPDATE todo_items SET
                        name = ?, is_complete = ?, remote_id = ?, created_at = ?, updated_at = ?,
                        deleted_at = ?
                    WHERE id = ?
                """, self._item_values(item) + (item.id,))
                written += 1

        return written

    @staticmethod
    def _list_values(todo_list: LocalList) -> Tuple[Any, ...]:
        return (
            todo_list.name,
            todo_list.remote_id,
            _datetime_to_iso(todo_list.created_at),
            _datetime_to_iso(todo_list.updated_at),
            _datetime_to_iso(todo_list.deleted_at),
        )

    @staticmethod
    def _item_values(item: LocalItem) -> Tuple[Any, ...]:
        return (
            item.name,
            1 if item.is_complete else 0,
            item.remote_id,
            _datetime_to_iso(item.created_at),
            _datetime_to_iso(item.updated_at),
            _datetime_to_iso(item.deleted_at),
        )

    @staticmethod
    def _row_to_list(row: sqlite3.Row) -> LocalList:
        return LocalList(
            id=row['id'],
            name=row['name'],
            remote_id=row['remote_id'],
            created_at=_iso_to_datetime(row['created_at']),
            updated_at=_iso_to_datetime(row['updated_at']),
            deleted_at=_iso_to_datetime(row['deleted_at']),
            row_version=row['row_version'],
        )

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> LocalItem:
        return LocalItem(
            id=row['id'],
            list_id=row['list_id'],
            name=row['name'],
            is_complete=bool(row['is_complete']),
            remote_id=row['remote_id'],
            created_at=_iso_to_datetime(row['created_at']),
            updated_at=_iso_to_datetime(row['updated_at']),
            deleted_at=_iso_to_datetime(row['deleted_at']),
        )
