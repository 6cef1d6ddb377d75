"""
Test suite for LocalStore

Verifies:
- Schema creation
- Loading lists with items
- Commit writes only changed rows, in one transaction
- Rollback and tombstone helpers
"""

from datetime import datetime, timezone

from conftest import T0, T1, edit_local
from todosync.models import LocalItem, LocalList
from todosync.state_store import LocalStore


def test_database_initialization(tmp_path):
    db_path = tmp_path / "init.db"

    with LocalStore(str(db_path)) as store:
        assert db_path.exists()

        cursor = store.conn.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}
        assert {"todo_lists", "todo_items"} <= tables

        cursor.execute("SELECT name FROM sqlite_master WHERE type='index'")
        indexes = {row[0] for row in cursor.fetchall()}
        assert {"idx_lists_remote_id", "idx_items_list_id", "idx_items_remote_id"} <= indexes


def test_create_and_load_list_with_items(store):
    created = store.create_list("Groceries", [("Milk", False), ("Bread", True)], now=T0)

    assert created.id is not None
    assert all(item.id is not None and item.list_id == created.id for item in created.items)

    loaded = store.get_lists()
    assert len(loaded) == 1
    assert loaded[0].name == "Groceries"
    assert loaded[0].created_at == T0
    assert loaded[0].remote_id is None
    assert [(item.name, item.is_complete) for item in loaded[0].items] == [("Milk", False), ("Bread", True)]


def test_commit_without_changes_writes_nothing(store):
    store.create_list("Groceries", [("Milk", False)], now=T0)

    session = store.open_session()
    session.load_lists()

    assert session.commit() == 0
    assert store.get_lists()[0].row_version == 0


def test_commit_writes_changed_rows_and_bumps_version(store):
    store.create_list("Groceries", [("Milk", False), ("Bread", False)], now=T0)

    def edit(lists):
        lists[0].name = "Weekly"
        lists[0].updated_at = T1
        lists[0].items[1].is_complete = True

    edit_local(store, edit)

    loaded = store.get_lists()[0]
    assert loaded.name == "Weekly"
    assert loaded.updated_at == T1
    assert loaded.row_version == 1
    assert [item.is_complete for item in loaded.items] == [False, True]


def test_appended_items_and_staged_lists_are_inserted(store):
    store.create_list("Groceries", now=T0)

    session = store.open_session()
    lists = session.load_lists()
    lists[0].items.append(LocalItem(name="Eggs", remote_id="ri-1", created_at=T0))
    session.add_list(LocalList(name="Imported", remote_id="ext-2", created_at=T0, updated_at=T0,
                               items=[LocalItem(name="Nails", created_at=T0)]))

    assert session.commit() == 3

    loaded = store.get_lists()
    assert [todo_list.name for todo_list in loaded] == ["Groceries", "Imported"]
    assert loaded[0].items[0].remote_id == "ri-1"
    assert loaded[1].items[0].list_id == loaded[1].id


def test_rollback_discards_staged_work(store):
    session = store.open_session()
    session.load_lists()
    session.add_list(LocalList(name="Never saved", created_at=T0))

    session.rollback()
    session.commit()

    assert store.get_lists() == []


def test_tombstone_helpers(store):
    created = store.create_list("Groceries", [("Milk", False)], now=T0)

    store.mark_item_deleted(created.items[0].id, now=T1)
    store.mark_list_deleted(created.id, now=T1)

    loaded = store.get_lists()[0]
    assert loaded.is_deleted
    assert loaded.deleted_at == T1
    assert loaded.row_version == 1
    assert loaded.items[0].is_deleted
    assert loaded.items[0].updated_at == T1


def test_naive_timestamps_are_read_back_as_utc(store):
    naive = datetime(2025, 3, 1, 9, 0)
    created = store.create_list("Groceries", [("Milk", False)], now=naive)
    store.mark_item_deleted(created.items[0].id, now=naive)

    loaded = store.get_lists()[0]

    expected = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert loaded.created_at == expected
    assert loaded.updated_at.tzinfo is not None
    assert loaded.items[0].deleted_at == expected


def test_naive_rows_from_other_writers_load_as_utc(store):
    created = store.create_list("Groceries", now=T0)
    with store.conn:
        store.conn.execute("UPDATE todo_lists SET updated_at = ? WHERE id = ?",
                           ("2025-03-01T09:00:00", created.id))

    session = store.open_session()
    loaded = session.load_lists()[0]

    assert loaded.updated_at == datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert session.commit() == 0
