"""Shared fixtures for todosync tests"""

import logging
from datetime import datetime, timezone, timedelta

import pytest

from todosync.fake_client import InMemoryTodoClient
from todosync.models import RemoteItem, RemoteList
from todosync.state_store import LocalStore
from todosync.sync_engine import SyncEngine

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)
NOW = datetime(2025, 6, 1, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    with LocalStore(str(tmp_path / "test.db")) as local_store:
        yield local_store


@pytest.fixture
def remote():
    return InMemoryTodoClient()


@pytest.fixture
def engine(remote, store):
    return SyncEngine(remote, store, clock=lambda: NOW)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def edit_local(store, mutate):
    """Load every local list, let mutate() change them, commit the result"""
    session = store.open_session()
    lists = session.load_lists()
    mutate(lists)
    session.commit()
    return lists


def make_remote_list(list_id, name, items=(), updated_at=T0, source_id=None):
    return RemoteList(
        id=list_id,
        source_id=source_id,
        name=name,
        created_at=T0,
        updated_at=updated_at,
        items=list(items),
    )


def make_remote_item(item_id, description, completed=False, updated_at=T0, source_id=None):
    return RemoteItem(
        id=item_id,
        source_id=source_id,
        description=description,
        completed=completed,
        created_at=T0,
        updated_at=updated_at,
    )


def seed_linked_pair(store, remote, name="Groceries", items=(("Milk", False),),
                     local_updated=T0, remote_updated=T0):
    """
    Create a local list and a remote list that are already in sync

    Every local item is linked to a remote item with the same description,
    both sides stamped with the given timestamps.

    Returns:
        (local_list, remote_list)
    """
    local_list = store.create_list(name, items, now=T0)
    remote_items = [
        make_remote_item(f"ri-{item.id}", item.name, item.is_complete,
                         updated_at=remote_updated, source_id=str(item.id))
        for item in local_list.items
    ]
    remote_list = remote.seed_list(
        make_remote_list(f"ext-{local_list.id}", name, remote_items, updated_at=remote_updated)
    )

    def link(lists):
        for todo_list in lists:
            if todo_list.id == local_list.id:
                todo_list.remote_id = remote_list.id
                todo_list.updated_at = local_updated
                for item in todo_list.items:
                    item.remote_id = f"ri-{item.id}"
                    item.updated_at = local_updated

    edit_local(store, link)
    return store.get_lists()[-1], remote_list
