"""Tests for wire parsing and local/remote mapping"""

from datetime import datetime, timezone

from conftest import T0, make_remote_item, make_remote_list
from todosync.mapping import (
    item_to_update_body,
    list_to_create_body,
    list_to_entity,
    source_id_for,
)
from todosync.models import (
    LocalItem,
    LocalList,
    RemoteList,
    RemoteUpdateItem,
    RemoteUpdateList,
    parse_timestamp,
)


def test_parse_timestamp_handles_zulu_and_naive_values():
    assert parse_timestamp("2025-01-01T12:00:00Z") == T0
    assert parse_timestamp("2025-01-01T12:00:00") == T0
    assert parse_timestamp("2025-01-01T14:00:00+02:00") == T0
    assert parse_timestamp(None) is None
    assert parse_timestamp("") is None


def test_remote_list_from_dict():
    data = {
        "id": "ext-1",
        "source_id": "4",
        "name": "Groceries",
        "created_at": "2025-01-01T12:00:00Z",
        "updated_at": "2025-01-01T12:00:00Z",
        "items": [
            {"id": "ri-1", "source_id": None, "description": "Milk", "completed": True,
             "created_at": "2025-01-01T12:00:00Z", "updated_at": None},
        ],
    }

    remote = RemoteList.from_dict(data)

    assert remote.id == "ext-1"
    assert remote.source_id == "4"
    assert remote.updated_at == T0
    assert remote.items[0].description == "Milk"
    assert remote.items[0].completed is True
    assert remote.items[0].updated_at is None


def test_remote_list_from_dict_without_items():
    assert RemoteList.from_dict({"id": "ext-1", "items": None}).items == []


def test_update_payloads_omit_unset_fields():
    assert RemoteUpdateItem(completed=False).to_dict() == {"completed": False}
    assert RemoteUpdateList().to_dict() == {}
    assert RemoteUpdateList(name="A").to_dict() == {"name": "A"}


def test_list_to_entity_defaults_missing_timestamps():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    remote = make_remote_list("ext-1", None, [make_remote_item("ri-1", "Milk", updated_at=None)])
    remote.created_at = None
    remote.updated_at = None

    entity = list_to_entity(remote, now=now)

    assert entity.name == "Unnamed"
    assert entity.remote_id == "ext-1"
    assert entity.created_at == now
    assert entity.updated_at == now
    assert entity.items[0].remote_id == "ri-1"
    assert entity.items[0].updated_at is None


def test_create_body_carries_item_source_ids_and_skips_tombstones():
    todo_list = LocalList(id=1, name="Groceries", items=[
        LocalItem(id=10, name="Milk", is_complete=True),
        LocalItem(id=11, name="Gone", deleted_at=T0),
        LocalItem(name="Unsaved"),
    ])

    body = list_to_create_body(todo_list)

    assert body.name == "Groceries"
    assert [item.description for item in body.items] == ["Milk", "Unsaved"]
    assert body.items[0].source_id == "10"
    assert body.items[0].completed is True
    assert body.items[1].source_id is None


def test_item_update_body():
    body = item_to_update_body(LocalItem(id=3, name="Bread", is_complete=False))

    assert body.to_dict() == {"description": "Bread", "completed": False, "source_id": "3"}


def test_source_id_for_unsaved_record():
    assert source_id_for(None) is None
    assert source_id_for(12) == "12"
