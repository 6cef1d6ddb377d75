"""Conversions between local records and remote payloads"""

from datetime import datetime
from typing import Optional

from .models import (
    LocalItem,
    LocalList,
    RemoteCreateItem,
    RemoteCreateList,
    RemoteItem,
    RemoteList,
    RemoteUpdateItem,
    RemoteUpdateList,
    is_blank,
    utcnow,
)

UNNAMED_LIST = "Unnamed"
UNNAMED_ITEM = "Unnamed item"


def source_id_for(local_id: Optional[int]) -> Optional[str]:
    """Cross-reference id echoed to the remote side; unsaved records have none"""
    return str(local_id) if local_id else None


def item_to_entity(remote: RemoteItem, list_id: Optional[int] = None,
                   now: Optional[datetime] = None) -> LocalItem:
    now = now or utcnow()
    return LocalItem(
        name=remote.description if not is_blank(remote.description) else UNNAMED_ITEM,
        is_complete=bool(remote.completed),
        list_id=list_id,
        remote_id=remote.id,
        created_at=remote.created_at or now,
        updated_at=remote.updated_at,
    )


def list_to_entity(remote: RemoteList, now: Optional[datetime] = None) -> LocalList:
    """Materialize a remote-only list (and its items) as a new local list"""
    now = now or utcnow()
    return LocalList(
        name=remote.name if not is_blank(remote.name) else UNNAMED_LIST,
        remote_id=remote.id,
        created_at=remote.created_at or now,
        updated_at=remote.updated_at or now,
        items=[item_to_entity(item, now=now) for item in remote.items],
    )


def item_to_create_body(item: LocalItem) -> RemoteCreateItem:
    return RemoteCreateItem(
        description=item.name,
        completed=item.is_complete,
        source_id=source_id_for(item.id),
    )


def list_to_create_body(todo_list: LocalList) -> RemoteCreateList:
    # Tombstoned items are left out so a new remote list never resurrects them
    return RemoteCreateList(
        name=todo_list.name,
        items=[item_to_create_body(item) for item in todo_list.items if not item.is_deleted],
    )


def list_to_update_body(todo_list: LocalList) -> RemoteUpdateList:
    return RemoteUpdateList(name=todo_list.name)


def item_to_update_body(item: LocalItem) -> RemoteUpdateItem:
    return RemoteUpdateItem(
        description=item.name,
        completed=item.is_complete,
        source_id=source_id_for(item.id),
    )
