"""In-memory stand-in for the remote todo API, used in tests and local runs"""

import copy
import logging
import threading
import uuid
from typing import List, Optional, Dict, Tuple, Any

from .models import (
    RemoteCreateList,
    RemoteItem,
    RemoteList,
    RemoteUpdateItem,
    RemoteUpdateList,
    is_blank,
    utcnow,
)
from .remote_client import RemoteNotFoundError, RemoteTodoClient

logger = logging.getLogger(__name__)


class InMemoryTodoClient(RemoteTodoClient):
    """
    Thread-safe in-memory remote

    Returns copies so callers never hold references into the stored state.
    Updates are permissive: updating an unknown list or item creates it.
    Every mutating call is appended to ``calls`` as (operation, args).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._lists: Dict[str, RemoteList] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def seed_list(self, todo_list: RemoteList) -> RemoteList:
        """Plant a remote list directly, bypassing the call log"""
        with self._lock:
            stored = copy.deepcopy(todo_list)
            if is_blank(stored.id):
                stored.id = self._new_list_id()
            self._lists[stored.id] = stored
            return copy.deepcopy(stored)

    def get_list(self, list_id: str) -> Optional[RemoteList]:
        with self._lock:
            stored = self._lists.get(list_id)
            return copy.deepcopy(stored) if stored else None

    def list_todo_lists(self) -> List[RemoteList]:
        with self._lock:
            return [copy.deepcopy(todo_list) for todo_list in self._lists.values()]

    def create_todo_list(self, body: RemoteCreateList) -> RemoteList:
        with self._lock:
            self.calls.append(("create_list", (body.name,)))
            now = utcnow()
            todo_list = RemoteList(
                id=self._new_list_id(),
                name=body.name,
                created_at=now,
                updated_at=now,
                items=[
                    RemoteItem(
                        id=self._new_item_id(),
                        source_id=item.source_id,
                        description=item.description,
                        completed=item.completed,
                        created_at=now,
                        updated_at=now,
                    )
                    for item in body.items
                ],
            )
            self._lists[todo_list.id] = todo_list
            logger.debug(f"Created remote list '{body.name}' ({todo_list.id})")
            return copy.deepcopy(todo_list)

    def update_todo_list(self, list_id: str, body: RemoteUpdateList) -> RemoteList:
        with self._lock:
            self.calls.append(("update_list", (list_id, body.name)))
            now = utcnow()
            todo_list = self._lists.get(list_id)
            if todo_list is None:
                todo_list = RemoteList(id=list_id, name=body.name or "unnamed", created_at=now)
                self._lists[list_id] = todo_list

            if not is_blank(body.name):
                todo_list.name = body.name
            todo_list.updated_at = now
            return copy.deepcopy(todo_list)

    def delete_todo_list(self, list_id: str) -> None:
        with self._lock:
            self.calls.append(("delete_list", (list_id,)))
            if self._lists.pop(list_id, None) is None:
                raise RemoteNotFoundError(f"List {list_id} not found")

    def update_todo_item(self, list_id: str, item_id: str, body: RemoteUpdateItem) -> RemoteItem:
        with self._lock:
            self.calls.append(("update_item", (list_id, item_id, body.description, body.completed)))
            now = utcnow()
            todo_list = self._lists.get(list_id)
            if todo_list is None:
                todo_list = RemoteList(id=list_id, name="autocreated", created_at=now)
                self._lists[list_id] = todo_list

            item = next((candidate for candidate in todo_list.items if candidate.id == item_id), None)
            if item is None:
                item = RemoteItem(
                    id=item_id,
                    source_id=body.source_id,
                    description=body.description,
                    completed=bool(body.completed),
                    created_at=now,
                )
                todo_list.items.append(item)
            else:
                if not is_blank(body.description):
                    item.description = body.description
                if body.completed is not None:
                    item.completed = body.completed
                if not is_blank(body.source_id):
                    item.source_id = body.source_id

            item.updated_at = now
            todo_list.updated_at = now
            return copy.deepcopy(item)

    def delete_todo_item(self, list_id: str, item_id: str) -> None:
        with self._lock:
            self.calls.append(("delete_item", (list_id, item_id)))
            todo_list = self._lists.get(list_id)
            if todo_list is None:
                raise RemoteNotFoundError(f"List {list_id} not found")

            remaining = [item for item in todo_list.items if item.id != item_id]
            if len(remaining) == len(todo_list.items):
                raise RemoteNotFoundError(f"Item {item_id} not found in list {list_id}")

            todo_list.items = remaining
            todo_list.updated_at = utcnow()

    def _new_list_id(self) -> str:
        return f"ext-{uuid.uuid4().hex}"

    def _new_item_id(self) -> str:
        return f"external-{uuid.uuid4().hex}"
