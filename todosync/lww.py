"""Last-writer-wins updates for linked lists and their items"""

import logging
from typing import Callable, Dict, List

from .indexes import index_local, index_remote, parse_source_id
from .linker import link_by_source_id
from .mapping import item_to_entity, item_to_update_body, list_to_update_body
from .models import MIN_TIMESTAMP, LocalItem, LocalList, RemoteItem, RemoteList, is_blank
from .remote_client import RemoteTodoClient
from .results import SyncCycleResult

logger = logging.getLogger(__name__)


class LwwUpdater:
    """
    Pushes or pulls changes between linked records by modification time

    The side with the strictly later timestamp wins; equal timestamps leave
    both sides alone. A missing timestamp counts as the earliest possible time.
    """

    def __init__(self, client: RemoteTodoClient, result: SyncCycleResult,
                 checkpoint: Callable[[], None]):
        self.client = client
        self.result = result
        self.checkpoint = checkpoint

    def update_lists(self, local_lists: List[LocalList], remote_by_id: Dict[str, RemoteList]) -> None:
        for todo_list in local_lists:
            if todo_list.is_deleted or is_blank(todo_list.remote_id):
                continue

            remote = remote_by_id.get(todo_list.remote_id)
            if remote is None:
                continue

            self._update_list(todo_list, remote)
            self._sync_items(todo_list, remote)

    def _update_list(self, todo_list: LocalList, remote: RemoteList) -> None:
        local_updated = todo_list.updated_at or MIN_TIMESTAMP
        remote_updated = remote.updated_at or MIN_TIMESTAMP

        if local_updated > remote_updated:
            self.checkpoint()
            self.client.update_todo_list(remote.id, list_to_update_body(todo_list))
            self.result.add_change('remote_updated', todo_list.name)
            logger.info(f"Pushed list '{todo_list.name}' to remote {remote.id}")
        elif remote_updated > local_updated:
            if not is_blank(remote.name):
                todo_list.name = remote.name
            todo_list.updated_at = remote_updated
            self.result.add_change('local_updated', todo_list.name)
            logger.info(f"Pulled list '{todo_list.name}' from remote {remote.id}")

    def _sync_items(self, todo_list: LocalList, remote: RemoteList) -> None:
        remote_items_by_id, remote_items_by_source_id = index_remote(remote.items)

        link_by_source_id(todo_list.items, remote_items_by_source_id, touch=False)
        self._import_missing_items(todo_list, remote.items)

        for item in todo_list.items:
            if item.is_deleted or is_blank(item.remote_id):
                continue
            remote_item = remote_items_by_id.get(item.remote_id)
            if remote_item is None:
                continue
            self._update_item(todo_list, remote.id, item, remote_item)

    def _import_missing_items(self, todo_list: LocalList, remote_items: List[RemoteItem]) -> None:
        """Add remote-only items to the local list; tombstoned local items still count as matches"""
        local_by_remote_id, local_by_id = index_local(todo_list.items)

        for remote_item in remote_items:
            if is_blank(remote_item.id):
                continue
            if remote_item.id in local_by_remote_id:
                continue
            source_id = parse_source_id(remote_item.source_id)
            if source_id is not None and source_id in local_by_id:
                continue

            new_item = item_to_entity(remote_item, list_id=todo_list.id)
            todo_list.items.append(new_item)
            local_by_remote_id[remote_item.id] = new_item
            self.result.add_change('local_created', f"{todo_list.name}/{new_item.name}")
            logger.info(f"Imported remote item '{new_item.name}' ({remote_item.id}) into '{todo_list.name}'")

    def _update_item(self, todo_list: LocalList, remote_list_id: str,
                     item: LocalItem, remote_item: RemoteItem) -> None:
        local_updated = item.updated_at or MIN_TIMESTAMP
        remote_updated = remote_item.updated_at or MIN_TIMESTAMP

        if local_updated > remote_updated:
            self.checkpoint()
            self.client.update_todo_item(remote_list_id, remote_item.id, item_to_update_body(item))
            self.result.add_change('remote_updated', f"{todo_list.name}/{item.name}")
            logger.info(f"Pushed item '{item.name}' to remote {remote_item.id}")
        elif remote_updated > local_updated:
            if not is_blank(remote_item.description):
                item.name = remote_item.description
            if remote_item.completed is not None:
                item.is_complete = remote_item.completed
            item.updated_at = remote_updated
            self.result.add_change('local_updated', f"{todo_list.name}/{item.name}")
            logger.info(f"Pulled item '{item.name}' from remote {remote_item.id}")
