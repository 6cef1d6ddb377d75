"""Deletion propagation and creation of records missing on either side"""

import logging
from datetime import datetime
from typing import Callable, Dict, List

from .indexes import index_remote, parse_source_id
from .linker import link_by_source_id
from .mapping import list_to_create_body, list_to_entity
from .models import LocalList, RemoteList, is_blank
from .remote_client import RemoteNotFoundError, RemoteTodoClient
from .results import SyncCycleResult
from .state_store import LocalSession

logger = logging.getLogger(__name__)


class TombstonePropagator:
    """
    Issues remote deletes for locally tombstoned lists and items

    Lists go first. Items are only deleted one by one when their list is not
    itself tombstoned. A delete that fails is logged and left for the next
    cycle; it never stops the remaining deletes.
    """

    def __init__(self, client: RemoteTodoClient, result: SyncCycleResult,
                 checkpoint: Callable[[], None]):
        self.client = client
        self.result = result
        self.checkpoint = checkpoint

    def propagate(self, local_lists: List[LocalList]) -> None:
        for todo_list in local_lists:
            if todo_list.is_deleted and not is_blank(todo_list.remote_id):
                self._delete(
                    f"list '{todo_list.name}'",
                    self.client.delete_todo_list,
                    todo_list.remote_id,
                )

        for todo_list in local_lists:
            if todo_list.is_deleted or is_blank(todo_list.remote_id):
                continue
            for item in todo_list.items:
                if item.is_deleted and not is_blank(item.remote_id):
                    self._delete(
                        f"item '{item.name}' of list '{todo_list.name}'",
                        self.client.delete_todo_item,
                        todo_list.remote_id,
                        item.remote_id,
                    )

    def _delete(self, description: str, operation: Callable[..., None], *remote_ids: str) -> bool:
        """
        Run one remote delete, containing its failure

        Returns:
            True if the record is gone remotely, False if the delete must be retried
        """
        self.checkpoint()
        try:
            operation(*remote_ids)
            logger.info(f"Deleted remote {description} ({remote_ids[-1]})")
        except RemoteNotFoundError:
            logger.info(f"Remote {description} ({remote_ids[-1]}) already absent")
        except Exception as e:
            logger.warning(f"Failed to delete remote {description} ({remote_ids[-1]}), will retry: {e}")
            self.result.add_change('remote_delete_failed', description)
            return False

        self.result.add_change('remote_deleted', description)
        return True


class MissingRecordReconciler:
    """Imports remote-only lists and exports local-only lists"""

    def __init__(self, client: RemoteTodoClient, result: SyncCycleResult,
                 checkpoint: Callable[[], None]):
        self.client = client
        self.result = result
        self.checkpoint = checkpoint

    def import_remote_lists(
        self,
        session: LocalSession,
        remote_lists: List[RemoteList],
        local_by_remote_id: Dict[str, LocalList],
        local_by_id: Dict[int, LocalList],
        now: datetime,
    ) -> List[LocalList]:
        """
        Stage a new local list for every remote list without a local match

        A direct remote id match is tried before the source id match.

        Returns:
            The newly staged local lists
        """
        imported = []
        for remote in remote_lists:
            if is_blank(remote.id):
                logger.warning(f"Skipping remote list '{remote.name}' without id")
                continue

            match = local_by_remote_id.get(remote.id)
            if match is None:
                source_id = parse_source_id(remote.source_id)
                if source_id is not None:
                    match = local_by_id.get(source_id)
            if match is not None:
                continue

            new_list = list_to_entity(remote, now=now)
            session.add_list(new_list)
            imported.append(new_list)
            self.result.add_change('local_created', new_list.name)
            logger.info(f"Imported remote list '{new_list.name}' ({remote.id}) "
                        f"with {len(new_list.items)} items")

        return imported

    def export_local_lists(
        self,
        local_lists: List[LocalList],
        remote_by_id: Dict[str, RemoteList],
        remote_by_source_id: Dict[str, RemoteList],
        now: datetime,
    ) -> List[LocalList]:
        """
        Create remotely every non-tombstoned local list the remote side lacks

        Returns:
            The local lists that were exported
        """
        exported = []
        for todo_list in local_lists:
            if todo_list.is_deleted:
                continue

            exists_remotely = (
                (not is_blank(todo_list.remote_id) and todo_list.remote_id in remote_by_id)
                or (todo_list.id is not None and str(todo_list.id) in remote_by_source_id)
            )
            if exists_remotely:
                continue

            self.checkpoint()
            created = self.client.create_todo_list(list_to_create_body(todo_list))

            todo_list.remote_id = created.id
            todo_list.updated_at = now

            # Items come back with the source ids sent in the payload; links to
            # a previous, vanished remote list are replaced
            live_items = [item for item in todo_list.items if not item.is_deleted]
            for item in live_items:
                item.remote_id = None
            _, created_by_source_id = index_remote(created.items)
            link_by_source_id(live_items, created_by_source_id, touch=False)

            exported.append(todo_list)
            self.result.add_change('remote_created', todo_list.name)
            logger.info(f"Created remote list '{todo_list.name}' ({created.id}) for local #{todo_list.id}")

        return exported
