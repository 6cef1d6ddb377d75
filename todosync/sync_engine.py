"""Sync engine: one full-snapshot reconciliation cycle

Each cycle runs:
- Pull: remote snapshot and local snapshot (lists with items)
- Index and link records across the two id spaces
- Propagate local deletions, then create what is missing on either side
- Last-writer-wins updates for lists and items
- Commit local changes in one transaction
"""

import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .config import TodoSyncConfig, build_client
from .indexes import index_local, index_remote
from .linker import link_by_source_id
from .lww import LwwUpdater
from .models import utcnow
from .reconciler import MissingRecordReconciler, TombstonePropagator
from .remote_client import RemoteTodoClient
from .results import SyncCancelled, SyncCycleResult
from .state_store import LocalStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """
    Reconciles the local store with the remote todo API

    Remote writes happen as the cycle progresses and are not rolled back when
    the cycle fails; local writes are committed only when the whole pass
    completes.
    """

    def __init__(
        self,
        client: RemoteTodoClient,
        store: LocalStore,
        stop_event: Optional[threading.Event] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize SyncEngine

        Args:
            client: Remote API client (HTTP or in-memory)
            store: Local SQLite store
            stop_event: Set to request cancellation at the next remote call
            clock: Source of "now" for link and creation timestamps
        """
        self.client = client
        self.store = store
        self.stop_event = stop_event or threading.Event()
        self.clock = clock

    def _checkpoint(self) -> None:
        if self.stop_event.is_set():
            raise SyncCancelled("Sync cancelled")

    def sync_once(self) -> SyncCycleResult:
        """
        Run one reconciliation cycle

        Returns:
            SyncCycleResult describing the changes applied

        Raises:
            SyncCancelled: If a stop was requested mid-cycle
            Exception: Any create/update failure; local changes are discarded
        """
        now = self.clock()
        result = SyncCycleResult(started_at=now)
        logger.debug("Starting sync cycle")

        self._checkpoint()
        remote_lists = self.client.list_todo_lists()

        session = self.store.open_session()
        try:
            local_lists = session.load_lists()

            remote_by_id, remote_by_source_id = index_remote(remote_lists)
            local_by_remote_id, local_by_id = index_local(local_lists)

            for linked in link_by_source_id(local_lists, remote_by_source_id, now=now):
                local_by_remote_id[linked.remote_id] = linked
                result.add_change('linked', linked.name)

            TombstonePropagator(self.client, result, self._checkpoint).propagate(local_lists)

            reconciler = MissingRecordReconciler(self.client, result, self._checkpoint)
            reconciler.import_remote_lists(session, remote_lists, local_by_remote_id, local_by_id, now)
            reconciler.export_local_lists(local_lists, remote_by_id, remote_by_source_id, now)

            LwwUpdater(self.client, result, self._checkpoint).update_lists(local_lists, remote_by_id)

            self._checkpoint()
            session.commit()

        except BaseException:
            session.rollback()
            raise

        result.success = True
        result.local_lists = len(local_lists)
        result.remote_lists = len(remote_lists)
        result.sync_duration = (self.clock() - now).total_seconds()

        logger.info(f"Sync completed. Local lists: {result.local_lists} | "
                    f"Remote lists: {result.remote_lists} | {result.summary()}")
        return result


def create_sync_engine(config: TodoSyncConfig, config_dir: Path) -> SyncEngine:
    """
    Build a SyncEngine from configuration

    Args:
        config: Loaded configuration
        config_dir: Directory that relative paths in the configuration refer to

    Returns:
        Configured SyncEngine instance
    """
    db_path = Path(config.database_path)
    if not db_path.is_absolute():
        db_path = Path(config_dir) / db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = SyncEngine(build_client(config), LocalStore(str(db_path)))
    logger.info(f"SyncEngine initialized (database: {db_path}, "
                f"remote: {'in-memory' if config.use_fake else config.base_url})")
    return engine
