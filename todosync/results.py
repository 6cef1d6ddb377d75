"""Sync cycle outcome reporting"""

from datetime import datetime
from typing import Dict, List, Optional


class SyncCancelled(Exception):
    """Raised at a remote-call boundary once a stop has been requested"""


class SyncCycleResult:
    """Result of one reconciliation cycle"""

    CATEGORIES = (
        'linked',
        'remote_created',
        'remote_updated',
        'remote_deleted',
        'remote_delete_failed',
        'local_created',
        'local_updated',
    )

    def __init__(self, started_at: Optional[datetime] = None):
        self.started_at = started_at
        self.success = False
        self.error: Optional[str] = None
        self.changes_applied: Dict[str, List[str]] = {category: [] for category in self.CATEGORIES}
        self.local_lists = 0
        self.remote_lists = 0
        self.sync_duration = 0.0

    def add_change(self, category: str, name: str):
        """Add a change to the results"""
        if category in self.changes_applied:
            self.changes_applied[category].append(name)

    def count(self, category: str) -> int:
        return len(self.changes_applied.get(category, []))

    @property
    def total_changes(self) -> int:
        """Changes applied to either side; links and failed deletes are not counted"""
        return sum(
            len(names) for category, names in self.changes_applied.items()
            if category not in ('linked', 'remote_delete_failed')
        )

    def summary(self) -> str:
        parts = [f"{self.count(category)} {category.replace('_', ' ')}"
                 for category in self.CATEGORIES if self.count(category)]
        return ", ".join(parts) if parts else "no changes"
