"""Cross-reference linking between local records and remote records"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from .models import LocalItem, LocalList, RemoteItem, RemoteList, is_blank, utcnow

logger = logging.getLogger(__name__)


def link_by_source_id(
    local_records: Iterable[Union[LocalList, LocalItem]],
    remote_by_source_id: Dict[str, Union[RemoteList, RemoteItem]],
    now: Optional[datetime] = None,
    touch: bool = True,
) -> List[Union[LocalList, LocalItem]]:
    """
    Attach remote ids to local records that the remote side already knows

    A local record without a remote id is linked when some remote record echoes
    its local id as source id. Records that are already linked, or that have not
    been persisted yet, are left alone.

    Args:
        local_records: Local lists or items to link
        remote_by_source_id: Remote records keyed by source id
        now: Timestamp used for the modification bump
        touch: Whether linking bumps the local modification timestamp

    Returns:
        The local records that were linked
    """
    now = now or utcnow()
    local_records = list(local_records)
    # A remote record is claimed by at most one local record
    claimed = {record.remote_id for record in local_records if not is_blank(record.remote_id)}
    linked = []
    for record in local_records:
        if not is_blank(record.remote_id) or record.id is None:
            continue

        match = remote_by_source_id.get(str(record.id))
        if match is None or is_blank(match.id) or match.id in claimed:
            continue

        record.remote_id = match.id
        claimed.add(match.id)
        if touch:
            record.updated_at = now
        linked.append(record)
        logger.debug(f"Linked local #{record.id} '{record.name}' to remote {match.id}")

    return linked
