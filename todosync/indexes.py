"""In-memory lookup indexes built fresh for every sync cycle"""

from typing import Dict, Iterable, Tuple, TypeVar, Union

from .models import LocalItem, LocalList, RemoteItem, RemoteList, is_blank

RemoteRecord = TypeVar("RemoteRecord", RemoteList, RemoteItem)
LocalRecord = TypeVar("LocalRecord", LocalList, LocalItem)


def index_remote(records: Iterable[RemoteRecord]) -> Tuple[Dict[str, RemoteRecord], Dict[str, RemoteRecord]]:
    """
    Index remote lists or items by remote id and by source id in one pass

    Records whose id is blank are left out of the corresponding map. A duplicate
    id replaces the earlier record.

    Returns:
        Tuple of (by_id, by_source_id)
    """
    by_id: Dict[str, RemoteRecord] = {}
    by_source_id: Dict[str, RemoteRecord] = {}
    for record in records:
        if not is_blank(record.id):
            by_id[record.id] = record
        if not is_blank(record.source_id):
            by_source_id[record.source_id] = record
    return by_id, by_source_id


def index_local(records: Iterable[LocalRecord]) -> Tuple[Dict[str, LocalRecord], Dict[int, LocalRecord]]:
    """
    Index local lists or items by remote id and by local id in one pass

    Returns:
        Tuple of (by_remote_id, by_id)
    """
    by_remote_id: Dict[str, LocalRecord] = {}
    by_id: Dict[int, LocalRecord] = {}
    for record in records:
        if record.id is not None:
            by_id[record.id] = record
        if not is_blank(record.remote_id):
            by_remote_id[record.remote_id] = record
    return by_remote_id, by_id


def parse_source_id(source_id: Union[str, None]):
    """Read a remote source id back as a local numeric id, or None"""
    if is_blank(source_id):
        return None
    try:
        return int(source_id.strip())
    except ValueError:
        return None
