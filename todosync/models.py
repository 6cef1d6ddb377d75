"""Data models for local and remote todo lists"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

# Stand-in for a missing modification timestamp when comparing writers
MIN_TIMESTAMP = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from the wire, treating naive values as UTC"""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass
class LocalItem:
    """Todo item stored in the local database"""

    name: str
    is_complete: bool = False
    id: Optional[int] = None
    list_id: Optional[int] = None
    remote_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        """A tombstoned item is kept locally until the remote delete is confirmed"""
        return self.deleted_at is not None

    def __repr__(self) -> str:
        status = "✓" if self.is_complete else " "
        link = self.remote_id or "unlinked"
        return f"LocalItem([{status}] {self.name} #{self.id} -> {link})"


@dataclass
class LocalList:
    """Todo list stored in the local database, owning its items"""

    name: str
    items: List[LocalItem] = field(default_factory=list)
    id: Optional[int] = None
    remote_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    row_version: int = 0

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        link = self.remote_id or "unlinked"
        return f"LocalList({self.name} #{self.id} -> {link}, {len(self.items)} items)"


@dataclass
class RemoteItem:
    """Todo item as returned by the remote API"""

    id: Optional[str] = None
    source_id: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteItem":
        return cls(
            id=data.get("id"),
            source_id=data.get("source_id"),
            description=data.get("description"),
            completed=data.get("completed"),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "description": self.description,
            "completed": self.completed,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


@dataclass
class RemoteList:
    """Todo list as returned by the remote API, items nested"""

    id: Optional[str] = None
    source_id: Optional[str] = None
    name: Optional[str] = None
    items: List[RemoteItem] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteList":
        return cls(
            id=data.get("id"),
            source_id=data.get("source_id"),
            name=data.get("name"),
            items=[RemoteItem.from_dict(item) for item in data.get("items") or []],
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "name": self.name,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class RemoteCreateItem:
    description: str
    completed: bool = False
    source_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "completed": self.completed,
            "source_id": self.source_id,
        }


@dataclass
class RemoteCreateList:
    name: str
    items: List[RemoteCreateItem] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class RemoteUpdateList:
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name} if self.name is not None else {}


@dataclass
class RemoteUpdateItem:
    """Partial item update; fields left as None are not sent"""

    description: Optional[str] = None
    completed: Optional[bool] = None
    source_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "description": self.description,
            "completed": self.completed,
            "source_id": self.source_id,
        }
        return {key: value for key, value in payload.items() if value is not None}
