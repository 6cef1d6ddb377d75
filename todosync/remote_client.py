"""Remote todo API: client interface and requests-based HTTP client"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .models import (
    RemoteCreateList,
    RemoteItem,
    RemoteList,
    RemoteUpdateItem,
    RemoteUpdateList,
)

logger = logging.getLogger(__name__)


class RemoteApiError(Exception):
    """Raised when the remote API rejects a request or cannot be reached"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteNotFoundError(RemoteApiError):
    """Raised when the referenced remote list or item does not exist"""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class RemoteTodoClient(ABC):
    """Operations the sync engine needs from the remote todo service"""

    @abstractmethod
    def list_todo_lists(self) -> List[RemoteList]:
        """Return the full remote snapshot, items nested in their lists"""

    @abstractmethod
    def create_todo_list(self, body: RemoteCreateList) -> RemoteList:
        """Create a list with its items and return it with assigned ids"""

    @abstractmethod
    def update_todo_list(self, list_id: str, body: RemoteUpdateList) -> RemoteList:
        ...

    @abstractmethod
    def delete_todo_list(self, list_id: str) -> None:
        """Delete a list; raises RemoteNotFoundError when it does not exist"""

    @abstractmethod
    def update_todo_item(self, list_id: str, item_id: str, body: RemoteUpdateItem) -> RemoteItem:
        ...

    @abstractmethod
    def delete_todo_item(self, list_id: str, item_id: str) -> None:
        """Delete an item; raises RemoteNotFoundError when it does not exist"""


class HttpTodoClient(RemoteTodoClient):
    """Client for the remote todo REST API"""

    USER_AGENT = "todosync-client/1.0"
    RETRY_STATUSES = (429, 500, 502, 503, 504)

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 15,
        max_retry_attempts: int = 3,
        retry_backoff_factor: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the HTTP client

        Args:
            base_url: Root URL of the remote API (e.g., "https://todos.example.com")
            timeout_seconds: Per-request timeout
            max_retry_attempts: Retries for connection errors and transient statuses
            retry_backoff_factor: Exponential backoff factor between retries
            session: Pre-built session (tests inject a mock here)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or self._build_session(max_retry_attempts, retry_backoff_factor)

    def _build_session(self, max_retry_attempts: int, retry_backoff_factor: float) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=max_retry_attempts,
            backoff_factor=retry_backoff_factor,
            status_forcelist=self.RETRY_STATUSES,
            allowed_methods=frozenset(["GET", "POST", "PATCH", "DELETE"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({
            "Accept": "application/json",
            "User-Agent": self.USER_AGENT,
        })
        return session

    def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Make a request to the remote API

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            endpoint: API endpoint (e.g., "/todolists")
            data: Optional JSON payload for POST/PATCH

        Returns:
            Parsed JSON response, or None for empty bodies

        Raises:
            RemoteNotFoundError: If the API answers 404
            RemoteApiError: For any other failed request
        """
        url = f"{self.base_url}{endpoint}"

        try:
            response = self._session.request(method, url, json=data, timeout=self.timeout_seconds)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request {method} {endpoint} failed: {e}")
            raise RemoteApiError(f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 404:
            raise RemoteNotFoundError(f"{method} {endpoint}: not found")

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.error(f"HTTP error {response.status_code} on {method} {endpoint}")
            if response.text:
                logger.debug(f"Response: {response.text}")
            raise RemoteApiError(f"{method} {endpoint}: HTTP {response.status_code}",
                                 status_code=response.status_code) from e

        if not response.content:
            return None
        return response.json()

    def list_todo_lists(self) -> List[RemoteList]:
        result = self._make_request("GET", "/todolists")
        lists = [RemoteList.from_dict(data) for data in result or []]
        logger.debug(f"Retrieved {len(lists)} remote lists")
        return lists

    def create_todo_list(self, body: RemoteCreateList) -> RemoteList:
        result = self._make_request("POST", "/todolists", body.to_dict())
        return RemoteList.from_dict(result or {})

    def update_todo_list(self, list_id: str, body: RemoteUpdateList) -> RemoteList:
        result = self._make_request("PATCH", f"/todolists/{list_id}", body.to_dict())
        return RemoteList.from_dict(result or {})

    def delete_todo_list(self, list_id: str) -> None:
        self._make_request("DELETE", f"/todolists/{list_id}")

    def update_todo_item(self, list_id: str, item_id: str, body: RemoteUpdateItem) -> RemoteItem:
        result = self._make_request("PATCH", f"/todolists/{list_id}/todoitems/{item_id}", body.to_dict())
        return RemoteItem.from_dict(result or {})

    def delete_todo_item(self, list_id: str, item_id: str) -> None:
        self._make_request("DELETE", f"/todolists/{list_id}/todoitems/{item_id}")
