# backend/excel_analytics/store.py
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .policy import Role
from .schemas import Account, UploadRecord


class DuplicateUsername(Exception):
    pass


class Store(ABC):
    """Persistence for uploads and accounts. Handed to the app at construction."""

    @abstractmethod
    def save_upload(self, record: UploadRecord) -> str: ...

    @abstractmethod
    def list_uploads_by_owner(self, owner: str) -> List[UploadRecord]: ...

    @abstractmethod
    def list_uploads(self) -> List[UploadRecord]: ...

    @abstractmethod
    def find_account_by_username(self, username: str) -> Optional[Account]: ...

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]: ...

    @abstractmethod
    def list_accounts(self) -> List[Account]: ...

    @abstractmethod
    def save_account(self, account: Account) -> str: ...

    @abstractmethod
    def update_account_role(self, account_id: str, role: Role) -> bool: ...

    @abstractmethod
    def delete_account(self, account_id: str) -> bool: ...


class MemoryStore(Store):
    def __init__(self):
        self._lock = threading.Lock()
        self._uploads: Dict[str, UploadRecord] = {}
        self._accounts: Dict[str, Account] = {}

    def save_upload(self, record: UploadRecord) -> str:
        with self._lock:
            self._uploads[record.id] = record
        return record.id

    def list_uploads_by_owner(self, owner: str) -> List[UploadRecord]:
        with self._lock:
            mine = [u for u in self._uploads.values() if u.owner == owner]
        # newest first; same-timestamp uploads keep reverse insertion order
        return sorted(mine, key=lambda u: u.uploaded_at)[::-1]

    def list_uploads(self) -> List[UploadRecord]:
        with self._lock:
            return list(self._uploads.values())

    def find_account_by_username(self, username: str) -> Optional[Account]:
        with self._lock:
            for acc in self._accounts.values():
                if acc.username == username:
                    return acc
        return None

    def get_account(self, account_id: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    def list_accounts(self) -> List[Account]:
        with self._lock:
            return list(self._accounts.values())

    def save_account(self, account: Account) -> str:
        with self._lock:
            if any(a.username == account.username for a in self._accounts.values()):
                raise DuplicateUsername(account.username)
            self._accounts[account.id] = account
        return account.id

    def update_account_role(self, account_id: str, role: Role) -> bool:
        with self._lock:
            acc = self._accounts.get(account_id)
            if acc is None:
                return False
            self._accounts[account_id] = acc.model_copy(update={"role": role})
        return True

    def delete_account(self, account_id: str) -> bool:
        with self._lock:
            return self._accounts.pop(account_id, None) is not None
