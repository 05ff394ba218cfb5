"""
In-memory SRP user store (salt + verifier per user name).

Record layout:

    user_name (raw bytes) -> UserRecord(salt: bytes, verifier: int)

The password itself is never stored. Access is serialized by a lock so
that one store can back a server whose connections run on separate
threads.
"""

import threading
from typing import Dict, Optional

from pydantic import BaseModel


class UserRecord(BaseModel):
    salt: bytes
    verifier: int       # g^x mod N, x = H(salt || password)


class UserStore:
    def __init__(self):
        self._records: Dict[bytes, UserRecord] = {}
        self._lock = threading.Lock()

    def put(self, user_name: bytes, record: UserRecord) -> bool:
        """
        Store `record` for `user_name`; a re-registration overwrites.

        Returns True if the user was new.
        """
        with self._lock:
            is_new = user_name not in self._records
            self._records[user_name] = record
        return is_new

    def get(self, user_name: bytes) -> Optional[UserRecord]:
        with self._lock:
            return self._records.get(user_name)

    def __contains__(self, user_name: bytes) -> bool:
        with self._lock:
            return user_name in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
