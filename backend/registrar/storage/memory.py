"""
In-process storage (pattern B), for development and tests.

Check-then-insert runs under a single threading.Lock, which makes it
atomic within this process. Data does not survive a restart and is not
shared between worker processes.
"""

import threading
from datetime import datetime, timezone
from typing import Dict, List

from registrar.errors import DuplicateKey
from registrar.storage.base import StorageEngine, StoredStudent, newest_first


class MemoryStorage(StorageEngine):
    name = "memory"

    def __init__(self):
        self._lock = threading.Lock()
        self._by_code: Dict[str, StoredStudent] = {}
        self._last_id = 0

    async def insert_if_absent(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        with self._lock:
            if admission_number in self._by_code:
                raise DuplicateKey(admission_number)
            self._last_id += 1
            student = StoredStudent(
                id=self._last_id,
                name=name,
                phone=phone,
                admission_number=admission_number,
                timestamp=datetime.now(timezone.utc).replace(tzinfo=None),
            )
            self._by_code[admission_number] = student
            return student

    async def list_all(self) -> List[StoredStudent]:
        with self._lock:
            students = list(self._by_code.values())
        return newest_first(students)

    async def contains(self, admission_number: str) -> bool:
        with self._lock:
            return admission_number in self._by_code
