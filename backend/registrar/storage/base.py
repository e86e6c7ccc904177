"""
Storage engine contract shared by every backend.

Every backend offers the same capability set: insert a student only if
the admission number is not already stored, list all students newest
first, and answer whether an admission number is stored. Backends differ
only in how strongly they guarantee the insert is atomic:

- Pattern A (sqlite, sqlite_async): a UNIQUE constraint in the database.
- Pattern B (mongo, jsonfile, memory): read, check, then write inside a
  process-wide lock.
"""

import abc
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Union

StudentId = Union[int, str]


@dataclass(frozen=True)
class StoredStudent:
    """A persisted registration as returned by any backend."""
    id: StudentId
    name: str
    phone: str
    admission_number: str
    timestamp: datetime

    def to_dict(self) -> dict:
        return asdict(self)


def newest_first(students: List[StoredStudent]) -> List[StoredStudent]:
    """Order by timestamp descending, ties broken by id descending."""
    return sorted(students, key=lambda s: (s.timestamp, s.id), reverse=True)


class StorageEngine(abc.ABC):
    """Abstract base class for student storage backends."""

    #: Name used in configuration and log context
    name = "abstract"

    #: True when uniqueness is enforced by the store itself (pattern A)
    atomic_uniqueness = False

    async def startup(self) -> None:
        """Create tables, indexes or files. Called once before serving."""

    async def shutdown(self) -> None:
        """Release engines, clients and handles. Called once at exit."""

    @abc.abstractmethod
    async def insert_if_absent(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        """
        Persist a new student unless the admission number already exists.

        Raises:
            DuplicateKey: the admission number is already stored
            StorageFailure: any other backend error
        """

    @abc.abstractmethod
    async def list_all(self) -> List[StoredStudent]:
        """Return every stored student, newest first. Raises StorageFailure."""

    @abc.abstractmethod
    async def contains(self, admission_number: str) -> bool:
        """Return True if the admission number is stored. Raises StorageFailure."""
