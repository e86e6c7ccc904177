"""
Flat JSON file storage (pattern B).

The file holds a JSON array of student objects. An insert reads the whole
file, checks the admission number, appends, and rewrites the file through
a temp file plus os.replace. The read-check-write sequence is serialized
by a threading.Lock within the process and by a FileLock on
`<path>.lock` across processes sharing the file.

A file that cannot be parsed is reported as StorageFailure and left on
disk untouched.
"""

import json
import os
import tempfile
import threading
from datetime import datetime, timezone
from typing import List

from fastapi.concurrency import run_in_threadpool
from filelock import FileLock, Timeout

from registrar.errors import DuplicateKey, StorageFailure
from registrar.logging_config import get_logger, log_with_context
from registrar.storage.base import StorageEngine, StoredStudent, newest_first

logger = get_logger("storage")

LOCK_TIMEOUT_SECONDS = 10


def _from_json(item: dict) -> StoredStudent:
    return StoredStudent(
        id=item["id"],
        name=item["name"],
        phone=item["phone"],
        admission_number=item["admission_number"],
        timestamp=datetime.fromisoformat(item["timestamp"]),
    )


def _to_json(student: StoredStudent) -> dict:
    data = student.to_dict()
    data["timestamp"] = student.timestamp.isoformat()
    return data


class JsonFileStorage(StorageEngine):
    name = "jsonfile"

    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self.lock_path = f"{self.path}.lock"
        self._thread_lock = threading.Lock()
        self._file_lock = FileLock(self.lock_path, timeout=LOCK_TIMEOUT_SECONDS)

    # ── file helpers (caller holds both locks) ───────────────────

    def _read(self) -> List[StoredStudent]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, list):
                raise ValueError("top-level JSON value is not a list")
            return [_from_json(item) for item in raw]
        except (ValueError, KeyError, TypeError) as e:
            raise StorageFailure("Corrupt students file {}: {}".format(self.path, e)) from e
        except OSError as e:
            raise StorageFailure("Cannot read {}: {}".format(self.path, e)) from e

    def _write(self, students: List[StoredStudent]) -> None:
        directory = os.path.dirname(self.path)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".students-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump([_to_json(s) for s in students], f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise StorageFailure("Cannot write {}: {}".format(self.path, e)) from e

    def _locked(self, fn, *args):
        with self._thread_lock:
            try:
                with self._file_lock:
                    return fn(*args)
            except Timeout as e:
                raise StorageFailure("Timed out waiting for {}".format(self.lock_path)) from e

    # ── operations ───────────────────────────────────────────────

    def _startup(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.path), exist_ok=True)
        except OSError as e:
            raise StorageFailure("Cannot create directory for {}: {}".format(self.path, e)) from e
        if not os.path.exists(self.path):
            self._write([])
        else:
            # Refuse to start on a corrupt file
            self._read()

    def _insert(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        students = self._read()
        if any(s.admission_number == admission_number for s in students):
            raise DuplicateKey(admission_number)
        student = StoredStudent(
            id=max((s.id for s in students), default=0) + 1,
            name=name,
            phone=phone,
            admission_number=admission_number,
            timestamp=datetime.now(timezone.utc).replace(tzinfo=None),
        )
        students.append(student)
        self._write(students)
        return student

    def _contains(self, admission_number: str) -> bool:
        return any(s.admission_number == admission_number for s in self._read())

    async def startup(self) -> None:
        await run_in_threadpool(self._locked, self._startup)
        log_with_context(logger, "INFO", "JSON file storage ready",
                         context={"backend": self.name}, extra_data={"path": self.path})

    async def insert_if_absent(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        return await run_in_threadpool(self._locked, self._insert, name, phone, admission_number)

    async def list_all(self) -> List[StoredStudent]:
        students = await run_in_threadpool(self._locked, self._read)
        return newest_first(students)

    async def contains(self, admission_number: str) -> bool:
        return await run_in_threadpool(self._locked, self._contains, admission_number)
