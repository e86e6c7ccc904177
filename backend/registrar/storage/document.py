"""
MongoDB document storage (pattern B).

Insert looks the admission number up, then inserts, with both steps
inside a process-wide threading.Lock. Startup also declares a unique index
on admission_number so that writers in other processes cannot slip a
second document in; a DuplicateKeyError from that index is reported as
DuplicateKey just like the in-process check.
"""

import threading
from datetime import datetime, timezone
from typing import List, Optional

import pymongo
from fastapi.concurrency import run_in_threadpool
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from registrar.errors import DuplicateKey, StorageFailure
from registrar.logging_config import get_logger, log_with_context
from registrar.storage.base import StorageEngine, StoredStudent

logger = get_logger("storage")

SERVER_SELECTION_TIMEOUT_MS = 5000


def _from_document(doc: dict) -> StoredStudent:
    return StoredStudent(
        id=str(doc["_id"]),
        name=doc["name"],
        phone=doc["phone"],
        admission_number=doc["admission_number"],
        timestamp=doc["timestamp"],
    )


class MongoStorage(StorageEngine):
    name = "mongo"

    def __init__(self, url: str = None, database: str = "registrar",
                 collection_name: str = "students", collection: Optional[Collection] = None):
        self._client = None
        if collection is None:
            self._client = pymongo.MongoClient(url, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
            collection = self._client[database][collection_name]
        self.collection = collection
        self._lock = threading.Lock()

    def _startup(self) -> None:
        try:
            self.collection.create_index(
                [("admission_number", pymongo.ASCENDING)],
                unique=True, name="uq_admission_number")
            self.collection.create_index(
                [("timestamp", pymongo.DESCENDING), ("_id", pymongo.DESCENDING)],
                name="ix_timestamp_desc")
        except PyMongoError as e:
            raise StorageFailure("Could not prepare collection: {}".format(e)) from e

    def _insert(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        with self._lock:
            try:
                if self.collection.find_one({"admission_number": admission_number}, {"_id": 1}):
                    raise DuplicateKey(admission_number)
                now = datetime.now(timezone.utc).replace(tzinfo=None)
                doc = {
                    "name": name,
                    "phone": phone,
                    "admission_number": admission_number,
                    # BSON dates have millisecond precision
                    "timestamp": now.replace(microsecond=now.microsecond // 1000 * 1000),
                }
                result = self.collection.insert_one(doc)
            except DuplicateKeyError as e:
                raise DuplicateKey(admission_number) from e
            except PyMongoError as e:
                raise StorageFailure("Insert failed: {}".format(e)) from e
        doc["_id"] = result.inserted_id
        return _from_document(doc)

    def _list(self) -> List[StoredStudent]:
        try:
            cursor = self.collection.find().sort(
                [("timestamp", pymongo.DESCENDING), ("_id", pymongo.DESCENDING)])
            return [_from_document(doc) for doc in cursor]
        except PyMongoError as e:
            raise StorageFailure("Listing failed: {}".format(e)) from e

    def _contains(self, admission_number: str) -> bool:
        try:
            return self.collection.find_one({"admission_number": admission_number}, {"_id": 1}) is not None
        except PyMongoError as e:
            raise StorageFailure("Lookup failed: {}".format(e)) from e

    async def startup(self) -> None:
        await run_in_threadpool(self._startup)
        log_with_context(logger, "INFO", "Document storage ready",
                         context={"backend": self.name},
                         extra_data={"collection": self.collection.full_name})

    async def shutdown(self) -> None:
        if self._client is not None:
            await run_in_threadpool(self._client.close)

    async def insert_if_absent(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        return await run_in_threadpool(self._insert, name, phone, admission_number)

    async def list_all(self) -> List[StoredStudent]:
        return await run_in_threadpool(self._list)

    async def contains(self, admission_number: str) -> bool:
        return await run_in_threadpool(self._contains, admission_number)
