from registrar.config import Settings
from registrar.storage.base import StorageEngine, StoredStudent


def build_storage(settings: Settings) -> StorageEngine:
    """Instantiate the backend named by settings.storage_backend."""
    backend = settings.storage_backend
    if backend == "sqlite":
        from registrar.storage.sql import SqlStorage
        return SqlStorage(settings.database_url)
    if backend == "sqlite_async":
        from registrar.storage.sql_async import AsyncSqlStorage
        return AsyncSqlStorage(settings.async_database_url)
    if backend == "mongo":
        from registrar.storage.document import MongoStorage
        return MongoStorage(settings.mongo_url, settings.mongo_database, settings.mongo_collection)
    if backend == "jsonfile":
        from registrar.storage.flatfile import JsonFileStorage
        return JsonFileStorage(settings.students_file)
    if backend == "memory":
        from registrar.storage.memory import MemoryStorage
        return MemoryStorage()
    raise ValueError("Unknown storage backend: {}".format(backend))


__all__ = ["StorageEngine", "StoredStudent", "build_storage"]
