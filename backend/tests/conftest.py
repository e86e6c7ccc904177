import mongomock
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from registrar.config import Settings
from registrar.main import create_app
from registrar.storage.document import MongoStorage
from registrar.storage.flatfile import JsonFileStorage
from registrar.storage.memory import MemoryStorage
from registrar.storage.sql import SqlStorage
from registrar.storage.sql_async import AsyncSqlStorage

BACKENDS = ["sqlite", "sqlite_async", "mongo", "jsonfile", "memory"]

ADMIN_KEY = "test-admin-key"


def make_storage(backend: str, tmp_path):
    if backend == "sqlite":
        return SqlStorage(f"sqlite:///{tmp_path / 'students.db'}")
    if backend == "sqlite_async":
        return AsyncSqlStorage(f"sqlite+aiosqlite:///{tmp_path / 'students.db'}")
    if backend == "mongo":
        return MongoStorage(collection=mongomock.MongoClient()["registrar"]["students"])
    if backend == "jsonfile":
        return JsonFileStorage(str(tmp_path / "students.json"))
    if backend == "memory":
        return MemoryStorage()
    raise ValueError(backend)


@pytest_asyncio.fixture(params=BACKENDS)
async def storage(request, tmp_path):
    """A started storage engine, once per backend."""
    engine = make_storage(request.param, tmp_path)
    await engine.startup()
    try:
        yield engine
    finally:
        await engine.shutdown()


@pytest.fixture(params=BACKENDS)
def client(request, tmp_path):
    """TestClient over the full app, once per backend."""
    settings = Settings(storage_backend=request.param, admin_key=ADMIN_KEY)
    app = create_app(settings, storage=make_storage(request.param, tmp_path))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sqlite_client(tmp_path):
    settings = Settings(storage_backend="sqlite", admin_key=ADMIN_KEY,
                        database_url=f"sqlite:///{tmp_path / 'students.db'}")
    with TestClient(create_app(settings)) as c:
        yield c
