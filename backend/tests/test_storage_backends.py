"""Behaviour every storage engine must share."""

import asyncio
import json

import mongomock
import pytest

from registrar.errors import DuplicateKey, StorageFailure
from registrar.storage.document import MongoStorage
from registrar.storage.flatfile import JsonFileStorage


@pytest.mark.asyncio
async def test_insert_assigns_id_and_timestamp(storage):
    student = await storage.insert_if_absent("Asha", "555-0100", "CT100")
    assert student.id is not None
    assert student.timestamp is not None
    assert student.admission_number == "CT100"
    assert await storage.contains("CT100")
    assert not await storage.contains("CT101")


@pytest.mark.asyncio
async def test_duplicate_admission_number_rejected(storage):
    await storage.insert_if_absent("Asha", "555-0100", "CT100")
    with pytest.raises(DuplicateKey):
        await storage.insert_if_absent("Ravi", "555-0101", "CT100")
    assert len(await storage.list_all()) == 1


@pytest.mark.asyncio
async def test_list_all_newest_first(storage):
    codes = ["AB100", "AB101", "AB102", "AB103"]
    for i, code in enumerate(codes):
        await storage.insert_if_absent(f"Student {i}", f"555-010{i}", code)

    students = await storage.list_all()
    assert [s.admission_number for s in students] == list(reversed(codes))
    timestamps = [s.timestamp for s in students]
    assert timestamps == sorted(timestamps, reverse=True)
    assert len({s.id for s in students}) == len(codes)


@pytest.mark.asyncio
async def test_list_all_empty(storage):
    assert await storage.list_all() == []


@pytest.mark.asyncio
async def test_concurrent_same_code_single_winner(storage):
    results = await asyncio.gather(
        *[storage.insert_if_absent(f"Racer {i}", "555-0199", "RC500") for i in range(8)],
        return_exceptions=True,
    )
    winners = [r for r in results if not isinstance(r, BaseException)]
    losers = [r for r in results if isinstance(r, BaseException)]
    assert len(winners) == 1
    assert all(isinstance(e, DuplicateKey) for e in losers)
    assert len(await storage.list_all()) == 1


@pytest.mark.asyncio
async def test_jsonfile_numbers_ids_sequentially(tmp_path):
    engine = JsonFileStorage(str(tmp_path / "students.json"))
    await engine.startup()
    first = await engine.insert_if_absent("Asha", "555-0100", "CT100")
    second = await engine.insert_if_absent("Ravi", "555-0101", "CT101")
    assert (first.id, second.id) == (1, 2)

    with open(tmp_path / "students.json", encoding="utf-8") as f:
        on_disk = json.load(f)
    assert [item["admission_number"] for item in on_disk] == ["CT100", "CT101"]


@pytest.mark.asyncio
async def test_jsonfile_survives_reopen(tmp_path):
    path = str(tmp_path / "students.json")
    engine = JsonFileStorage(path)
    await engine.startup()
    await engine.insert_if_absent("Asha", "555-0100", "CT100")

    reopened = JsonFileStorage(path)
    await reopened.startup()
    with pytest.raises(DuplicateKey):
        await reopened.insert_if_absent("Asha", "555-0100", "CT100")
    assert [s.admission_number for s in await reopened.list_all()] == ["CT100"]


@pytest.mark.asyncio
async def test_jsonfile_corruption_is_storage_failure(tmp_path):
    path = tmp_path / "students.json"
    engine = JsonFileStorage(str(path))
    await engine.startup()
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageFailure):
        await engine.insert_if_absent("Asha", "555-0100", "CT100")
    with pytest.raises(StorageFailure):
        await engine.list_all()
    # Left untouched for an operator to inspect
    assert path.read_text(encoding="utf-8") == "{not json"


@pytest.mark.asyncio
async def test_jsonfile_refuses_corrupt_file_at_startup(tmp_path):
    path = tmp_path / "students.json"
    path.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    with pytest.raises(StorageFailure):
        await JsonFileStorage(str(path)).startup()


@pytest.mark.asyncio
async def test_jsonfile_engines_sharing_a_file_single_winner(tmp_path):
    # Separate engines have separate thread locks; only the file lock serializes them
    path = str(tmp_path / "students.json")
    engines = [JsonFileStorage(path) for _ in range(4)]
    await engines[0].startup()

    results = await asyncio.gather(
        *[engine.insert_if_absent(f"Racer {i}-{j}", "555-0199", "CT100")
          for i, engine in enumerate(engines) for j in range(3)],
        return_exceptions=True,
    )
    winners = [r for r in results if not isinstance(r, BaseException)]
    assert len(winners) == 1
    assert all(isinstance(r, DuplicateKey) for r in results if isinstance(r, BaseException))

    with open(path, encoding="utf-8") as f:
        assert [item["admission_number"] for item in json.load(f)] == ["CT100"]


@pytest.mark.asyncio
async def test_mongo_unique_index_catches_writer_that_skipped_the_check(monkeypatch):
    collection = mongomock.MongoClient()["registrar"]["students"]
    first = MongoStorage(collection=collection)
    second = MongoStorage(collection=collection)
    await first.startup()
    await second.startup()

    await first.insert_if_absent("Asha", "555-0100", "CT100")

    # The other writer's lookup ran before the first insert landed
    monkeypatch.setattr(collection, "find_one", lambda *args, **kwargs: None)
    with pytest.raises(DuplicateKey):
        await second.insert_if_absent("Ravi", "555-0101", "CT100")

    monkeypatch.undo()
    assert [s.name for s in await first.list_all()] == ["Asha"]
