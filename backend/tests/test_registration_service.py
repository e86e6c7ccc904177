import asyncio
import logging
from datetime import datetime

import pytest

from registrar.errors import StorageFailure
from registrar.services.registration import (
    Accepted, RegistrationService, RejectedDuplicate, RejectedInvalid, ServiceUnavailable
)
from registrar.services.validation import BAD_FORMAT_MESSAGE, MISSING_FIELDS_MESSAGE
from registrar.storage.base import StorageEngine, StoredStudent
from registrar.storage.memory import MemoryStorage


class RecordingStorage(MemoryStorage):
    """Memory storage that counts calls, to prove validation short-circuits."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def insert_if_absent(self, name, phone, admission_number):
        self.calls += 1
        return await super().insert_if_absent(name, phone, admission_number)


class BrokenStorage(StorageEngine):
    name = "broken"

    def __init__(self, stored_codes=(), lookup_fails=False):
        self.stored_codes = set(stored_codes)
        self.lookup_fails = lookup_fails

    async def insert_if_absent(self, name, phone, admission_number):
        raise StorageFailure("disk on fire")

    async def list_all(self):
        raise StorageFailure("disk on fire")

    async def contains(self, admission_number):
        if self.lookup_fails:
            raise StorageFailure("still on fire")
        return admission_number in self.stored_codes


class SlowStorage(StorageEngine):
    name = "slow"

    async def insert_if_absent(self, name, phone, admission_number):
        await asyncio.sleep(5)
        return StoredStudent(1, name, phone, admission_number, datetime(2026, 1, 1))

    async def list_all(self):
        await asyncio.sleep(5)
        return []

    async def contains(self, admission_number):
        return False


@pytest.mark.asyncio
async def test_register_then_duplicate_any_case(storage):
    service = RegistrationService(storage)

    first = await service.register("Asha", "555-0100", "ct100")
    assert isinstance(first, Accepted)

    second = await service.register("Asha", "555-0100", "CT100")
    assert isinstance(second, RejectedDuplicate)

    third = await service.register("Someone Else", "555-0199", "cT100")
    assert isinstance(third, RejectedDuplicate)

    students = await service.list_students()
    assert [s.admission_number for s in students] == ["CT100"]


@pytest.mark.asyncio
async def test_invalid_input_never_touches_storage():
    storage = RecordingStorage()
    service = RegistrationService(storage)

    outcome = await service.register("Asha", "555-0100", "C100")
    assert outcome == RejectedInvalid(BAD_FORMAT_MESSAGE)

    outcome = await service.register("", "555-0100", "CT100")
    assert outcome == RejectedInvalid(MISSING_FIELDS_MESSAGE)

    assert storage.calls == 0
    assert await storage.list_all() == []


@pytest.mark.asyncio
async def test_n_registrations_listed_newest_first(storage):
    service = RegistrationService(storage)
    codes = ["XY001", "XY002", "XY003"]
    for code in codes:
        assert isinstance(await service.register("Name", "Phone", code.lower()), Accepted)

    students = await service.list_students()
    assert len(students) == 3
    assert [s.admission_number for s in students] == ["XY003", "XY002", "XY001"]


@pytest.mark.asyncio
async def test_concurrent_registrations_single_accept(storage):
    service = RegistrationService(storage)
    outcomes = await asyncio.gather(
        service.register("A", "1", "zz999"),
        service.register("B", "2", "ZZ999"),
        service.register("C", "3", "Zz999"),
    )
    assert sum(isinstance(o, Accepted) for o in outcomes) == 1
    assert sum(isinstance(o, RejectedDuplicate) for o in outcomes) == 2


@pytest.mark.asyncio
async def test_storage_failure_is_service_unavailable():
    service = RegistrationService(BrokenStorage())
    assert isinstance(await service.register("Asha", "555-0100", "CT100"), ServiceUnavailable)


@pytest.mark.asyncio
async def test_failed_insert_for_stored_code_is_duplicate():
    service = RegistrationService(BrokenStorage(stored_codes={"CT100"}))
    assert isinstance(await service.register("Asha", "555-0100", "ct100"), RejectedDuplicate)


@pytest.mark.asyncio
async def test_failed_insert_and_failed_lookup_is_service_unavailable():
    service = RegistrationService(BrokenStorage(stored_codes={"CT100"}, lookup_fails=True))
    assert isinstance(await service.register("Asha", "555-0100", "CT100"), ServiceUnavailable)


@pytest.mark.asyncio
async def test_slow_storage_times_out():
    service = RegistrationService(SlowStorage(), timeout_seconds=0.05)
    assert isinstance(await service.register("Asha", "555-0100", "CT100"), ServiceUnavailable)
    with pytest.raises(StorageFailure):
        await service.list_students()


@pytest.mark.asyncio
async def test_list_failure_propagates():
    service = RegistrationService(BrokenStorage())
    with pytest.raises(StorageFailure):
        await service.list_students()


@pytest.mark.asyncio
async def test_storage_failure_log_carries_traceback(caplog):
    service = RegistrationService(BrokenStorage())
    with caplog.at_level(logging.ERROR, logger="registrar.registration"):
        await service.register("Asha", "555-0100", "CT100")
        with pytest.raises(StorageFailure):
            await service.list_students()

    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 2
    for record in errors:
        assert record.exc_info is not None
        assert isinstance(record.exc_info[1], StorageFailure)
