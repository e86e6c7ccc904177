"""
Registration Service - validated, duplicate-free intake.

Pipeline for each submission:
1. Validate fields and normalize the admission number (no storage access)
2. insert_if_absent on the configured storage engine
3. Translate the result into one of four outcomes:
   Accepted, RejectedInvalid, RejectedDuplicate, ServiceUnavailable

If an insert fails with StorageFailure, the service checks whether the
admission number is now stored. A concurrent registration that won the
race for the same code is reported as a duplicate instead of a server
error. No retries are made.

Every storage call is bounded by the configured timeout; expiry counts
as StorageFailure.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import List, Union

from registrar.errors import DuplicateKey, InvalidInput, StorageFailure
from registrar.logging_config import get_logger, log_with_context
from registrar.services.validation import validate
from registrar.storage.base import StorageEngine, StoredStudent, StudentId

logger = get_logger("registration")


@dataclass(frozen=True)
class Accepted:
    id: StudentId
    timestamp: datetime


@dataclass(frozen=True)
class RejectedInvalid:
    reason: str


@dataclass(frozen=True)
class RejectedDuplicate:
    pass


@dataclass(frozen=True)
class ServiceUnavailable:
    pass


RegistrationOutcome = Union[Accepted, RejectedInvalid, RejectedDuplicate, ServiceUnavailable]


class RegistrationService:
    """Stateless orchestrator over a single storage engine."""

    def __init__(self, storage: StorageEngine, timeout_seconds: float = 5.0):
        self.storage = storage
        self.timeout_seconds = timeout_seconds

    async def _bounded(self, operation: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise StorageFailure("{} timed out after {}s".format(operation, self.timeout_seconds)) from e

    async def register(self, name: str, phone: str, admission_number: str) -> RegistrationOutcome:
        try:
            code = validate(name, phone, admission_number)
        except InvalidInput as e:
            log_with_context(logger, "INFO", "Registration rejected: {}".format(e.reason),
                             context={"admission_number": admission_number})
            return RejectedInvalid(e.reason)

        context = {"admission_number": code, "backend": self.storage.name}
        try:
            student = await self._bounded(
                "insert", self.storage.insert_if_absent(name, phone, code))
        except DuplicateKey:
            log_with_context(logger, "INFO", "Registration rejected: duplicate admission number",
                             context=context)
            return RejectedDuplicate()
        except StorageFailure as e:
            return await self._after_failed_insert(code, e, context)

        log_with_context(logger, "INFO", "Registered: {} ({})".format(name, code),
                         context={**context, "student_id": student.id})
        return Accepted(id=student.id, timestamp=student.timestamp)

    async def _after_failed_insert(self, code: str, error: StorageFailure,
                                   context: dict) -> RegistrationOutcome:
        try:
            stored = await self._bounded("lookup", self.storage.contains(code))
        except StorageFailure as lookup_error:
            log_with_context(logger, "ERROR", "Registration failed: storage unavailable",
                             context=context,
                             extra_data={"error": str(error), "lookup_error": str(lookup_error)},
                             exc_info=lookup_error)
            return ServiceUnavailable()

        if stored:
            log_with_context(logger, "INFO",
                             "Registration rejected: duplicate admission number (after failed insert)",
                             context=context, extra_data={"error": str(error)})
            return RejectedDuplicate()

        log_with_context(logger, "ERROR", "Registration failed: storage error",
                         context=context, extra_data={"error": str(error)},
                         exc_info=error)
        return ServiceUnavailable()

    async def list_students(self) -> List[StoredStudent]:
        """All students, newest first. Raises StorageFailure."""
        try:
            return await self._bounded("list", self.storage.list_all())
        except StorageFailure as e:
            log_with_context(logger, "ERROR", "Listing students failed",
                             context={"backend": self.storage.name}, extra_data={"error": str(e)},
                             exc_info=e)
            raise
