"""
Relational storage on a synchronous SQLAlchemy engine (pattern A).

The UNIQUE constraint on students.admission_number decides races: the
losing INSERT raises IntegrityError, reported as DuplicateKey. Blocking
session work runs in the FastAPI thread pool.
"""

from typing import List

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from registrar.database import Base, make_engine, make_session_factory
from registrar.errors import DuplicateKey, StorageFailure
from registrar.logging_config import get_logger, log_with_context
from registrar.models.student import Student
from registrar.storage.base import StorageEngine, StoredStudent

db_logger = get_logger("db")


def to_stored(student: Student) -> StoredStudent:
    return StoredStudent(
        id=student.id,
        name=student.name,
        phone=student.phone,
        admission_number=student.admission_number,
        timestamp=student.timestamp,
    )


class SqlStorage(StorageEngine):
    name = "sqlite"
    atomic_uniqueness = True

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = make_engine(database_url)
        self.SessionLocal = make_session_factory(self.engine)

    async def startup(self) -> None:
        try:
            await run_in_threadpool(Base.metadata.create_all, bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageFailure("Could not create tables: {}".format(e)) from e
        log_with_context(db_logger, "INFO", "Relational storage ready",
                         context={"backend": self.name})

    async def shutdown(self) -> None:
        await run_in_threadpool(self.engine.dispose)

    def _insert(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        db = self.SessionLocal()
        try:
            student = Student(name=name, phone=phone, admission_number=admission_number)
            db.add(student)
            db.commit()
            db.refresh(student)
            log_with_context(db_logger, "DEBUG", "Inserted student {}".format(student.id),
                             context={"student_id": student.id, "admission_number": admission_number})
            return to_stored(student)
        except IntegrityError as e:
            db.rollback()
            raise DuplicateKey(admission_number) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StorageFailure("Insert failed: {}".format(e)) from e
        finally:
            db.close()

    def _list(self) -> List[StoredStudent]:
        db = self.SessionLocal()
        try:
            rows = db.execute(
                select(Student).order_by(Student.timestamp.desc(), Student.id.desc())
            ).scalars().all()
            return [to_stored(s) for s in rows]
        except SQLAlchemyError as e:
            raise StorageFailure("Listing failed: {}".format(e)) from e
        finally:
            db.close()

    def _contains(self, admission_number: str) -> bool:
        db = self.SessionLocal()
        try:
            found = db.execute(
                select(Student.id).where(Student.admission_number == admission_number)
            ).first()
            return found is not None
        except SQLAlchemyError as e:
            raise StorageFailure("Lookup failed: {}".format(e)) from e
        finally:
            db.close()

    async def insert_if_absent(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        return await run_in_threadpool(self._insert, name, phone, admission_number)

    async def list_all(self) -> List[StoredStudent]:
        return await run_in_threadpool(self._list)

    async def contains(self, admission_number: str) -> bool:
        return await run_in_threadpool(self._contains, admission_number)
