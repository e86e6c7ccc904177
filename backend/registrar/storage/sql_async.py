"""
Relational storage on an asyncio SQLAlchemy engine (pattern A).

Same table and the same UNIQUE constraint as the synchronous backend,
driven through aiosqlite so no thread pool is involved.
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from registrar.database import Base, make_async_engine, make_async_session_factory
from registrar.errors import DuplicateKey, StorageFailure
from registrar.logging_config import get_logger, log_with_context
from registrar.models.student import Student
from registrar.storage.base import StorageEngine, StoredStudent
from registrar.storage.sql import to_stored

db_logger = get_logger("db")


class AsyncSqlStorage(StorageEngine):
    name = "sqlite_async"
    atomic_uniqueness = True

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = make_async_engine(database_url)
        self.SessionLocal = make_async_session_factory(self.engine)

    async def startup(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise StorageFailure("Could not create tables: {}".format(e)) from e
        log_with_context(db_logger, "INFO", "Async relational storage ready",
                         context={"backend": self.name})

    async def shutdown(self) -> None:
        await self.engine.dispose()

    async def insert_if_absent(self, name: str, phone: str, admission_number: str) -> StoredStudent:
        async with self.SessionLocal() as db:
            try:
                student = Student(name=name, phone=phone, admission_number=admission_number)
                db.add(student)
                await db.commit()
                await db.refresh(student)
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateKey(admission_number) from e
            except SQLAlchemyError as e:
                await db.rollback()
                raise StorageFailure("Insert failed: {}".format(e)) from e
            log_with_context(db_logger, "DEBUG", "Inserted student {}".format(student.id),
                             context={"student_id": student.id, "admission_number": admission_number})
            return to_stored(student)

    async def list_all(self) -> List[StoredStudent]:
        async with self.SessionLocal() as db:
            try:
                result = await db.execute(
                    select(Student).order_by(Student.timestamp.desc(), Student.id.desc())
                )
            except SQLAlchemyError as e:
                raise StorageFailure("Listing failed: {}".format(e)) from e
            return [to_stored(s) for s in result.scalars().all()]

    async def contains(self, admission_number: str) -> bool:
        async with self.SessionLocal() as db:
            try:
                result = await db.execute(
                    select(Student.id).where(Student.admission_number == admission_number)
                )
            except SQLAlchemyError as e:
                raise StorageFailure("Lookup failed: {}".format(e)) from e
            return result.first() is not None
