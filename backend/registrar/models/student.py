"""
Student model - one accepted registration.

Students are keyed by an autoincrement integer. The admission number
carries a UNIQUE constraint, which is what makes insert-if-absent atomic
on the relational backends.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Integer, Text, DateTime, UniqueConstraint
from registrar.database import Base


def utcnow() -> datetime:
    # Stored naive (UTC) for SQLite compatibility
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Rows are inserted once and never updated or deleted.
    """
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("admission_number", name="uq_students_admission_number"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True,
                doc="Backend-assigned student identifier")
    name = Column(Text, nullable=False,
                  doc="Student's name as submitted")
    phone = Column(Text, nullable=False,
                   doc="Phone number as submitted (no format validation)")
    admission_number = Column(Text, nullable=False,
                              doc="Uppercase admission code, e.g. CT100")
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True,
                       doc="When the registration was accepted")

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', admission_number='{self.admission_number}')>"
