from datetime import date, datetime, UTC
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class StudentStatus(str, Enum):
    enrolled = "enrolled"
    leave = "leave"
    graduated = "graduated"
    inactive = "inactive"


def utcnow() -> datetime:
    return datetime.now(UTC)


class Student(SQLModel, table=True):
    __tablename__ = "students"
    id: Optional[int] = Field(default=None, primary_key=True)
    student_number: str = Field(unique=True, index=True)
    first_name: str
    last_name: str
    email: str
    contact_number: Optional[str] = None
    program: str = Field(index=True)
    year_level: int
    admission_date: date
    status: StudentStatus = Field(default=StudentStatus.enrolled, index=True)
    updated_at: datetime = Field(default_factory=utcnow, index=True)
