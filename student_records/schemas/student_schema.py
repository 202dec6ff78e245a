from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from student_records.models import Student, StudentStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudentPayload(CamelModel):
    """Normalized student fields, as accepted by create and update."""
    student_number: str
    first_name: str
    last_name: str
    email: str
    contact_number: str = ""
    program: str
    year_level: int
    admission_date: date
    status: StudentStatus


class StudentResponse(StudentPayload):
    id: int
    updated_at: datetime

    @staticmethod
    def from_student(student: Student) -> 'StudentResponse':
        data = student.model_dump()
        data["contact_number"] = student.contact_number or ""
        return StudentResponse.model_validate(data)


class StatusCount(CamelModel):
    status: StudentStatus
    count: int


class ProgramCount(CamelModel):
    program: str
    count: int


class StudentSummary(CamelModel):
    total: int
    status_breakdown: List[StatusCount]
    top_programs: List[ProgramCount]


class ActionResponse(CamelModel):
    success: bool
    message: str
    id: Optional[int] = None
