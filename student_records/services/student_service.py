import logging
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from student_records.exceptions import DuplicateStudentNumberError, StudentNotFoundError
from student_records.models import Student
from student_records.models.student import utcnow
from student_records.schemas.student_schema import (
    ProgramCount,
    StatusCount,
    StudentPayload,
    StudentResponse,
    StudentSummary,
)

logger = logging.getLogger(__name__)

TOP_PROGRAMS_LIMIT = 5


def _apply_payload(student: Student, payload: StudentPayload) -> None:
    # full replace: every column except id is overwritten
    student.student_number = payload.student_number
    student.first_name = payload.first_name
    student.last_name = payload.last_name
    student.email = payload.email
    student.contact_number = payload.contact_number or None
    student.program = payload.program
    student.year_level = payload.year_level
    student.admission_date = payload.admission_date
    student.status = payload.status
    student.updated_at = utcnow()


def _number_taken(db: Session, student_number: str, exclude_id: Optional[int] = None) -> bool:
    statement = select(Student.id).where(Student.student_number == student_number)
    if exclude_id is not None:
        statement = statement.where(Student.id != exclude_id)
    return db.exec(statement).first() is not None


def _commit_or_conflict(db: Session, student: Student) -> None:
    """Commit a pending write, mapping a student number clash to a typed conflict.

    The unique constraint on ``student_number`` is the only source of truth;
    after an IntegrityError the row is looked up again so the mapping does
    not depend on any driver's error codes.
    """
    student_number = student.student_number
    student_id = student.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if _number_taken(db, student_number, exclude_id=student_id):
            raise DuplicateStudentNumberError(student_number)
        raise


def _matches(student: Student, query: str) -> bool:
    haystack = " ".join([student.student_number, student.first_name, student.last_name,
                         student.program, student.status.value])
    return query in haystack.lower()


def list_students(db: Session, search: Optional[str] = None) -> List[StudentResponse]:
    """All records, newest first, optionally narrowed by a case-insensitive substring.

    The query is matched against student number, names, program and status.
    """
    statement = select(Student).order_by(Student.updated_at.desc(), Student.id.desc())
    students = db.exec(statement).all()
    query = (search or "").strip().lower()
    if query:
        students = [student for student in students if _matches(student, query)]
    return [StudentResponse.from_student(student) for student in students]


def get_student(db: Session, student_id: int) -> StudentResponse:
    student = db.get(Student, student_id)
    if not student:
        raise StudentNotFoundError(student_id)
    return StudentResponse.from_student(student)


def create_student(db: Session, payload: StudentPayload) -> int:
    student = Student()
    _apply_payload(student, payload)
    db.add(student)
    _commit_or_conflict(db, student)
    db.refresh(student)
    logger.info(f"Created student {student.student_number} (id={student.id})")
    return student.id


def update_student(db: Session, student_id: int, payload: StudentPayload) -> None:
    student = db.get(Student, student_id)
    if not student:
        raise StudentNotFoundError(student_id)
    _apply_payload(student, payload)
    db.add(student)
    _commit_or_conflict(db, student)
    logger.info(f"Updated student id={student_id}")


def delete_student(db: Session, student_id: int) -> None:
    student = db.get(Student, student_id)
    if not student:
        raise StudentNotFoundError(student_id)
    db.delete(student)
    db.commit()
    logger.info(f"Deleted student id={student_id}")


def summarize_students(db: Session) -> StudentSummary:
    total = db.exec(select(func.count()).select_from(Student)).one()

    status_rows = db.exec(
        select(Student.status, func.count()).group_by(Student.status)
    ).all()

    program_count = func.count().label("count")
    program_rows = db.exec(
        select(Student.program, program_count)
        .group_by(Student.program)
        .order_by(program_count.desc(), Student.program)
        .limit(TOP_PROGRAMS_LIMIT)
    ).all()

    return StudentSummary(
        total=total or 0,
        status_breakdown=[StatusCount(status=status, count=count) for status, count in status_rows],
        top_programs=[ProgramCount(program=program, count=count) for program, count in program_rows],
    )


def find_profile(db: Session, username: Optional[str], email: Optional[str], full_name: str) -> Optional[StudentResponse]:
    """Find the student record linked to a signed-in account.

    Matches on student number or email against the account's username and
    email, then on "first last" or "last first" against the full name.
    """
    identifiers = {value.strip().lower() for value in (username, email) if value and value.strip()}
    name = (full_name or "").strip().lower()

    for student in db.exec(select(Student).order_by(Student.updated_at.desc(), Student.id.desc())):
        if student.student_number.lower() in identifiers or student.email.lower() in identifiers:
            return StudentResponse.from_student(student)
        if name and name in (
            f"{student.first_name} {student.last_name}".lower(),
            f"{student.last_name} {student.first_name}".lower(),
        ):
            return StudentResponse.from_student(student)
    return None
