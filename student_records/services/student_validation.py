"""Validation and normalization of student request bodies.

``validate_student_payload`` is shared by the create and update paths. It
has no side effects: it either returns a normalized ``StudentPayload`` or
raises ``ValidationError`` describing the first problem found.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from student_records.exceptions import ValidationError
from student_records.models import StudentStatus
from student_records.schemas.student_schema import StudentPayload

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_YEAR_LEVEL = 1
MAX_YEAR_LEVEL = 6

REQUIRED_MESSAGE = "All fields are required."
EMAIL_MESSAGE = "Please provide a valid school email address."
YEAR_LEVEL_MESSAGE = f"Year level must be a number between {MIN_YEAR_LEVEL} and {MAX_YEAR_LEVEL}."
ADMISSION_DATE_MESSAGE = "Admission date is invalid."


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, StudentStatus):
        return value.value
    return str(value).strip()


def parse_year_level(value: Any) -> Optional[int]:
    """Return the year level as an int, or None if it is not an integer."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = _text(value)
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def _utc_date(moment: datetime) -> date:
    # offset timestamps are dated by their UTC calendar day
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def parse_admission_date(value: Any) -> Optional[date]:
    """Parse an ISO calendar date or timestamp; None when it is not a real date."""
    if isinstance(value, datetime):
        return _utc_date(value)
    if isinstance(value, date):
        return value
    text = _text(value)
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # accepts full timestamps such as 2024-06-01T08:00:00Z
        return _utc_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def normalize_status(value: str) -> StudentStatus:
    try:
        return StudentStatus(value)
    except ValueError:
        return StudentStatus.enrolled


def validate_student_payload(raw: Mapping[str, Any]) -> StudentPayload:
    student_number = _text(raw.get("studentNumber"))
    first_name = _text(raw.get("firstName"))
    last_name = _text(raw.get("lastName"))
    email = _text(raw.get("email")).lower()
    contact_number = _text(raw.get("contactNumber"))
    program = _text(raw.get("program"))
    admission_date = _text(raw.get("admissionDate"))
    status = _text(raw.get("status")).lower()

    if not all([student_number, first_name, last_name, program, status, email, admission_date]):
        raise ValidationError(REQUIRED_MESSAGE)

    if not EMAIL_PATTERN.match(email):
        raise ValidationError(EMAIL_MESSAGE)

    year_level = parse_year_level(raw.get("yearLevel"))
    if year_level is None or not MIN_YEAR_LEVEL <= year_level <= MAX_YEAR_LEVEL:
        raise ValidationError(YEAR_LEVEL_MESSAGE)

    parsed_admission = parse_admission_date(raw.get("admissionDate"))
    if parsed_admission is None:
        raise ValidationError(ADMISSION_DATE_MESSAGE)

    return StudentPayload(
        student_number=student_number,
        first_name=first_name,
        last_name=last_name,
        email=email,
        contact_number=contact_number,
        program=program,
        year_level=year_level,
        admission_date=parsed_admission,
        status=normalize_status(status),
    )
