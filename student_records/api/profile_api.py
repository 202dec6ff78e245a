from fastapi import APIRouter, Depends
from sqlmodel import Session

from student_records.auth.auth_handler import get_current_user
from student_records.configs.database import get_db
from student_records.exceptions import ForbiddenError, StudentNotFoundError
from student_records.models import User, UserRole
from student_records.schemas.student_schema import StudentResponse
from student_records.schemas.user_schema import SessionUser
from student_records.services import student_service

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=StudentResponse)
def read_own_profile(current_user: SessionUser = Depends(get_current_user), db: Session = Depends(get_db)):
    if current_user.role != UserRole.student:
        raise ForbiddenError("Only student accounts have a student profile.")
    if current_user.student_id is not None:
        # signed in from the student record itself
        return student_service.get_student(db, current_user.student_id)
    account = db.get(User, current_user.id) if current_user.id is not None else None
    username = account.username if account else None
    email = account.email if account else current_user.email
    profile = student_service.find_profile(db, username, email, current_user.fullname)
    if not profile:
        raise StudentNotFoundError(message="We couldn't locate a profile for your account.")
    return profile
