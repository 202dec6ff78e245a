import logging
from datetime import datetime, timedelta, UTC
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func
from sqlmodel import Session, select

from student_records.configs import settings
from student_records.exceptions import AuthRejectedError, ForbiddenError, NotAuthenticatedError, ValidationError
from student_records.models import Student, User, UserRole
from student_records.schemas.user_schema import AuthenticatedIdentity, SessionUser

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
STAFF_ROLES = {UserRole.admin, UserRole.registrar}

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)

def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password):
    return pwd_context.hash(password)

def authenticate_user(db_session: Session, username: Optional[str], password: Optional[str]) -> AuthenticatedIdentity:
    if not username or not password:
        raise ValidationError("Username and password are required.")
    statement = select(User).where(User.username == username)
    result = db_session.exec(statement).first()
    if not result or not verify_password(password, result.password):
        logger.info(f"Rejected login for username {username!r}")
        raise AuthRejectedError()
    return AuthenticatedIdentity.from_user(result)

def authenticate_student(db_session: Session, email: Optional[str], student_number: Optional[str]) -> AuthenticatedIdentity:
    """Sign a student in from their record: school email plus student number, case-insensitive."""
    email = (email or "").strip().lower()
    student_number = (student_number or "").strip().lower()
    if not email or not student_number:
        raise ValidationError("Email and student number are required.")
    statement = select(Student).where(func.lower(Student.email) == email,
                                      func.lower(Student.student_number) == student_number)
    student = db_session.exec(statement).first()
    if not student:
        logger.info(f"Rejected student login for {email!r}")
        raise AuthRejectedError("Invalid email or student number.")
    return AuthenticatedIdentity(
        full_name=f"{student.first_name} {student.last_name}",
        role=UserRole.student,
        username=student.email,
        email=student.email,
        student_id=student.id,
    )

def create_access_token(identity: AuthenticatedIdentity, expires_delta: timedelta | None = None) -> str:
    to_encode = {
        "sub": identity.subject,
        "id": identity.id,
        "fullname": identity.full_name,
        "email": identity.email,
        "role": identity.role.value,
        "student_id": identity.student_id,
    }
    expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_ACCESS_SECRET, algorithm=ALGORITHM)

def decode_access_token(token: str) -> SessionUser:
    try:
        payload = jwt.decode(token, settings.JWT_ACCESS_SECRET, algorithms=[ALGORITHM])
        return SessionUser.model_validate(payload)
    except (JWTError, ValueError):
        raise NotAuthenticatedError()

def get_optional_user(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[SessionUser]:
    if not token:
        return None
    return decode_access_token(token)

def get_current_user(user: Optional[SessionUser] = Depends(get_optional_user)) -> SessionUser:
    if user is None:
        raise NotAuthenticatedError()
    return user

def require_staff(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[SessionUser]:
    """Gate the student endpoints on a staff token when STUDENTS_REQUIRE_AUTH is set."""
    if not settings.STUDENTS_REQUIRE_AUTH:
        return None
    if not token:
        raise NotAuthenticatedError()
    user = decode_access_token(token)
    if user.role not in STAFF_ROLES:
        raise ForbiddenError()
    return user
