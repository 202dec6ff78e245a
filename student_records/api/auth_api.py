from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from student_records.auth.auth_handler import (
    authenticate_student,
    authenticate_user,
    create_access_token,
    get_current_user,
    get_optional_user,
)
from student_records.auth.google_auth_handler import authenticate_google_user
from student_records.configs.database import get_db
from student_records.schemas.user_schema import (
    AuthenticatedIdentity,
    GoogleLoginRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    SessionUser,
    StudentLoginRequest,
)
from student_records.services import user_service

router = APIRouter(tags=["Auth"])


def _login_response(identity: AuthenticatedIdentity, message: str) -> LoginResponse:
    return LoginResponse(
        fullname=identity.full_name,
        role=identity.role,
        username=identity.username,
        message=message,
        access_token=create_access_token(identity),
    )


@router.post("/register", response_model=RegisterResponse)
def register(req: RegisterRequest, db: Session = Depends(get_db),
             current_user: Optional[SessionUser] = Depends(get_optional_user)):
    user_service.register_user(req, db, requested_by=current_user)
    return RegisterResponse(success=True, message="Registration successful!")


@router.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, db: Session = Depends(get_db)):
    identity = authenticate_user(db, req.username, req.password)
    return _login_response(identity, "Login successful!")


@router.post("/student-login", response_model=LoginResponse)
def student_login(req: StudentLoginRequest, db: Session = Depends(get_db)):
    identity = authenticate_student(db, req.email, req.student_number)
    return _login_response(identity, "Login successful!")


@router.post("/google-login", response_model=LoginResponse)
async def google_login(req: GoogleLoginRequest, db: Session = Depends(get_db)):
    identity = await authenticate_google_user(db, req.token)
    return _login_response(identity, "Google login successful!")


@router.get("/session", response_model=SessionUser)
def read_session(current_user: SessionUser = Depends(get_current_user)):
    return current_user
