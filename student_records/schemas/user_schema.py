from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from student_records.models import User, UserRole


class RegisterRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("fullname", "fullName", "full_name"))
    username: Optional[str] = None
    password: Optional[str] = None
    # the legacy registration form posts the role as "roleni"
    role: Optional[str] = Field(default=None, validation_alias=AliasChoices("role", "roleni"))


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class StudentLoginRequest(BaseModel):
    # the login form sends the school email as username and the student number as password
    email: Optional[str] = Field(default=None, validation_alias=AliasChoices("email", "username"))
    student_number: Optional[str] = Field(default=None, validation_alias=AliasChoices("studentNumber", "password"))


class GoogleLoginRequest(BaseModel):
    token: Optional[str] = None


class AuthenticatedIdentity(BaseModel):
    """Outcome of a successful login on any path."""
    # None for students signed in from their record alone
    id: Optional[int] = None
    full_name: str
    role: UserRole
    username: Optional[str] = None
    email: Optional[str] = None
    federated_id: Optional[str] = None
    student_id: Optional[int] = None

    @staticmethod
    def from_user(user: User) -> 'AuthenticatedIdentity':
        return AuthenticatedIdentity.model_validate(user.model_dump())

    @property
    def subject(self) -> str:
        return self.username or self.federated_id or str(self.id)


class LoginResponse(BaseModel):
    success: bool = True
    fullname: str
    role: UserRole
    username: Optional[str] = None
    message: str
    access_token: str
    token_type: str = "bearer"


class RegisterResponse(BaseModel):
    success: bool
    message: str


class SessionUser(BaseModel):
    """Claims carried by a verified session token."""
    id: Optional[int] = None
    sub: str
    fullname: str
    role: UserRole
    email: Optional[str] = None
    student_id: Optional[int] = None
