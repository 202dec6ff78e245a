from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

class UserRole(str, Enum):
    admin = "admin"
    registrar = "registrar"
    student = "student"

class LoginType(str, Enum):
    userpass = "userpass"
    google = "google"


class User(SQLModel, table=True):
    """User model represents an account that can sign in."""
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    full_name: str
    # NULL for federated-only accounts, so uniqueness only binds real usernames
    username: Optional[str] = Field(default=None, unique=True)
    password: Optional[str] = Field(default=None, exclude=True)  # bcrypt hash
    role: UserRole = Field(default=UserRole.student)  # admin, registrar, student
    email: Optional[str] = None
    federated_id: Optional[str] = Field(default=None, unique=True)
    login_type: LoginType = Field(default=LoginType.userpass)
