"""Screen selection for the browser client.

The session is an explicit ``ViewSession`` object created from a login
response and cleared on logout. When the server resolves a view, the
session is rebuilt from a verified token so the role cannot be forged by
the client.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional

from student_records.models import UserRole
from student_records.schemas.user_schema import SessionUser

LOGIN_PATH = "/"
DASHBOARD_PATH = "/dashboard"
STUDENT_PATH = "/student"
GUEST_PATH = "/guestdashboard"
REGISTER_PATH = "/register"


@dataclass(frozen=True)
class Screen:
    name: str
    path: str
    # None means any signed-in user may see it
    allowed_roles: Optional[FrozenSet[str]] = None
    requires_session: bool = True


SCREENS: Dict[str, Screen] = {
    LOGIN_PATH: Screen("login", LOGIN_PATH, requires_session=False),
    DASHBOARD_PATH: Screen("dashboard", DASHBOARD_PATH, frozenset({UserRole.admin.value, UserRole.registrar.value})),
    STUDENT_PATH: Screen("student", STUDENT_PATH, frozenset({UserRole.student.value})),
    GUEST_PATH: Screen("guest", GUEST_PATH),
    REGISTER_PATH: Screen("register", REGISTER_PATH, requires_session=False),
}


@dataclass
class ViewSession:
    full_name: str = ""
    role: str = ""
    username: str = ""
    access_token: str = ""
    # shown on the guest dashboard only, never sent back to the server
    credential_snapshot: Dict[str, Any] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return bool(self.full_name)

    @classmethod
    def from_login(cls, response: Mapping[str, Any], username: str = "") -> 'ViewSession':
        if not response.get("success"):
            return cls()
        return cls(
            full_name=response.get("fullname") or "",
            role=(response.get("role") or "").lower(),
            username=response.get("username") or username,
            access_token=response.get("access_token") or "",
        )

    @classmethod
    def from_session_user(cls, user: Optional[SessionUser], token: str = "") -> 'ViewSession':
        if user is None:
            return cls()
        return cls(full_name=user.fullname, role=user.role.value, username=user.sub, access_token=token)

    def clear(self) -> None:
        self.full_name = ""
        self.role = ""
        self.username = ""
        self.access_token = ""
        self.credential_snapshot = {}


def default_destination(role: str) -> str:
    role = (role or "").lower()
    if role in (UserRole.admin.value, UserRole.registrar.value):
        return DASHBOARD_PATH
    if role == UserRole.student.value:
        return STUDENT_PATH
    return GUEST_PATH


def resolve_view(path: str, session: ViewSession) -> Screen:
    """Return the screen to render for ``path`` under ``session``."""
    path = "/" + (path or "").strip().strip("/")
    screen = SCREENS.get(path)
    if screen is None:
        screen = SCREENS[LOGIN_PATH]

    if screen.path == LOGIN_PATH:
        if session.active:
            return SCREENS[default_destination(session.role)]
        return screen

    if screen.path == REGISTER_PATH:
        # registration is an admin tool
        if session.role != UserRole.admin.value:
            return resolve_view(LOGIN_PATH, session)
        return screen

    if screen.requires_session and not session.active:
        return SCREENS[LOGIN_PATH]

    if screen.allowed_roles and session.role not in screen.allowed_roles:
        return SCREENS[GUEST_PATH]

    return screen
