import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from student_records.auth.auth_handler import STAFF_ROLES, get_password_hash
from student_records.configs import settings
from student_records.exceptions import ForbiddenError, UsernameTakenError, ValidationError
from student_records.models import User, UserRole
from student_records.models.user import LoginType
from student_records.schemas.user_schema import RegisterRequest, SessionUser

logger = logging.getLogger(__name__)


def normalize_role(role: Optional[str]) -> UserRole:
    """Whitelist a requested role; anything unknown becomes student."""
    try:
        return UserRole((role or "").strip().lower())
    except ValueError:
        return UserRole.student


def find_by_username(username: str, db: Session) -> Optional[User]:
    statement = select(User).where(User.username == username)
    return db.exec(statement).first()


def find_by_federated_id(federated_id: str, db: Session) -> Optional[User]:
    statement = select(User).where(User.federated_id == federated_id)
    return db.exec(statement).first()


def insert_manual(db: Session, full_name: str, username: str, password_hash: str, role: Optional[str] = None) -> User:
    user = User(full_name=full_name, username=username, password=password_hash,
                role=normalize_role(role), login_type=LoginType.userpass)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # another request claimed the username between check and insert
        if find_by_username(username, db):
            raise UsernameTakenError()
        raise
    db.refresh(user)
    logger.info(f"Created {user.role.value} account {username}")
    return user


def insert_federated(db: Session, full_name: str, email: Optional[str], federated_id: str) -> User:
    user = User(full_name=full_name, email=email or None, federated_id=federated_id,
                role=UserRole.student, login_type=LoginType.google)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_by_federated_id(federated_id, db)
        if existing:
            logger.info(f"Federated account id={existing.id} was provisioned concurrently")
            return existing
        raise
    db.refresh(user)
    logger.info(f"Provisioned federated account id={user.id}")
    return user


def register_user(req: RegisterRequest, db: Session, requested_by: Optional[SessionUser] = None) -> User:
    """Create a username/password account.

    Anyone may register a student account. Staff roles are only granted
    when the request carries an admin session.
    """
    full_name = (req.full_name or "").strip()
    username = (req.username or "").strip()
    if not full_name or not username or not req.password:
        raise ValidationError("All fields are required.")

    role = normalize_role(req.role)
    if role in STAFF_ROLES and (requested_by is None or requested_by.role != UserRole.admin):
        logger.warning(f"Refused {role.value} registration for {username!r} without an admin session")
        raise ForbiddenError("Only an administrator can create staff accounts.")

    if find_by_username(username, db):
        raise UsernameTakenError()

    return insert_manual(db, full_name, username, get_password_hash(req.password), role.value)


def bootstrap_admin(db: Session) -> Optional[User]:
    """Create the configured first admin when the store has no admin yet."""
    username = settings.INITIAL_ADMIN_USERNAME.strip()
    if not username or not settings.INITIAL_ADMIN_PASSWORD:
        return None
    if db.exec(select(User).where(User.role == UserRole.admin)).first():
        return None
    if find_by_username(username, db):
        logger.warning(f"Initial admin {username!r} exists with another role; not promoting it")
        return None
    return insert_manual(db, settings.INITIAL_ADMIN_FULL_NAME, username,
                         get_password_hash(settings.INITIAL_ADMIN_PASSWORD), UserRole.admin.value)
