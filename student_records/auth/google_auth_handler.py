import logging

import httpx
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from student_records.configs import settings
from student_records.exceptions import FederatedLoginError
from student_records.schemas.user_schema import AuthenticatedIdentity
from student_records.services import user_service

logger = logging.getLogger(__name__)

GOOGLE_OAUTH_URL = "https://oauth2.googleapis.com/tokeninfo"


async def verify_google_token(id_token: str) -> dict:
    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(GOOGLE_OAUTH_URL, params={"id_token": id_token})
    except httpx.HTTPError as exc:
        logger.error(f"Google token verification request failed: {exc}")
        raise FederatedLoginError()
    if response.status_code != 200:
        logger.warning(f"Google rejected ID token with status {response.status_code}")
        raise FederatedLoginError()
    user_info = response.json()
    if not user_info.get("sub"):
        raise FederatedLoginError()
    if settings.GOOGLE_CLIENT_ID and user_info.get("aud") != settings.GOOGLE_CLIENT_ID:
        logger.warning("Google ID token issued for another audience")
        raise FederatedLoginError()
    return user_info


def resolve_federated_identity(db_session: Session, federated_id: str, full_name: str, email: str | None) -> AuthenticatedIdentity:
    """Sign in a verified federated subject, provisioning a student account on first sight."""
    user = user_service.find_by_federated_id(federated_id, db_session)
    if not user:
        user = user_service.insert_federated(db_session, full_name, email, federated_id)
    return AuthenticatedIdentity.from_user(user)


async def authenticate_google_user(db_session: Session, id_token: str | None) -> AuthenticatedIdentity:
    if not id_token:
        raise FederatedLoginError()
    user_info = await verify_google_token(id_token)
    email = user_info.get("email")
    full_name = user_info.get("name") or email or user_info["sub"]
    # the session is synchronous, keep it off the event loop
    return await run_in_threadpool(resolve_federated_identity, db_session, user_info["sub"], full_name, email)
