from typing import Optional

from fastapi import APIRouter, Depends, Query

from student_records.auth.auth_handler import decode_access_token, oauth2_scheme
from student_records.exceptions import NotAuthenticatedError
from student_records.views import ViewSession, resolve_view

router = APIRouter(prefix="/views", tags=["views"])


@router.get("/resolve")
def resolve(path: str = Query("/"), token: Optional[str] = Depends(oauth2_scheme)):
    session = ViewSession()
    if token:
        try:
            session = ViewSession.from_session_user(decode_access_token(token), token)
        except NotAuthenticatedError:
            # an expired or forged token renders as signed out
            session = ViewSession()
    screen = resolve_view(path, session)
    return {"screen": screen.name, "path": screen.path}
