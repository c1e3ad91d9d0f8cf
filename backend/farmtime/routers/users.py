"""Login, session and admin user API routes."""
import logging
import secrets
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from farmtime.auth import get_identity, require_admin
from farmtime.config import settings
from farmtime.database import get_db
from farmtime.errors import ValidationError
from farmtime.google_oauth import GoogleOAuthClient, get_google_client
from farmtime.schemas.user import Identity, MeOut, UserOut, UserPermissionsUpdate
from farmtime.services import identity_service

logger = logging.getLogger(__name__)
auth_router = APIRouter()
admin_router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_TTL_SECONDS = 300


def _cookie_flags() -> dict:
    return {"path": "/", "httponly": True, "samesite": "lax", "secure": settings.ENV == "production"}


@auth_router.get("/google/login")
def google_login(google: GoogleOAuthClient = Depends(get_google_client)):
    """Redirect to Google's consent page with a CSRF state cookie."""
    state = secrets.token_urlsafe(32)
    response = RedirectResponse(google.authorization_url(state), status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(OAUTH_STATE_COOKIE, state, max_age=OAUTH_STATE_TTL_SECONDS, **_cookie_flags())
    return response


@auth_router.get("/google/callback")
def google_callback(
    request: Request,
    state: str = "",
    code: str = "",
    error: Optional[str] = None,
    google: GoogleOAuthClient = Depends(get_google_client),
    db: Session = Depends(get_db),
):
    """Finish the OAuth handshake: record the user, open a session, set the cookie."""
    expected = request.cookies.get(OAUTH_STATE_COOKIE)
    if not state or not expected or not secrets.compare_digest(state, expected):
        raise ValidationError("Invalid state")

    if error:
        logger.warning("Google login declined: %s", error)
        response = RedirectResponse(
            f"{settings.FRONTEND_URL}?{urlencode({'error': error})}",
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )
        response.delete_cookie(OAUTH_STATE_COOKIE, **_cookie_flags())
        return response
    if not code:
        raise ValidationError("Missing authorization code")

    profile = google.fetch_profile(code)
    user = identity_service.record_user(db, profile.id, profile.email, profile.name, profile.picture)
    identity_service.purge_expired_sessions(db)
    session_id = identity_service.create_session(db, user)

    response = RedirectResponse(settings.FRONTEND_URL, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.delete_cookie(OAUTH_STATE_COOKIE, **_cookie_flags())
    response.set_cookie(
        settings.SESSION_COOKIE_NAME, session_id,
        max_age=settings.SESSION_TTL_HOURS * 3600, **_cookie_flags(),
    )
    return response


@auth_router.get("/me", response_model=MeOut)
def me(identity: Optional[Identity] = Depends(get_identity), db: Session = Depends(get_db)):
    """The signed-in user, or ``{"user": null}`` for anonymous callers."""
    if identity is None:
        return MeOut(user=None)
    return MeOut(user=UserOut.model_validate(identity_service.get_user(db, identity.id)))


@auth_router.post("/logout")
def logout(request: Request, response: Response, db: Session = Depends(get_db)):
    identity_service.end_session(db, request.cookies.get(settings.SESSION_COOKIE_NAME))
    response.delete_cookie(settings.SESSION_COOKIE_NAME, **_cookie_flags())
    return {"status": "logged out"}


@admin_router.get("/users", response_model=list[UserOut])
def list_users(_: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return identity_service.list_users(db)


@admin_router.put("/users/{user_id}", response_model=UserOut)
def update_user_permissions(
    user_id: str,
    payload: UserPermissionsUpdate,
    _: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Grant or revoke the create-events permission."""
    return identity_service.update_user_permissions(db, user_id, payload.can_create_events)
