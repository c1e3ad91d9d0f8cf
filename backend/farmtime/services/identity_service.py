"""Identity service — users recorded from the identity provider, and their sessions.

The provider handshake itself happens elsewhere; this module only records the
profile it returns, issues opaque session ids for the cookie, and turns a
cookie back into an Identity.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from farmtime.config import settings
from farmtime.errors import NotFoundError
from farmtime.models.user import User, UserSession
from farmtime.schemas.user import Identity

logger = logging.getLogger(__name__)


def _utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; they were written as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def record_user(db: Session, google_id: str, email: str, name: str, picture: str = "") -> User:
    """Create or refresh the user for a provider account."""
    user = db.query(User).filter(User.google_id == google_id).first()
    if user is None:
        user = User(google_id=google_id, email=email, name=name, picture=picture or "")
        db.add(user)
    else:
        user.email = email
        user.name = name
        user.picture = picture or ""
    if email.strip().lower() in settings.admin_emails:
        user.is_admin = True
    db.commit()
    db.refresh(user)
    logger.info("Recorded user %s (%s)", user.id, user.email)
    return user


def create_session(db: Session, user: User) -> str:
    session_id = secrets.token_urlsafe(32)
    db.add(UserSession(
        id=session_id,
        user_id=user.id,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.SESSION_TTL_HOURS),
    ))
    db.commit()
    logger.info("Opened session for user %s", user.id)
    return session_id


def resolve_identity(db: Session, session_id: Optional[str]) -> Optional[Identity]:
    """Identity behind a session cookie, or None for anonymous callers."""
    if not session_id:
        return None
    session = db.query(UserSession).filter(UserSession.id == session_id).first()
    if session is None:
        return None
    if _utc(session.expires_at) <= datetime.now(timezone.utc):
        db.delete(session)
        db.commit()
        logger.info("Dropped expired session for user %s", session.user_id)
        return None
    user = db.query(User).filter(User.id == session.user_id).first()
    if user is None:
        return None
    return Identity.model_validate(user)


def end_session(db: Session, session_id: Optional[str]) -> None:
    if not session_id:
        return
    deleted = db.query(UserSession).filter(UserSession.id == session_id).delete()
    db.commit()
    if deleted:
        logger.info("Closed a session")


def purge_expired_sessions(db: Session) -> int:
    count = (
        db.query(UserSession)
        .filter(UserSession.expires_at < datetime.now(timezone.utc))
        .delete()
    )
    db.commit()
    logger.info("Purged %d expired sessions", count)
    return count


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.name).all()


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def update_user_permissions(db: Session, user_id: str, can_create_events: Optional[bool]) -> User:
    user = get_user(db, user_id)
    if can_create_events is not None:
        user.can_create_events = can_create_events
    db.commit()
    db.refresh(user)
    logger.info("User %s can_create_events=%s", user_id, user.can_create_events)
    return user
