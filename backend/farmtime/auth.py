"""FastAPI dependencies that resolve the session cookie into an Identity."""
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from farmtime.config import settings
from farmtime.database import get_db
from farmtime.errors import AuthenticationRequiredError, PermissionDeniedError
from farmtime.schemas.user import Identity
from farmtime.services import identity_service


def get_identity(request: Request, db: Session = Depends(get_db)) -> Optional[Identity]:
    return identity_service.resolve_identity(db, request.cookies.get(settings.SESSION_COOKIE_NAME))


def require_identity(identity: Optional[Identity] = Depends(get_identity)) -> Identity:
    if identity is None:
        raise AuthenticationRequiredError()
    return identity


def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise PermissionDeniedError("Admin access required")
    return identity
