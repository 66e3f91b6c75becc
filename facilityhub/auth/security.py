from datetime import datetime
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import AuthorizationError
from ..models.models import User
from ..services.permissions import has_any_permission, resolve_role


http_bearer = HTTPBearer(auto_error=False)
log = structlog.get_logger(__name__)

PROFILE_CLAIMS = ("first_name", "last_name", "username", "email", "image_url")


def decode_token(token: str) -> dict:
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def upsert_user_from_claims(db: Session, claims: dict) -> User:
    """Return the local user for the token subject, creating it on first use.

    Calling this repeatedly for the same subject never creates a second row.
    Profile claims only fill fields that are still empty.
    """
    external_id = str(claims.get("sub") or "").strip()
    if not external_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid subject")

    user = db.query(User).filter(User.external_id == external_id).first()
    if user is None:
        role = resolve_role(settings.default_role)
        user = User(external_id=external_id, role=role.value if role else "guest")
        for claim in PROFILE_CLAIMS:
            if claims.get(claim):
                setattr(user, claim, claims[claim])
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Created concurrently by another request
            db.rollback()
            user = db.query(User).filter(User.external_id == external_id).first()
            if user is None:
                raise
        else:
            db.refresh(user)
            log.info("user_created_from_identity", user_id=str(user.id), external_id=external_id, role=user.role)
        return user

    changed = False
    for claim in PROFILE_CLAIMS:
        if claims.get(claim) and not getattr(user, claim):
            setattr(user, claim, claims[claim])
            changed = True
    if changed:
        user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(user)
    return user


def get_current_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    payload = decode_token(creds.credentials)
    user = upsert_user_from_claims(db, payload)
    request.state.user_id = str(user.id)
    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


def require_role(*roles: str):
    allowed = {r.lower() for r in roles}

    def _dep(user: User = Depends(get_current_user)):
        role = resolve_role(user.role)
        if role is None or role.value not in allowed:
            raise AuthorizationError("Forbidden")
        return user

    return _dep


def require_permissions(*required_permissions):
    """
    Require at least one of the specified permissions (OR logic).
    If multiple permissions are provided, user needs at least one.
    """
    def _dep(user: User = Depends(get_current_user)):
        if not has_any_permission(user, required_permissions):
            raise AuthorizationError("Forbidden")
        return user

    return _dep
