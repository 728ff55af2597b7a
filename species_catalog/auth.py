"""
Session handling: the hosted auth service signs an HS256 token whose ``sub``
is the viewer's profile id. We only verify it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from species_catalog.config import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def create_session_token(profile_id: str, *, expires_minutes: Optional[int] = None) -> str:
    """Mint a session token. Used by the seed script and tests."""
    settings = get_settings()
    minutes = settings.session_expire_minutes if expires_minutes is None else expires_minutes
    payload = {
        "sub": profile_id,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str) -> Optional[str]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.session_secret, algorithms=[settings.session_algorithm]
        )
    except JWTError as exc:
        logger.info("Rejected session token: %s", exc)
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None


def get_session_profile_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Return the viewer's profile id, or None when there is no valid session."""
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        return None
    return decode_session_token(token)


def require_session(
    profile_id: Optional[str] = Depends(get_session_profile_id),
) -> str:
    if not profile_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return profile_id
