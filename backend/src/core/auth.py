"""Session tokens (HS256 JWTs) and authentication dependencies."""
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"
SESSION_ALGORITHM = "HS256"

# HTTP Bearer token scheme; cookie sessions are accepted as a fallback
security = HTTPBearer(auto_error=False)


@dataclass
class SessionUser:
    """
    Identity carried by a session token.

    Routes authorize on ``email``; no database lookup happens per request.
    """

    id: str
    email: str
    name: str


def create_session_token(
    user_id: str,
    email: str,
    name: str,
    settings: Settings,
) -> str:
    """Issue a signed session token for a user."""
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "iat": now,
        "exp": now + timedelta(seconds=settings.session_max_age_seconds),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> SessionUser:
    """
    Validate a session token.

    Raises:
        HTTPException: 401 if the token is invalid, expired or missing claims.
    """
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[SESSION_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.PyJWTError as e:
        logger.warning("Session validation failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not payload.get("sub") or not payload.get("email"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session: missing claims",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return SessionUser(
        id=payload["sub"],
        email=payload["email"],
        name=payload.get("name") or "Unknown Author",
    )


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> SessionUser | None:
    """Session user if a token was sent, None for anonymous requests."""
    token = _extract_token(request, credentials)
    if token is None:
        return None
    return decode_session_token(token, settings)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> SessionUser:
    """Dependency that requires a valid session."""
    token = _extract_token(request, credentials)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_session_token(token, settings)


def is_admin(email: str, settings: Settings) -> bool:
    """Admin predicate: the email is on the configured admin list."""
    return email.strip().lower() in settings.admin_email_list


async def get_admin_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> SessionUser:
    """Dependency that requires an admin session (403 otherwise)."""
    token = _extract_token(request, credentials)
    user = decode_session_token(token, settings) if token else None
    if user is None or not is_admin(user.email, settings):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
