from __future__ import annotations

from fastapi import HTTPException, Request

from .service import AuthSessionManager
from .users import User

SESSION_TOKEN_KEY = "token"


def get_auth(request: Request) -> AuthSessionManager:
    return request.app.state.auth


def get_session_token(request: Request) -> str | None:
    return request.session.get(SESSION_TOKEN_KEY)


def get_current_user(request: Request) -> User | None:
    """Return the user behind the session cookie, or ``None`` for anonymous callers."""
    return get_auth(request).current_user(get_session_token(request))


def require_user(request: Request) -> User:
    """Raise 401 if no user is logged in."""
    user = get_current_user(request)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user
