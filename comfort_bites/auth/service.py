from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import AuthenticationError, StoreUnavailable, ValidationError
from .sessions import SessionStore
from .users import User, UserStore, hash_password, verify_password

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72  # bcrypt ignores or rejects anything longer


@dataclass(frozen=True)
class Session:
    token: str
    user: User


def validate_credentials(username: str, password: str) -> None:
    if len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class AuthSessionManager:
    """Credential checks plus the session lifecycle on top of ``UserStore`` and ``SessionStore``."""

    def __init__(self, users: UserStore, sessions: SessionStore) -> None:
        self.users = users
        self.sessions = sessions
        # Compared against when the username is unknown so both failure paths hash once
        self._dummy_hash = hash_password("comfort-bites-dummy", users.bcrypt_rounds)

    def login(self, username: str, password: str, previous_token: str | None = None) -> Session:
        user = self.users.get_user_by_username(username)
        hashed = user.password_hash if user else self._dummy_hash
        password_ok = len(password.encode()) <= MAX_PASSWORD_BYTES and verify_password(password, hashed)
        if user is None or not password_ok:
            logger.info("Failed login attempt for %s", username)
            raise AuthenticationError()
        return self._establish(user, previous_token)

    def signup(self, username: str, password: str, previous_token: str | None = None) -> Session:
        validate_credentials(username, password)
        user = self.users.create_user(username, password)
        return self._establish(user, previous_token)

    def current_user(self, token: str | None) -> User | None:
        if not token:
            return None
        user_id = self.sessions.get(token)
        if user_id is None:
            return None
        try:
            user = self.users.load_user(user_id)
        except StoreUnavailable:
            # Treat as anonymous for this request; the token stays valid
            logger.warning("Could not resolve session user %s", user_id, exc_info=True)
            return None
        if user is None:
            self.sessions.revoke(token)
        return user

    def logout(self, token: str | None) -> None:
        if token:
            self.sessions.revoke(token)

    def _establish(self, user: User, previous_token: str | None) -> Session:
        if previous_token:
            self.sessions.revoke(previous_token)
        token = self.sessions.create(user.id)
        logger.info("Session established for %s", user.username)
        return Session(token=token, user=user)
