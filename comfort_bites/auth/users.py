from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import bcrypt
from pydantic import BaseModel, Field
from sqlalchemy import JSON, Column, Integer, String, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..errors import StoreUnavailable, UsernameTaken

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_BCRYPT_ROUNDS = 10


class UserRecord(Base):
    __tablename__ = "users"
    # SQLite assigns max(id) + 1 atomically for an INTEGER PRIMARY KEY
    id = Column(Integer, primary_key=True)
    username = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    favorites = Column(JSON, nullable=False, default=list)


class User(BaseModel):
    id: int
    username: str
    password_hash: str
    favorites: list[str] = Field(default_factory=list)


def hash_password(plain: str, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def _to_user(record: UserRecord) -> User:
    return User(
        id=record.id,
        username=record.username,
        password_hash=record.password_hash,
        favorites=list(record.favorites or []),
    )


class UserStore:
    def __init__(self, database_url: str, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        url = make_url(database_url)
        engine_args: dict[str, Any] = {"echo": False}
        if url.get_backend_name() == "sqlite":
            engine_args["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise each thread gets its own empty database
                engine_args["poolclass"] = StaticPool
        self.engine = create_engine(url, **engine_args)
        self._session = sessionmaker(bind=self.engine, expire_on_commit=False)
        # SQLite ignores FOR UPDATE, so read-modify-write of favorites is also serialized here
        self._favorites_lock = threading.Lock()
        self.bcrypt_rounds = bcrypt_rounds
        Base.metadata.create_all(self.engine)

    # ── Reads ───────────────────────────────────────────────────────────

    def load_user(self, user_id: int) -> User | None:
        """
        Look up a user by id, telling a missing user apart from a failed read.

        Returns ``None`` only when the store confirms there is no such user;
        raises ``StoreUnavailable`` when the lookup itself fails.
        """
        try:
            with self._session() as session:
                record = session.get(UserRecord, user_id)
                return _to_user(record) if record else None
        except SQLAlchemyError as exc:
            raise StoreUnavailable("Could not load user") from exc

    def get_user(self, user_id: int) -> User | None:
        try:
            return self.load_user(user_id)
        except StoreUnavailable:
            logger.warning("User lookup failed (id=%s)", user_id, exc_info=True)
            return None

    def get_user_by_username(self, username: str) -> User | None:
        try:
            with self._session() as session:
                record = session.query(UserRecord).filter_by(username=username).one_or_none()
                return _to_user(record) if record else None
        except SQLAlchemyError:
            logger.warning("User lookup failed (username=%s)", username, exc_info=True)
            return None

    # ── Writes ──────────────────────────────────────────────────────────

    def create_user(self, username: str, password: str) -> User:
        """
        Insert a new user with a bcrypt-hashed password and no favorites.

        The unique index on ``username`` decides races between concurrent
        signups; the loser gets ``UsernameTaken``.
        """
        record = UserRecord(
            username=username,
            password_hash=hash_password(password, self.bcrypt_rounds),
            favorites=[],
        )
        with self._session() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                logger.info("Signup rejected, username %s already exists", username)
                raise UsernameTaken() from exc
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Failed to create user %s", username, exc_info=True)
                raise StoreUnavailable("Could not create user") from exc

            logger.info("Created user %s with id %s", username, record.id)
            return _to_user(record)

    def update_user_favorites(self, user_id: int, recipe_ids: list[str]) -> User | None:
        """Replace the user's favorites with ``recipe_ids`` as given."""
        return self._modify_favorites(user_id, lambda _current: list(recipe_ids))

    def add_favorite(self, user_id: int, recipe_id: str) -> User | None:
        """Append ``recipe_id`` to the user's favorites unless it is already there."""
        return self._modify_favorites(
            user_id,
            lambda current: current if recipe_id in current else current + [recipe_id],
        )

    def remove_favorite(self, user_id: int, recipe_id: str) -> User | None:
        return self._modify_favorites(
            user_id,
            lambda current: [rid for rid in current if rid != recipe_id],
        )

    def _modify_favorites(
        self, user_id: int, change: Callable[[list[str]], list[str]]
    ) -> User | None:
        # Re-read under the lock so concurrent edits for one user apply in turn
        with self._favorites_lock, self._session() as session:
            try:
                record = session.get(UserRecord, user_id, with_for_update=True)
                if record is None:
                    return None
                record.favorites = change(list(record.favorites or []))
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Failed to update favorites for user %s", user_id, exc_info=True)
                raise StoreUnavailable("Could not update favorites") from exc

            return _to_user(record)
