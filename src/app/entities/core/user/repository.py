"""User store interface and implementations.

Both backends keep records ordered by id (which is insertion order), assign
ids that are never reused, and refuse to hold two users with the same email.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from src.app.entities.core._base import as_utc
from src.app.entities.core.user.entity import User
from src.app.entities.core.user.errors import DuplicateEmailError, UserNotFoundError
from src.app.entities.core.user.table import UserTable

if TYPE_CHECKING:
    from src.app.core.services.database.db_session import DbSessionService


class UserRepository(ABC):
    """Abstract interface for user persistence backends."""

    @abstractmethod
    def add(self, user: User) -> User:
        """Persist a new user and return it with its assigned id.

        Raises:
            DuplicateEmailError: If a live user already has this email
        """

    @abstractmethod
    def get(self, user_id: int) -> User | None:
        """Return the user with this id, or None."""

    @abstractmethod
    def find_by_email(self, email: str) -> User | None:
        """Return the live user with exactly this email, or None."""

    @abstractmethod
    def update(self, user: User) -> User:
        """Overwrite the stored record that has ``user.id``.

        Raises:
            DuplicateEmailError: If another live user already has the new email
            UserNotFoundError: If no record has this id
        """

    @abstractmethod
    def remove(self, user_id: int) -> bool:
        """Remove a user. Returns False when no record had this id."""

    @abstractmethod
    def list_all(self) -> list[User]:
        """Return every user in store order."""

    def is_available(self) -> bool:
        """Check if the backend can serve requests."""
        return True


class InMemoryUserRepository(UserRepository):
    """Process-local store; each operation is atomic under an internal lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[int, User] = {}
        self._ids_by_email: dict[str, int] = {}
        self._last_id = 0

    def add(self, user: User) -> User:
        with self._lock:
            if user.email in self._ids_by_email:
                raise DuplicateEmailError()
            self._last_id += 1
            stored = user.model_copy(update={"id": self._last_id})
            self._users[stored.id] = stored
            self._ids_by_email[stored.email] = stored.id
            return stored.model_copy()

    def get(self, user_id: int) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def find_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._ids_by_email.get(email)
            if user_id is None:
                return None
            return self._users[user_id].model_copy()

    def update(self, user: User) -> User:
        with self._lock:
            current = self._users.get(user.id)
            if current is None:
                raise UserNotFoundError(user.id)
            owner = self._ids_by_email.get(user.email)
            if owner is not None and owner != user.id:
                raise DuplicateEmailError()
            stored = user.model_copy()
            if current.email != stored.email:
                del self._ids_by_email[current.email]
                self._ids_by_email[stored.email] = stored.id
            self._users[stored.id] = stored
            return stored.model_copy()

    def remove(self, user_id: int) -> bool:
        with self._lock:
            user = self._users.pop(user_id, None)
            if user is None:
                return False
            del self._ids_by_email[user.email]
            return True

    def list_all(self) -> list[User]:
        with self._lock:
            return [user.model_copy() for user in self._users.values()]


def _is_unique_email_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "email" in message and ("unique" in message or "duplicate" in message)


class SqlUserRepository(UserRepository):
    """SQLModel-backed store; uniqueness is enforced by the users table."""

    def __init__(self, database_service: DbSessionService) -> None:
        self._db = database_service

    @staticmethod
    def _to_entity(row: UserTable) -> User:
        user = User.model_validate(row, from_attributes=True)
        user.created_at = as_utc(user.created_at)
        user.updated_at = as_utc(user.updated_at)
        return user

    def add(self, user: User) -> User:
        try:
            with self._db.session_scope() as session:
                row = UserTable(**user.model_dump(exclude={"id"}))
                session.add(row)
                session.flush()
                session.refresh(row)
                return self._to_entity(row)
        except IntegrityError as e:
            if _is_unique_email_violation(e):
                raise DuplicateEmailError() from e
            raise

    def get(self, user_id: int) -> User | None:
        with self._db.session_scope() as session:
            row = session.get(UserTable, user_id)
            return self._to_entity(row) if row is not None else None

    def find_by_email(self, email: str) -> User | None:
        with self._db.session_scope() as session:
            statement = select(UserTable).where(UserTable.email == email)
            row = session.exec(statement).first()
            return self._to_entity(row) if row is not None else None

    def update(self, user: User) -> User:
        try:
            with self._db.session_scope() as session:
                row = session.get(UserTable, user.id)
                if row is None:
                    raise UserNotFoundError(user.id)
                for field, value in user.model_dump(exclude={"id", "created_at"}).items():
                    setattr(row, field, value)
                session.add(row)
                session.flush()
                session.refresh(row)
                return self._to_entity(row)
        except IntegrityError as e:
            if _is_unique_email_violation(e):
                raise DuplicateEmailError() from e
            raise

    def remove(self, user_id: int) -> bool:
        with self._db.session_scope() as session:
            row = session.get(UserTable, user_id)
            if row is None:
                return False
            session.delete(row)
            return True

    def list_all(self) -> list[User]:
        with self._db.session_scope() as session:
            rows = session.exec(select(UserTable).order_by(UserTable.id)).all()
            return [self._to_entity(row) for row in rows]

    def is_available(self) -> bool:
        return self._db.health_check()
