"""Business logic for the user resource."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger

from src.app.core.services.user.results import Conflict, Failure, NotFound, Ok
from src.app.core.telemetry.redaction import mask_email
from src.app.entities.core._base import utc_now
from src.app.entities.core.user import (
    DuplicateEmailError,
    User,
    UserCreate,
    UserNotFoundError,
    UserRepository,
    UserResponse,
    UserUpdate,
)

R = TypeVar("R")

DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists."


def to_response(user: User) -> UserResponse:
    """Map a stored user to its external representation."""
    return UserResponse.model_validate(user.model_dump())


class UserService:
    """CRUD over a user store with unique emails and partial-update merging.

    Writes (create, update, delete) are serialized by a lock so that two
    writers cannot both pass the email uniqueness check. Reads take no lock.
    """

    def __init__(
        self,
        repository: UserRepository,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._write_lock = threading.Lock()

    def _run(self, operation: str, action: Callable[[], R]) -> R | Failure:
        try:
            return action()
        except Exception as e:
            logger.bind(operation=operation, error_type=type(e).__name__).error(
                "User store failure during {}", operation
            )
            return Failure(e)

    def list_all(self) -> Ok[list[UserResponse]] | Failure:
        logger.info("Getting all users")
        return self._run(
            "list",
            lambda: Ok([to_response(user) for user in self._repository.list_all()]),
        )

    def get_by_id(self, user_id: int) -> Ok[UserResponse] | NotFound | Failure:
        logger.info("Getting user with ID: {}", user_id)
        return self._run("get", lambda: self._get_by_id(user_id))

    def _get_by_id(self, user_id: int) -> Ok[UserResponse] | NotFound:
        user = self._repository.get(user_id)
        if user is None:
            logger.warning("User with ID {} not found", user_id)
            return NotFound(user_id)
        return Ok(to_response(user))

    def create(self, data: UserCreate) -> Ok[UserResponse] | Conflict | Failure:
        masked = mask_email(data.email)
        logger.info("Creating new user with email: {}", masked)
        return self._run("create", lambda: self._create(data, masked))

    def _create(self, data: UserCreate, masked: str) -> Ok[UserResponse] | Conflict:
        with self._write_lock:
            if self._repository.find_by_email(data.email) is not None:
                logger.warning("User with email {} already exists", masked)
                return Conflict(DUPLICATE_EMAIL_MESSAGE)

            now = self._clock()
            user = User(
                first_name=data.first_name,
                last_name=data.last_name,
                email=data.email,
                phone_number=data.phone_number,
                created_at=now,
                updated_at=now,
            )
            try:
                created = self._repository.add(user)
            except DuplicateEmailError:
                # Another process won the race; the store constraint caught it
                logger.warning("User with email {} already exists", masked)
                return Conflict(DUPLICATE_EMAIL_MESSAGE)

        logger.info("User created successfully with ID: {}", created.id)
        return Ok(to_response(created))

    def update(
        self, user_id: int, partial: UserUpdate
    ) -> Ok[UserResponse] | NotFound | Conflict | Failure:
        logger.info("Updating user with ID: {}", user_id)
        return self._run("update", lambda: self._update(user_id, partial))

    def _update(
        self, user_id: int, partial: UserUpdate
    ) -> Ok[UserResponse] | NotFound | Conflict:
        with self._write_lock:
            current = self._repository.get(user_id)
            if current is None:
                logger.warning("User with ID {} not found for update", user_id)
                return NotFound(user_id)

            if partial.email and partial.email != current.email:
                existing = self._repository.find_by_email(partial.email)
                if existing is not None and existing.id != user_id:
                    logger.warning(
                        "User with email {} already exists", mask_email(partial.email)
                    )
                    return Conflict(DUPLICATE_EMAIL_MESSAGE)

            changes = merge_changes(partial)
            # updated_at never moves backwards, even if the clock does
            changes["updated_at"] = max(
                self._clock(), current.updated_at, current.created_at
            )
            try:
                updated = self._repository.update(current.model_copy(update=changes))
            except DuplicateEmailError:
                return Conflict(DUPLICATE_EMAIL_MESSAGE)
            except UserNotFoundError:
                return NotFound(user_id)

        logger.info("User with ID {} updated successfully", user_id)
        return Ok(to_response(updated))

    def delete(self, user_id: int) -> Ok[bool] | Failure:
        """Remove a user. ``Ok(False)`` means no record had this id."""
        logger.info("Deleting user with ID: {}", user_id)
        return self._run("delete", lambda: self._delete(user_id))

    def _delete(self, user_id: int) -> Ok[bool]:
        with self._write_lock:
            deleted = self._repository.remove(user_id)
        if deleted:
            logger.info("User with ID {} deleted successfully", user_id)
        else:
            logger.warning("User with ID {} not found for deletion", user_id)
        return Ok(deleted)


def merge_changes(partial: UserUpdate) -> dict[str, Any]:
    """Fields of the stored user that ``partial`` overwrites.

    Names and email change only when given a non-empty value; an empty
    string leaves them alone. The phone number changes whenever a value is
    given, so an empty string clears it.
    """
    changes: dict[str, Any] = {}
    if partial.first_name:
        changes["first_name"] = partial.first_name
    if partial.last_name:
        changes["last_name"] = partial.last_name
    if partial.email:
        changes["email"] = partial.email
    if partial.phone_number is not None:
        changes["phone_number"] = partial.phone_number
    return changes
