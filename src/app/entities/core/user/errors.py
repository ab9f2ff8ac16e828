"""Errors raised by user stores."""


class UserStoreError(Exception):
    """Base class for failures reported by a user store."""


class DuplicateEmailError(UserStoreError):
    """Raised when a write would give two live users the same email."""

    def __init__(self, message: str = "A user with this email already exists."):
        super().__init__(message)


class UserNotFoundError(UserStoreError):
    """Raised when updating a record that is no longer in the store."""

    def __init__(self, user_id: int):
        super().__init__(f"User with ID {user_id} not found")
        self.user_id = user_id
