"""User entity module.

This module contains all User-related classes organized by responsibility:
- User: Domain entity
- UserTable: Database persistence model
- UserRepository: Store interface with in-memory and SQL backends
- UserCreate / UserUpdate / UserResponse: Wire models
"""

from .entity import User
from .errors import DuplicateEmailError, UserNotFoundError, UserStoreError
from .repository import InMemoryUserRepository, SqlUserRepository, UserRepository
from .schemas import UserCreate, UserResponse, UserUpdate
from .table import UserTable

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "InMemoryUserRepository",
    "SqlUserRepository",
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserStoreError",
    "DuplicateEmailError",
    "UserNotFoundError",
]
