"""Core services exports."""

# Database Service
from .database.db_manage import DbManageService
from .database.db_session import DbSessionService

# User Services
from .user import Conflict, Failure, NotFound, Ok, UserService

__all__ = [
    # Database Service
    "DbSessionService",
    "DbManageService",
    # User Services
    "UserService",
    "Ok",
    "Conflict",
    "NotFound",
    "Failure",
]
