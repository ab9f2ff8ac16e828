from .results import Conflict, Failure, NotFound, Ok
from .user_service import UserService, merge_changes, to_response

__all__ = [
    "UserService",
    "Ok",
    "Conflict",
    "NotFound",
    "Failure",
    "merge_changes",
    "to_response",
]
