"""User domain entity."""

from typing import Any

from pydantic import Field

from src.app.entities.core._base import Entity


class User(Entity):
    """User entity representing a person in the system.

    This is the domain model handed between the service and the store. The
    store assigns ``id`` on insert; timestamps are stamped by the service.
    """

    first_name: str = Field(description="User's first name")
    last_name: str = Field(description="User's last name")
    email: str = Field(description="User's email address, unique among live users")
    phone_number: str | None = Field(default=None, description="User's phone number")

    def __eq__(self, other: Any) -> bool:
        """Compare users by business attributes, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return (
            self.id == other.id
            and self.first_name == other.first_name
            and self.last_name == other.last_name
            and self.email == other.email
            and self.phone_number == other.phone_number
        )

    def __hash__(self) -> int:
        """Hash based on business attributes, ignoring timestamps."""
        return hash((
            self.id,
            self.first_name,
            self.last_name,
            self.email,
            self.phone_number,
        ))
