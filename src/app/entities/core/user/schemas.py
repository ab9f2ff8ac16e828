"""Wire models for the user resource.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, validate_email
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class UserCreate(_CamelModel):
    """Payload for creating a user."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr = Field(max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)


class UserUpdate(_CamelModel):
    """Partial update payload.

    A field that is absent (or null) leaves the stored value untouched. For
    ``first_name``, ``last_name`` and ``email`` an empty string is also a
    no-op, while an empty ``phone_number`` clears the stored number.
    """

    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: str | None = Field(default=None, max_length=255)
    phone_number: str | None = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def _valid_email_when_given(cls, value: str | None) -> str | None:
        # Empty means "no change" and skips validation.
        # Normalized the same way EmailStr normalizes UserCreate.email.
        if value:
            return validate_email(value)[1]
        return value


class UserResponse(_CamelModel):
    """External representation of a stored user."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone_number: str | None = None
    created_at: datetime
    updated_at: datetime
