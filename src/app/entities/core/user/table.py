"""User database table model."""

from sqlalchemy import Column, String, UniqueConstraint
from sqlmodel import Field

from src.app.entities.core._base import EntityTable


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    The unique constraint on ``email`` turns a race between two writers into
    an integrity error instead of a duplicate row. ``sqlite_autoincrement``
    keeps SQLite from handing out the id of a deleted last row again.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        {"sqlite_autoincrement": True},
    )

    first_name: str = Field(sa_column=Column(String(100), nullable=False))
    last_name: str = Field(sa_column=Column(String(100), nullable=False))
    email: str = Field(sa_column=Column(String(255), nullable=False, index=True))
    phone_number: str | None = Field(
        default=None, sa_column=Column(String(20), nullable=True)
    )
