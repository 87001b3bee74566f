# src/lifehub/models/user.py
"""SQLAlchemy model for application users.

Users are issued by the authentication subsystem; messaging only reads
their public profile fields.
"""

from __future__ import annotations

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lifehub.db.session import Base

DEFAULT_PROFILE_IMAGE = "https://via.placeholder.com/40"


class User(Base):
    """Registered principal of the application."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(150), nullable=False)
    last_name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    profile_image: Mapped[str | None] = mapped_column(
        Text, nullable=True, default=DEFAULT_PROFILE_IMAGE
    )
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)

    @property
    def display_name(self) -> str:
        """Return the user's full name as shown in chat headers."""
        return f"{self.first_name} {self.last_name}".strip()
