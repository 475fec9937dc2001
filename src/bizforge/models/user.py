"""User model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


class User(Base):
    """User model - one row per verified identity subject.

    ``tokens_remaining`` and ``tokens_used`` are only ever changed by the ledger
    accountant with server-side arithmetic.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value)
    plan: Mapped[str] = mapped_column(String(50), default="Free")
    tokens_remaining: Mapped[int] = mapped_column(Integer, default=10000)
    tokens_used: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default=UserStatus.ACTIVE.value)
    last_login: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
