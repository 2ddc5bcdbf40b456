"""User model — local accounts and LINE-federated identities."""

from __future__ import annotations

import enum

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villagemarket.models.base import ActiveMixin, Base, TimestampMixin, UUIDPrimaryKeyMixin


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    VENDOR = "VENDOR"
    ADMIN = "ADMIN"


class User(UUIDPrimaryKeyMixin, ActiveMixin, TimestampMixin, Base):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Conventionally equal to house_number; NULL until the profile is completed
    username: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True, index=True)
    house_number: Mapped[str | None] = mapped_column(
        String(20), unique=True, nullable=True, index=True
    )
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # "CUSTOMER" | "VENDOR" | "ADMIN"
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.CUSTOMER.value,
        server_default=UserRole.CUSTOMER.value,
    )

    # None for LINE-only accounts
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    # LINE user id
    external_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    profile_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    shops: Mapped[list["Shop"]] = relationship(  # noqa: F821
        "Shop", back_populates="owner", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User {self.username!r} role={self.role!r} line={self.external_id is not None}>"
