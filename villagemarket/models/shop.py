"""Shop model — a vendor's storefront."""

import uuid

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from villagemarket.models.base import ActiveMixin, Base, TimestampMixin, UUIDPrimaryKeyMixin


class Shop(UUIDPrimaryKeyMixin, ActiveMixin, TimestampMixin, Base):
    __tablename__ = "shops"
    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_shop_owner_name"),
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    house_number: Mapped[str] = mapped_column(String(20), nullable=False)
    logo_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    owner: Mapped["User"] = relationship("User", back_populates="shops")  # noqa: F821
    products: Mapped[list["Product"]] = relationship(  # noqa: F821
        "Product", back_populates="shop", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Shop {self.name!r} owner={self.owner_id}>"
