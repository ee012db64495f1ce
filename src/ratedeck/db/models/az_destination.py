"""A-Z destination (master rating database) table."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ratedeck.db.base import Base, TimestampMixin


class AzDestinationRow(Base, TimestampMixin):
    __tablename__ = "az_destinations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    region: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    billing_increment: Mapped[str] = mapped_column(String(16), nullable=False, default="60/60")
    grace_period: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
