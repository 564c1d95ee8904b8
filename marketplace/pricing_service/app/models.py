"""SQLAlchemy models for the pricing service."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for pricing ORM models."""


class Accommodation(Base):
    """Reference record for a priced listing; the listing itself lives elsewhere."""

    __tablename__ = "accommodations"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR", server_default="EUR")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class PricingConfiguration(Base):
    __tablename__ = "pricing_configurations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    accommodation_id: Mapped[str] = mapped_column(
        ForeignKey("accommodations.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    base_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="EUR", server_default="EUR")
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    rules: Mapped[list[PricingRule]] = relationship(
        back_populates="configuration",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by=lambda: [PricingRule.priority.desc(), PricingRule.id.asc()],
    )


class PricingRule(Base):
    """One row per rule; columns of the other rule types stay NULL."""

    __tablename__ = "pricing_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    configuration_id: Mapped[int] = mapped_column(
        ForeignKey("pricing_configurations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    # season
    season: Mapped[str | None] = mapped_column(String(8), nullable=True)
    start_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # season / custom
    price_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(8, 4), nullable=True)
    # weekend
    weekend_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(8, 4), nullable=True)
    week_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(8, 4), nullable=True)
    # long stay
    minimum_nights: Mapped[int | None] = mapped_column(Integer, nullable=True)
    discount_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    maximum_discount_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    # custom
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    configuration: Mapped[PricingConfiguration] = relationship(back_populates="rules")
