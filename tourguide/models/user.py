"""
User and marketplace profile models.

A ``User`` is the identity record; bookings reference the ``Tourist`` and
``Guide`` profiles, whose ``user_id`` is what authorization checks compare
against the acting identity.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourguide.models.base import TimestampModel
from tourguide.models.enums import UserRole

if TYPE_CHECKING:
    from tourguide.models.booking import Booking

__all__ = ["User", "Tourist", "Guide", "Tour"]


class User(TimestampModel):
    """Identity record mirrored from the identity collaborator."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Login email",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name",
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole),
        nullable=False,
        index=True,
        comment="Marketplace role",
    )

    tourist_profile: Mapped[Optional["Tourist"]] = relationship(
        "Tourist",
        back_populates="user",
        uselist=False,
        lazy="select",
    )
    guide_profile: Mapped[Optional["Guide"]] = relationship(
        "Guide",
        back_populates="user",
        uselist=False,
        lazy="select",
    )


class Tourist(TimestampModel):
    """Tourist profile attached to a user."""

    __tablename__ = "tourists"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="Owning user",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="tourist_profile",
        lazy="joined",
    )
    bookings: Mapped[List["Booking"]] = relationship(
        "Booking",
        back_populates="tourist",
        lazy="select",
    )


class Guide(TimestampModel):
    """
    Guide profile attached to a user.

    ``average_rating`` and ``total_reviews`` are derived from the guide's
    reviews and are only written by the review service.
    """

    __tablename__ = "guides"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="Owning user",
    )
    bio: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Public profile text",
    )
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Advertised hourly rate",
    )
    is_available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
        comment="Accepting instant bookings",
    )
    average_rating: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        comment="Mean rating across all reviews",
    )
    total_reviews: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Number of reviews",
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="guide_profile",
        lazy="joined",
    )
    tours: Mapped[List["Tour"]] = relationship(
        "Tour",
        back_populates="guide",
        lazy="select",
    )
    bookings: Mapped[List["Booking"]] = relationship(
        "Booking",
        back_populates="guide",
        lazy="select",
    )

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="ck_guide_rate_positive"),
        CheckConstraint("total_reviews >= 0", name="ck_guide_reviews_positive"),
    )


class Tour(TimestampModel):
    """An exclusive offering published by a guide."""

    __tablename__ = "tours"

    guide_id: Mapped[str] = mapped_column(
        ForeignKey("guides.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Publishing guide",
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Duration in minutes",
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    guide: Mapped["Guide"] = relationship(
        "Guide",
        back_populates="tours",
        lazy="select",
    )
