"""Marketplace rows the settlement engine reads: users, humans, bookings, bounties."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from skinbag_settlement.db.session import Base

from .common import TimestampMixin, check_in, id_column

USER_ROLES = ("client", "human", "admin", "agent")
BOOKING_STATUSES = ("requested", "confirmed", "cancelled", "completed")
BOUNTY_STATUSES = ("open", "in_review", "in_progress", "completed", "cancelled")
APPLICATION_STATUSES = ("applied", "accepted", "rejected")


class User(TimestampMixin, Base):
    """Marketplace account; funds payouts and owns policy."""

    __tablename__ = "users"
    __table_args__ = (check_in("role", USER_ROLES, "ck_users_role"),)

    id: Mapped[str] = id_column()
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="client")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Human(TimestampMixin, Base):
    """Public profile of a person who can be rented; the payee of settlements."""

    __tablename__ = "humans"

    id: Mapped[str] = id_column()
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    headline: Mapped[str] = mapped_column(Text, nullable=False, default="")
    hourly_rate_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")


class Booking(TimestampMixin, Base):
    """A scheduled engagement of a human by a user."""

    __tablename__ = "bookings"
    __table_args__ = (check_in("status", BOOKING_STATUSES, "ck_bookings_status"),)

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    human_id: Mapped[str] = mapped_column(ForeignKey("humans.id"), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="requested")
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)


class Bounty(TimestampMixin, Base):
    """An open task with a budget that humans apply to."""

    __tablename__ = "bounties"
    __table_args__ = (check_in("status", BOUNTY_STATUSES, "ck_bounties_status"),)

    id: Mapped[str] = id_column()
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    budget_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="open")


class BountyApplication(TimestampMixin, Base):
    """A human's bid on a bounty."""

    __tablename__ = "bounty_applications"
    __table_args__ = (
        check_in("status", APPLICATION_STATUSES, "ck_bounty_applications_status"),
    )

    id: Mapped[str] = id_column()
    bounty_id: Mapped[str] = mapped_column(
        ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False
    )
    human_id: Mapped[str] = mapped_column(ForeignKey("humans.id"), nullable=False)
    cover_letter: Mapped[str] = mapped_column(Text, nullable=False, default="")
    proposed_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="applied")
