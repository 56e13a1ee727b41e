"""
Booking model: a user's reservation of one court for a date and time range.

Key design decisions:
- Status is a closed enumeration (BookingStatus); legal moves live in the
  lifecycle engine, not in the model
- Rows are never deleted by the normal flow; cancellation is a status
- Payment is one-to-one, refunds are one-to-many
"""

from sqlalchemy import (
    Column, Integer, Date, Time, Numeric, Text, DateTime, Enum, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from courtside.db.base import Base, TimestampMixin
from courtside.domain.booking_lifecycle import BookingStatus


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False, index=True)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(BookingStatus, name="booking_status", native_enum=False, length=20),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    user = relationship("User", lazy="selectin")
    court = relationship("Court", lazy="selectin")
    payment = relationship("Payment", back_populates="booking", uselist=False, lazy="selectin")
    refunds = relationship("Refund", back_populates="booking", lazy="selectin")

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_booking_amount_non_negative"),
        CheckConstraint("end_time > start_time", name="check_booking_time_range"),
        # Auto-complete sweep: confirmed bookings ordered by date
        Index("ix_bookings_status_date", "status", "booking_date"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, court={self.court_id}, status={self.status})>"
