"""
Payments are written by the checkout flow; refunds are written here when a
paid booking is cancelled. Gateway refund execution is outside this service.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Text, DateTime, Enum, ForeignKey, CheckConstraint, JSON,
)
from sqlalchemy.orm import relationship

from courtside.db.base import Base, TimestampMixin
from courtside.domain.booking_lifecycle import PaymentStatus, RefundStatus


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    method = Column(String(30), nullable=True)
    status = Column(
        Enum(PaymentStatus, name="payment_status", native_enum=False, length=20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="payment")

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="check_payment_total_non_negative"),
    )


class Refund(Base, TimestampMixin):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    original_amount = Column(Numeric(10, 2), nullable=False)
    refund_percentage = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(
        Enum(RefundStatus, name="refund_status", native_enum=False, length=20),
        nullable=False,
        default=RefundStatus.PENDING,
    )
    notes = Column(JSON, nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="refunds")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="check_refund_amount_non_negative"),
        CheckConstraint(
            "refund_percentage >= 0 AND refund_percentage <= 100",
            name="check_refund_percentage_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<Refund(id={self.id}, booking={self.booking_id}, amount={self.amount}, status={self.status})>"
