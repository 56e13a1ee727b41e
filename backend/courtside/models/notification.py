"""
In-app notification rows. Created as side effects of booking transitions.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey, JSON, Index

from courtside.db.base import Base, TimestampMixin
from courtside.domain.booking_lifecycle import NotificationType


class Notification(Base, TimestampMixin):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(
        Enum(NotificationType, name="notification_type", native_enum=False, length=30),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        # Unread badge count per user
        Index("ix_notifications_user_read", "user_id", "is_read"),
    )
