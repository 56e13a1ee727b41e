"""
Venues (facilities) and the bookable courts inside them.

Only the fields the booking and review flows read are modelled here.
"""

from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from courtside.db.base import Base, TimestampMixin


class Facility(Base, TimestampMixin):
    __tablename__ = "facilities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(100), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    owner = relationship("User", back_populates="facilities")
    courts = relationship("Court", back_populates="facility")

    def __repr__(self) -> str:
        return f"<Facility(id={self.id}, name={self.name}, owner={self.owner_id})>"


class Court(Base, TimestampMixin):
    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(Integer, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    sport_type = Column(String(30), nullable=False, default="OTHER")
    price_per_hour = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    facility = relationship("Facility", back_populates="courts", lazy="selectin")

    __table_args__ = (
        CheckConstraint("price_per_hour >= 0", name="check_court_price_non_negative"),
    )
