"""Booking model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from backend.database import Base

STATUS_CONFIRMED = "confirmed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """A reserved discovery-call slot. At most one per (date, time)."""
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("date", "time", name="uq_bookings_date_time"),
    )

    id = Column(String, primary_key=True)
    name = Column(String)
    email = Column(String, nullable=False)
    date = Column(String, nullable=False, index=True)
    time = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String)
    status = Column(String, nullable=False, default=STATUS_CONFIRMED)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    external_event_id = Column(String)
    meeting_link = Column(String)
