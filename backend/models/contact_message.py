"""Contact form message model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, Text
from backend.database import Base
from backend.models.booking import utc_now


class ContactMessage(Base):
    """A message submitted through the contact form."""
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True)
    name = Column(String)
    email = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    client_ip = Column(String)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
