from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class BookingRecord(BaseModel):
    id: str
    name: str | None = None
    email: str
    date: str
    time: str
    duration_minutes: int
    timezone: str | None = None
    status: str
    created_at: datetime
    external_event_id: str | None = None
    meeting_link: str | None = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True
