from datetime import datetime, timedelta, timezone

from backend.core.config import SchedulingConfig
from backend.scheduling.schemas import BookingRecord
from backend.scheduling.slots import slot_start

ICS_CONTENT_TYPE = 'text/calendar; method=REQUEST; charset=UTF-8'
ICS_FILENAME = 'invite.ics'


def format_ics_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime('%Y%m%dT%H%M%SZ')


def escape_ics_text(value: str) -> str:
    return (
        value.replace('\\', '\\\\')
        .replace(';', '\\;')
        .replace(',', '\\,')
        .replace('\n', '\\n')
    )


def build_invite(
    booking: BookingRecord,
    scheduling: SchedulingConfig,
    meeting_link: str,
    *,
    summary: str = 'Discovery Call',
    uid_domain: str = 'portfolio',
    now: datetime | None = None,
) -> str:
    """Render a METHOD:REQUEST calendar invite for a booking."""
    start = slot_start(booking.date, booking.time, scheduling)
    end = start + timedelta(minutes=booking.duration_minutes)
    stamp = now or datetime.now(timezone.utc)
    attendee_name = booking.name or booking.email
    attendee_cn = attendee_name.replace('"', '')
    description = f'Join link: {meeting_link}\nBooked for {attendee_name}'

    lines = [
        'BEGIN:VCALENDAR',
        'VERSION:2.0',
        'PRODID:-//Portfolio//Discovery Call Booking//EN',
        'METHOD:REQUEST',
        'BEGIN:VEVENT',
        f'UID:{booking.id}@{uid_domain}',
        f'DTSTAMP:{format_ics_datetime(stamp)}',
        f'DTSTART:{format_ics_datetime(start)}',
        f'DTEND:{format_ics_datetime(end)}',
        f'SUMMARY:{escape_ics_text(summary)}',
        f'DESCRIPTION:{escape_ics_text(description)}',
        f'LOCATION:{escape_ics_text(meeting_link)}',
        f'ATTENDEE;CN="{attendee_cn}";RSVP=TRUE:MAILTO:{booking.email}',
        'END:VEVENT',
        'END:VCALENDAR',
    ]
    return '\r\n'.join(lines) + '\r\n'
