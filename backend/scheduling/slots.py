"""Slot generation and availability for a single calendar date.

Slots are ``HH:MM`` wall-clock strings in the configured timezone. Nothing in
this module touches storage or the environment; callers pass the scheduling
config and the bookings they already loaded.
"""

import re
from datetime import date, datetime, time, timedelta
from typing import Iterable

from backend.core.config import SchedulingConfig
from backend.models.booking import STATUS_CONFIRMED

DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
TIME_FORMAT = '%H:%M'


def parse_slot_date(value: str | None) -> date | None:
    """Return the calendar date for a ``YYYY-MM-DD`` string, or None."""
    if not value or not DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def generate_slots(slot_date: str, config: SchedulingConfig) -> list[str]:
    day = parse_slot_date(slot_date)
    if day is None:
        return []

    step = timedelta(minutes=config.slot_duration_minutes)
    current = datetime.combine(day, time(config.day_start_hour, 0))
    # day_end_hour may be 24, so build the end from midnight.
    day_end = datetime.combine(day, time(0, 0)) + timedelta(hours=config.day_end_hour)

    slots: list[str] = []
    while current + step <= day_end:
        slots.append(current.strftime(TIME_FORMAT))
        current += step

    return slots


def booked_times(slot_date: str, bookings: Iterable) -> set[str]:
    return {
        booking.time
        for booking in bookings
        if booking.date == slot_date and booking.status == STATUS_CONFIRMED
    }


def available_slots(slot_date: str, config: SchedulingConfig, existing_bookings: Iterable) -> list[str]:
    taken = booked_times(slot_date, existing_bookings)
    return [slot for slot in generate_slots(slot_date, config) if slot not in taken]


def slot_start(slot_date: str, slot_time: str, config: SchedulingConfig) -> datetime:
    """Timezone-aware start of a slot in the configured zone."""
    day = parse_slot_date(slot_date)
    if day is None:
        raise ValueError(f'Invalid slot date: {slot_date}')
    clock = datetime.strptime(slot_time, TIME_FORMAT).time()
    return datetime.combine(day, clock, tzinfo=config.zone)
