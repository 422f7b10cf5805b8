"""Booking reservation engine.

Validation is pure. The conflict check and the insert run under one
process-wide lock, and the ``(date, time)`` unique constraint on the table
covers writers in other processes. Calendar sync and notifications only run
after the insert has committed and never undo it.
"""

import logging
import re
from threading import Lock
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backend.core.config import SchedulingConfig
from backend.integrations.base import CalendarSyncResult, IntegrationStatus, NotificationReport
from backend.models.booking import STATUS_CONFIRMED, Booking, utc_now
from backend.scheduling.errors import InvalidInput, InvalidSlot, PersistenceFailure, SlotConflict
from backend.scheduling.schemas import BookingRecord
from backend.scheduling.slots import available_slots, generate_slots

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'

_reservation_lock = Lock()


def booking_id(slot_date: str, slot_time: str) -> str:
    return f'{slot_date}-{slot_time}'


def _clean(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ''


def validate_booking_request(
    slot_date: str | None,
    slot_time: str | None,
    email: str | None,
    name: str | None,
    config: SchedulingConfig,
) -> tuple[str, str, str, str | None]:
    """Return normalized (date, time, email, name) or raise the first failure."""
    slot_date = _clean(slot_date)
    slot_time = _clean(slot_time)
    email = _clean(email).lower()
    name = _clean(name) or None

    if not email or not slot_date or not slot_time:
        raise InvalidInput('Email, date, and time are required.')

    if not EMAIL_PATTERN.match(email):
        raise InvalidInput('Invalid email address.')

    if slot_time not in generate_slots(slot_date, config):
        raise InvalidSlot('Requested time is not a valid slot for this date.')

    return slot_date, slot_time, email, name


class BookingEngine:
    def __init__(
        self,
        session_factory,
        scheduling: SchedulingConfig,
        calendar=None,
        notifier=None,
    ):
        self.session_factory = session_factory
        self.scheduling = scheduling
        self.calendar = calendar
        self.notifier = notifier

    def confirmed_bookings(self, slot_date: str) -> list[BookingRecord]:
        db = self.session_factory()
        try:
            bookings = db.query(Booking).filter(
                Booking.date == slot_date,
                Booking.status == STATUS_CONFIRMED,
            ).order_by(Booking.time.asc()).all()
            return [BookingRecord.model_validate(booking) for booking in bookings]
        except SQLAlchemyError as exc:
            logger.exception('Failed to load bookings for %s.', slot_date)
            raise PersistenceFailure(DATABASE_UNAVAILABLE) from exc
        finally:
            db.close()

    def availability(self, slot_date: str) -> list[str]:
        return available_slots(slot_date, self.scheduling, self.confirmed_bookings(slot_date))

    def reserve(
        self,
        *,
        date: str | None,
        time: str | None,
        email: str | None,
        name: str | None = None,
        defer: Callable | None = None,
    ) -> BookingRecord:
        """Reserve a slot and return the confirmed booking.

        ``defer`` schedules the notification step (for example
        ``BackgroundTasks.add_task``); without it notifications run inline.
        """
        slot_date, slot_time, email, name = validate_booking_request(date, time, email, name, self.scheduling)

        record = self._insert(slot_date, slot_time, email, name)
        logger.info('Booking %s confirmed for %s.', record.id, record.email)

        record = self.sync_calendar(record)

        if self.notifier is not None:
            if defer is not None:
                defer(self.notify, record)
            else:
                self.notify(record)

        return record

    def _insert(self, slot_date: str, slot_time: str, email: str, name: str | None) -> BookingRecord:
        with _reservation_lock:
            db = self.session_factory()
            try:
                existing = db.query(Booking).filter(
                    Booking.date == slot_date,
                    Booking.time == slot_time,
                    Booking.status == STATUS_CONFIRMED,
                ).first()
                if existing:
                    logger.info('Slot %s %s already booked.', slot_date, slot_time)
                    raise SlotConflict('This slot is already booked.')

                booking = Booking(
                    id=booking_id(slot_date, slot_time),
                    name=name,
                    email=email,
                    date=slot_date,
                    time=slot_time,
                    duration_minutes=self.scheduling.slot_duration_minutes,
                    timezone=self.scheduling.timezone,
                    status=STATUS_CONFIRMED,
                    created_at=utc_now(),
                    meeting_link=self.scheduling.default_meeting_link,
                )
                db.add(booking)
                db.commit()
                db.refresh(booking)

                return BookingRecord.model_validate(booking)
            except IntegrityError as exc:
                db.rollback()
                logger.info('Slot %s %s taken by a concurrent writer.', slot_date, slot_time)
                raise SlotConflict('This slot is already booked.') from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception('Failed to persist booking for %s %s.', slot_date, slot_time)
                raise PersistenceFailure(DATABASE_UNAVAILABLE) from exc
            finally:
                db.close()

    def sync_calendar(self, record: BookingRecord) -> BookingRecord:
        if self.calendar is None:
            return record

        try:
            result: CalendarSyncResult = self.calendar.create_event(record, self.scheduling)
        except Exception:
            logger.exception('Calendar sync raised for booking %s; keeping fallback link.', record.id)
            return record

        if result.status != IntegrationStatus.SUCCEEDED:
            return record

        updated = record.model_copy(update={
            'external_event_id': result.external_event_id,
            'meeting_link': result.meeting_link or record.meeting_link,
        })
        self._save_sync_details(updated)
        return updated

    def _save_sync_details(self, record: BookingRecord) -> None:
        db = self.session_factory()
        try:
            booking = db.get(Booking, record.id)
            if booking is None:
                return
            booking.external_event_id = record.external_event_id
            booking.meeting_link = record.meeting_link
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Could not store calendar details for booking %s.', record.id)
        finally:
            db.close()

    def notify(self, record: BookingRecord) -> NotificationReport | None:
        if self.notifier is None:
            return None

        meeting_link = record.meeting_link or self.scheduling.default_meeting_link
        try:
            report = self.notifier.notify(record, meeting_link)
        except Exception:
            logger.exception('Notification dispatch raised for booking %s.', record.id)
            return None

        logger.info(
            'Notifications for booking %s: operator=%s attendee=%s.',
            record.id,
            report.operator.value,
            report.attendee.value,
        )
        return report
