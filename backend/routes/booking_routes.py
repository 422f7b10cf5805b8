from functools import lru_cache

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from backend.core.config import SchedulingConfig, get_scheduling_config
from backend.database import SessionLocal, ensure_booking_schema
from backend.integrations.calendar_sync import GoogleCalendarSynchronizer
from backend.integrations.notifications import NotificationDispatcher
from backend.scheduling.errors import BookingError
from backend.scheduling.reservations import BookingEngine
from backend.scheduling.schemas import BookingRecord
from backend.scheduling.slots import DATE_PATTERN, parse_slot_date

router = APIRouter(tags=['booking'])


class BookRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    date: str | None = None
    time: str | None = None


class BookResponse(BaseModel):
    success: bool
    booking: BookingRecord
    message: str


class AvailabilityResponse(BaseModel):
    date: str
    timezone: str
    slot_minutes: int
    start_hour: int
    end_hour: int
    available: list[str]

    class Config:
        alias_generator = to_camel
        populate_by_name = True


@lru_cache
def get_booking_engine() -> BookingEngine:
    scheduling = get_scheduling_config()
    return BookingEngine(
        SessionLocal,
        scheduling,
        calendar=GoogleCalendarSynchronizer.from_config(),
        notifier=NotificationDispatcher.from_config(scheduling),
    )


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


def to_http_error(exc: BookingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get('/availability', response_model=AvailabilityResponse)
def get_availability(
    date: str | None = Query(default=None),
    engine: BookingEngine = Depends(get_booking_engine),
    scheduling: SchedulingConfig = Depends(get_scheduling_config),
):
    if not date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Date parameter is required (YYYY-MM-DD format).',
        )

    if not DATE_PATTERN.match(date):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid date format. Use YYYY-MM-DD.',
        )

    if parse_slot_date(date) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid calendar date.',
        )

    ensure_database_ready()

    try:
        available = engine.availability(date)
    except BookingError as exc:
        raise to_http_error(exc) from exc

    return AvailabilityResponse(
        date=date,
        timezone=scheduling.timezone,
        slot_minutes=scheduling.slot_duration_minutes,
        start_hour=scheduling.day_start_hour,
        end_hour=scheduling.day_end_hour,
        available=available,
    )


@router.post('/book', response_model=BookResponse)
def book_slot(
    data: BookRequest,
    background_tasks: BackgroundTasks,
    engine: BookingEngine = Depends(get_booking_engine),
):
    ensure_database_ready()

    try:
        booking = engine.reserve(
            date=data.date,
            time=data.time,
            email=data.email,
            name=data.name,
            defer=background_tasks.add_task,
        )
    except BookingError as exc:
        raise to_http_error(exc) from exc

    return BookResponse(
        success=True,
        booking=booking,
        message='Booking confirmed! Check your email for details.',
    )
