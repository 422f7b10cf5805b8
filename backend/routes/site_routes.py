import logging
from functools import lru_cache

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.database import SessionLocal
from backend.integrations.mailer import MAIL_ERRORS, SmtpMailer
from backend.models.contact_message import ContactMessage
from backend.scheduling.reservations import EMAIL_PATTERN

router = APIRouter(tags=['site'])

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


class ContactRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    message: str | None = None


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@lru_cache
def get_mailer() -> SmtpMailer:
    return SmtpMailer.from_config()


def send_contact_notification(mailer: SmtpMailer, name: str | None, email: str, message: str) -> None:
    if not mailer.is_configured or not config.TO_EMAIL:
        logger.info('Email not configured; contact message from %s stored only.', email)
        return

    try:
        mailer.send(
            config.TO_EMAIL,
            f'New contact from {name or email}',
            f'Name: {name or "-"}\nEmail: {email}\nMessage:\n{message}',
        )
    except MAIL_ERRORS:
        logger.exception('Contact notification failed for %s.', email)


@router.get('/health')
def health():
    return {'status': 'ok'}


@router.post('/contact')
def submit_contact(
    data: ContactRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: SmtpMailer = Depends(get_mailer),
):
    email = (data.email or '').strip().lower()
    message = (data.message or '').strip()
    name = (data.name or '').strip() or None

    if not email or not message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Email and message are required.',
        )

    if not EMAIL_PATTERN.match(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid email address.',
        )

    if len(message) > MAX_MESSAGE_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Message must be {MAX_MESSAGE_LENGTH} characters or fewer.',
        )

    try:
        db.add(ContactMessage(
            name=name,
            email=email,
            message=message,
            client_ip=request.client.host if request.client else None,
        ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to store contact message from %s.', email)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc

    background_tasks.add_task(send_contact_notification, mailer, name, email, message)
    return {'success': True}


@router.get('/resume')
def log_resume_download(request: Request):
    logger.info('Resume requested from %s', request.client.host if request.client else 'unknown')
    return {'ok': True}
