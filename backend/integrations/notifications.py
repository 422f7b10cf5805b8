"""Booking notifications: one message for the operator, one for the attendee.

Both sends are independent and best-effort. A missing SMTP setup yields
``unavailable``; a send error is logged and yields ``failed``.
"""

import logging
from html import escape

from backend.core import config
from backend.core.config import SchedulingConfig
from backend.integrations.base import IntegrationStatus, NotificationReport
from backend.integrations.invites import ICS_CONTENT_TYPE, ICS_FILENAME, build_invite
from backend.integrations.mailer import MAIL_ERRORS, Attachment, SmtpMailer
from backend.scheduling.schemas import BookingRecord

logger = logging.getLogger(__name__)


def operator_message(booking: BookingRecord, meeting_link: str) -> tuple[str, str, str]:
    name = booking.name or 'Not provided'
    subject = f'New Booking: {booking.date} at {booking.time}'
    text = (
        f'New discovery call booking\n\n'
        f'Name: {name}\n'
        f'Email: {booking.email}\n'
        f'Date: {booking.date}\n'
        f'Time: {booking.time} ({booking.timezone})\n'
        f'Duration: {booking.duration_minutes} minutes\n'
        f'Join: {meeting_link}\n'
    )
    html = (
        '<h2>New Discovery Call Booking</h2>'
        f'<p><strong>Name:</strong> {escape(name)}</p>'
        f'<p><strong>Email:</strong> <a href="mailto:{escape(booking.email)}">{escape(booking.email)}</a></p>'
        f'<p><strong>Date:</strong> {booking.date}</p>'
        f'<p><strong>Time:</strong> {booking.time} ({escape(booking.timezone or "")})</p>'
        f'<p><strong>Duration:</strong> {booking.duration_minutes} minutes</p>'
        f'<p><strong>Join:</strong> <a href="{escape(meeting_link)}">{escape(meeting_link)}</a></p>'
    )
    return subject, text, html


def attendee_message(booking: BookingRecord, meeting_link: str, sender_name: str) -> tuple[str, str, str]:
    greeting = booking.name or 'there'
    subject = f'Discovery Call Confirmed - {booking.date} at {booking.time}'
    text = (
        f'Hi {greeting},\n\n'
        f'Thanks for booking a discovery call!\n\n'
        f'Date: {booking.date}\n'
        f'Time: {booking.time} ({booking.timezone})\n'
        f'Duration: {booking.duration_minutes} minutes\n'
        f'Join: {meeting_link}\n\n'
        f'If you need to reschedule, reply to this email.\n\n'
        f'Best regards,\n{sender_name}\n'
    )
    html = (
        '<h2>Your Discovery Call is Confirmed!</h2>'
        f'<p>Hi {escape(greeting)},</p>'
        '<p>Thanks for booking a discovery call. I look forward to speaking with you!</p>'
        f'<p><strong>Date:</strong> {booking.date}</p>'
        f'<p><strong>Time:</strong> {booking.time} ({escape(booking.timezone or "")})</p>'
        f'<p><strong>Duration:</strong> {booking.duration_minutes} minutes</p>'
        f'<p><strong>Join:</strong> <a href="{escape(meeting_link)}">{escape(meeting_link)}</a></p>'
        '<p>If you need to reschedule, reply to this email.</p>'
        f'<p>Best regards,<br>{escape(sender_name)}</p>'
    )
    return subject, text, html


class NotificationDispatcher:
    def __init__(
        self,
        mailer: SmtpMailer,
        scheduling: SchedulingConfig,
        *,
        operator_email: str = '',
        sender_name: str = 'Portfolio',
        event_summary: str = 'Discovery Call',
        uid_domain: str = 'portfolio',
    ):
        self.mailer = mailer
        self.scheduling = scheduling
        self.operator_email = operator_email
        self.sender_name = sender_name
        self.event_summary = event_summary
        self.uid_domain = uid_domain

    @classmethod
    def from_config(cls, scheduling: SchedulingConfig) -> 'NotificationDispatcher':
        return cls(
            SmtpMailer.from_config(),
            scheduling,
            operator_email=config.TO_EMAIL,
            sender_name=config.SENDER_NAME,
            event_summary=config.EVENT_SUMMARY,
            uid_domain=config.INVITE_UID_DOMAIN,
        )

    def notify(self, booking: BookingRecord, meeting_link: str) -> NotificationReport:
        if not self.mailer.is_configured:
            logger.info('Email not configured; skipping notifications for booking %s.', booking.id)
            return NotificationReport(
                operator=IntegrationStatus.UNAVAILABLE,
                attendee=IntegrationStatus.UNAVAILABLE,
            )

        return NotificationReport(
            operator=self.notify_operator(booking, meeting_link),
            attendee=self.confirm_attendee(booking, meeting_link),
        )

    def notify_operator(self, booking: BookingRecord, meeting_link: str) -> IntegrationStatus:
        if not self.operator_email:
            return IntegrationStatus.UNAVAILABLE

        subject, text, html = operator_message(booking, meeting_link)
        try:
            self.mailer.send(self.operator_email, subject, text, html)
        except MAIL_ERRORS:
            logger.exception('Operator notification failed for booking %s.', booking.id)
            return IntegrationStatus.FAILED
        return IntegrationStatus.SUCCEEDED

    def confirm_attendee(self, booking: BookingRecord, meeting_link: str) -> IntegrationStatus:
        subject, text, html = attendee_message(booking, meeting_link, self.sender_name)
        invite = build_invite(
            booking,
            self.scheduling,
            meeting_link,
            summary=self.event_summary,
            uid_domain=self.uid_domain,
        )
        try:
            self.mailer.send(
                booking.email,
                subject,
                text,
                html,
                attachments=[Attachment(ICS_FILENAME, invite, ICS_CONTENT_TYPE)],
            )
        except MAIL_ERRORS:
            logger.exception('Attendee confirmation failed for booking %s.', booking.id)
            return IntegrationStatus.FAILED
        return IntegrationStatus.SUCCEEDED
