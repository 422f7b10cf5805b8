import smtplib
from datetime import datetime, timezone

import pytest

from backend.core.config import SchedulingConfig
from backend.integrations import mailer as mailer_module
from backend.integrations.base import IntegrationStatus
from backend.integrations.invites import build_invite
from backend.integrations.mailer import Attachment, SmtpMailer, build_message
from backend.integrations.notifications import NotificationDispatcher
from backend.scheduling.schemas import BookingRecord

MEETING_LINK = 'https://meet.google.com/abc-defg-hij'


@pytest.fixture
def scheduling() -> SchedulingConfig:
    return SchedulingConfig(slot_duration_minutes=20, day_start_hour=10, day_end_hour=17, timezone='Asia/Kolkata')


@pytest.fixture
def booking() -> BookingRecord:
    return BookingRecord(
        id='2024-06-10-10:00',
        name='Ada Lovelace',
        email='ada@example.com',
        date='2024-06-10',
        time='10:00',
        duration_minutes=20,
        timezone='Asia/Kolkata',
        status='confirmed',
        created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


class FakeMailer:
    def __init__(self, configured: bool = True, fail_for: set[str] | None = None):
        self.is_configured = configured
        self.fail_for = fail_for or set()
        self.sent = []

    def send(self, to, subject, text, html=None, attachments=None):
        if to in self.fail_for:
            raise smtplib.SMTPRecipientsRefused({to: (550, b'rejected')})
        self.sent.append({'to': to, 'subject': subject, 'text': text, 'attachments': attachments or []})


def test_notify_is_unavailable_without_smtp(booking, scheduling) -> None:
    mailer = FakeMailer(configured=False)
    dispatcher = NotificationDispatcher(mailer, scheduling, operator_email='owner@example.com')

    report = dispatcher.notify(booking, MEETING_LINK)

    assert report.operator == IntegrationStatus.UNAVAILABLE
    assert report.attendee == IntegrationStatus.UNAVAILABLE
    assert mailer.sent == []


def test_notify_sends_operator_and_attendee_messages(booking, scheduling) -> None:
    mailer = FakeMailer()
    dispatcher = NotificationDispatcher(mailer, scheduling, operator_email='owner@example.com', sender_name='Sam')

    report = dispatcher.notify(booking, MEETING_LINK)

    assert report.operator == IntegrationStatus.SUCCEEDED
    assert report.attendee == IntegrationStatus.SUCCEEDED
    operator, attendee = mailer.sent
    assert operator['to'] == 'owner@example.com'
    assert operator['subject'] == 'New Booking: 2024-06-10 at 10:00'
    assert 'ada@example.com' in operator['text']
    assert attendee['to'] == 'ada@example.com'
    assert attendee['subject'] == 'Discovery Call Confirmed - 2024-06-10 at 10:00'
    assert MEETING_LINK in attendee['text']
    assert attendee['text'].rstrip().endswith('Sam')

    invite = attendee['attachments'][0]
    assert invite.filename == 'invite.ics'
    assert invite.content_type.startswith('text/calendar')
    assert 'METHOD:REQUEST' in invite.content


def test_operator_failure_does_not_block_attendee_confirmation(booking, scheduling) -> None:
    mailer = FakeMailer(fail_for={'owner@example.com'})
    dispatcher = NotificationDispatcher(mailer, scheduling, operator_email='owner@example.com')

    report = dispatcher.notify(booking, MEETING_LINK)

    assert report.operator == IntegrationStatus.FAILED
    assert report.attendee == IntegrationStatus.SUCCEEDED
    assert [message['to'] for message in mailer.sent] == ['ada@example.com']


def test_attendee_failure_is_reported_without_raising(booking, scheduling) -> None:
    mailer = FakeMailer(fail_for={'ada@example.com'})
    dispatcher = NotificationDispatcher(mailer, scheduling, operator_email='owner@example.com')

    report = dispatcher.notify(booking, MEETING_LINK)

    assert report.operator == IntegrationStatus.SUCCEEDED
    assert report.attendee == IntegrationStatus.FAILED


def test_missing_operator_address_skips_operator_message(booking, scheduling) -> None:
    mailer = FakeMailer()
    dispatcher = NotificationDispatcher(mailer, scheduling, operator_email='')

    report = dispatcher.notify(booking, MEETING_LINK)

    assert report.operator == IntegrationStatus.UNAVAILABLE
    assert report.attendee == IntegrationStatus.SUCCEEDED


def test_build_invite_uses_utc_times_for_local_slot(booking, scheduling) -> None:
    invite = build_invite(
        booking,
        scheduling,
        MEETING_LINK,
        uid_domain='sam-portfolio',
        now=datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc),
    )
    lines = invite.split('\r\n')

    assert lines[0] == 'BEGIN:VCALENDAR'
    assert 'UID:2024-06-10-10:00@sam-portfolio' in lines
    assert 'DTSTAMP:20240601T120000Z' in lines
    assert 'DTSTART:20240610T043000Z' in lines
    assert 'DTEND:20240610T045000Z' in lines
    assert 'ATTENDEE;CN="Ada Lovelace";RSVP=TRUE:MAILTO:ada@example.com' in lines
    assert f'DESCRIPTION:Join link: {MEETING_LINK}\\nBooked for Ada Lovelace' in lines
    assert invite.endswith('END:VCALENDAR\r\n')


def test_build_message_attaches_calendar_part() -> None:
    message = build_message(
        'Sam <sam@example.com>',
        'ada@example.com',
        'Subject',
        'plain body',
        '<p>html body</p>',
        attachments=[Attachment('invite.ics', 'BEGIN:VCALENDAR', 'text/calendar; method=REQUEST; charset=UTF-8')],
    )

    parts = message.get_payload()
    assert message['To'] == 'ada@example.com'
    assert parts[0].get_content_type() == 'multipart/alternative'
    assert parts[1].get_content_type() == 'text/calendar'
    assert parts[1].get_param('method') == 'REQUEST'
    assert parts[1].get_filename() == 'invite.ics'


def test_smtp_mailer_uses_starttls_and_login(monkeypatch) -> None:
    sessions = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            self.host = host
            self.port = port
            self.timeout = timeout
            self.calls = []
            sessions.append(self)

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            return False

        def starttls(self):
            self.calls.append('starttls')

        def login(self, username, password):
            self.calls.append(('login', username, password))

        def send_message(self, message):
            self.calls.append(('send', message['To'], message['Subject']))

    monkeypatch.setattr(mailer_module.smtplib, 'SMTP', FakeSMTP)
    mailer = SmtpMailer('smtp.example.com', 2525, 'user', 'secret', 'sam@example.com', 'Sam', timeout=5)

    mailer.send('ada@example.com', 'Hello', 'Body')

    session = sessions[0]
    assert (session.host, session.port, session.timeout) == ('smtp.example.com', 2525, 5)
    assert session.calls == ['starttls', ('login', 'user', 'secret'), ('send', 'ada@example.com', 'Hello')]
    assert mailer.sender == 'Sam <sam@example.com>'


def test_smtp_mailer_requires_host_and_credentials() -> None:
    assert not SmtpMailer('', username='user', password='secret').is_configured
    assert not SmtpMailer('smtp.example.com', username='user').is_configured
    assert SmtpMailer('smtp.example.com', username='user', password='secret').is_configured
