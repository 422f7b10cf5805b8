import logging
import smtplib
from dataclasses import dataclass
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from backend.core import config

logger = logging.getLogger(__name__)

MAIL_ERRORS = (smtplib.SMTPException, OSError)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: str
    content_type: str


def build_message(
    sender: str,
    to: str,
    subject: str,
    text: str,
    html: str | None = None,
    attachments: list[Attachment] | None = None,
) -> MIMEMultipart:
    message = MIMEMultipart('mixed')
    message['From'] = sender
    message['To'] = to
    message['Subject'] = subject

    body = MIMEMultipart('alternative')
    body.attach(MIMEText(text, 'plain', 'utf-8'))
    if html:
        body.attach(MIMEText(html, 'html', 'utf-8'))
    message.attach(body)

    for attachment in attachments or []:
        maintype, _, subtype = attachment.content_type.partition('/')
        subtype, _, params = subtype.partition(';')
        part = MIMEBase(maintype, subtype.strip())
        for param in params.split(';'):
            key, _, value = param.strip().partition('=')
            if key and key != 'charset':
                part.set_param(key, value)
        part.set_payload(attachment.content, charset='utf-8')
        part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
        message.attach(part)

    return message


class SmtpMailer:
    """Sends mail through a single SMTP relay using STARTTLS."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = '',
        password: str = '',
        from_email: str = '',
        sender_name: str = '',
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.sender_name = sender_name
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> 'SmtpMailer':
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USER,
            password=config.SMTP_PASS,
            from_email=config.FROM_EMAIL,
            sender_name=config.SENDER_NAME,
            timeout=config.INTEGRATION_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password)

    @property
    def sender(self) -> str:
        if self.sender_name:
            return formataddr((self.sender_name, self.from_email))
        return self.from_email

    def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        attachments: list[Attachment] | None = None,
    ) -> None:
        message = build_message(self.sender, to, subject, text, html, attachments)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.username, self.password)
            server.send_message(message)

        logger.info('Email "%s" sent to %s.', subject, to)
