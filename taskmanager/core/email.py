"""
Email Delivery Module

The service only ever needs one capability: send(to, subject, html). SMTPMailer
delivers through an SMTP relay; ConsoleMailer writes the message to the log and
is used whenever SMTP is not configured (local development, tests).
"""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from taskmanager.core.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"

templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_email(template_name: str, **context) -> str:
    return templates.get_template(template_name).render(**context)


class EmailDeliveryError(Exception):
    pass


class Mailer:
    def send(self, to: str, subject: str, html: str) -> None:
        raise NotImplementedError


class ConsoleMailer(Mailer):
    def send(self, to: str, subject: str, html: str) -> None:
        logger.info("----- Sending email -----\nTo: %s\nSubject: %s\n%s", to, subject, html)


class SMTPMailer(Mailer):
    def __init__(self, host: str, port: int, user: str = None, password: str = None, sender: str = None):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or settings.EMAILS_FROM

    def send(self, to: str, subject: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html"))

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.sender, to, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to}: {e}")
            raise EmailDeliveryError("Failed to send email") from e
        logger.info(f"Email sent to {to}")


def build_mailer() -> Mailer:
    if settings.SMTP_HOST:
        return SMTPMailer(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
        )
    return ConsoleMailer()


def get_mailer() -> Mailer:
    return build_mailer()
