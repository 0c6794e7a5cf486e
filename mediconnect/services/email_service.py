"""
Outbound email for MediConnect.

Uses Resend when RESEND_API_KEY is configured and plain SMTP otherwise.
Senders never raise: a failed delivery is logged and reported as False.
"""
from abc import ABC, abstractmethod
import html as html_lib
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List

import resend

from ..core.config import settings

logger = logging.getLogger(__name__)


class EmailSender(ABC):
    @abstractmethod
    def send(self, recipients: List[str], subject: str, html: str) -> bool:
        """Deliver one message to every recipient without exposing them to each other."""


class ResendEmailSender(EmailSender):
    # Resend rejects more than 50 addresses per field
    max_recipients = 50

    def __init__(self, api_key: str, from_address: str):
        self.api_key = api_key
        self.from_address = from_address

    def send(self, recipients: List[str], subject: str, html: str) -> bool:
        resend.api_key = self.api_key
        delivered = True
        for start in range(0, len(recipients), self.max_recipients):
            chunk = recipients[start:start + self.max_recipients]
            try:
                response = resend.Emails.send({
                    "from": self.from_address,
                    "to": [self.from_address],
                    "bcc": chunk,
                    "subject": subject,
                    "html": html,
                })
            except Exception as e:
                logger.error(f"Resend delivery to {len(chunk)} recipients failed: {e}")
                delivered = False
                continue
            logger.info(f"Email sent via Resend to {len(chunk)} recipients: {response}")
        return delivered


class SMTPEmailSender(EmailSender):
    def __init__(self, host, port: int, username, password, from_address: str):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address

    def send(self, recipients: List[str], subject: str, html: str) -> bool:
        if not self.host:
            logger.error("No email service configured: set RESEND_API_KEY or SMTP_HOST")
            return False

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.from_address
        # Recipients travel only on the envelope, never in the headers
        message["To"] = self.from_address
        message.attach(MIMEText(html, "html"))

        envelope_from = self.from_address.split("<")[-1].rstrip(">")

        try:
            if self.port == 465:
                context = ssl.create_default_context()
                server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=30)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=30)
                server.starttls(context=ssl.create_default_context())
            with server:
                if self.username:
                    server.login(self.username, self.password or "")
                server.sendmail(envelope_from, recipients, message.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery via {self.host} failed: {e}")
            return False

        logger.info(f"Email sent via SMTP {self.host} to {len(recipients)} recipients")
        return True


def get_email_sender() -> EmailSender:
    """Email sender dependency."""
    if settings.RESEND_API_KEY:
        return ResendEmailSender(settings.RESEND_API_KEY, settings.EMAIL_FROM_ADDRESS)
    return SMTPEmailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        from_address=settings.EMAIL_FROM_ADDRESS,
    )


def doctor_online_email(doctor_name: str, speciality: str) -> tuple:
    """Subject and HTML body announcing that a doctor is online."""
    subject = f"Dr. {doctor_name} is now online!"
    doctor_name = html_lib.escape(doctor_name)
    speciality = html_lib.escape(speciality)
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #2563eb;">Doctor Available Now!</h2>
  <p>Good news! <strong>Dr. {doctor_name}</strong> ({speciality}) is now online and available for consultation.</p>
  <p>You can now book an appointment with them through MediConnect.</p>
  <div style="margin: 20px 0; padding: 15px; background-color: #f3f4f6; border-radius: 8px;">
    <p style="margin: 0;"><strong>Doctor:</strong> Dr. {doctor_name}</p>
    <p style="margin: 0;"><strong>Speciality:</strong> {speciality}</p>
    <p style="margin: 0;"><strong>Status:</strong> Online</p>
  </div>
  <p>Best regards,<br>MediConnect Team</p>
</div>
""".strip()
    return subject, html
