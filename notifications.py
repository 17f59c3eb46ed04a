"""
Outbound email and SMS.

Both senders are fire-and-forget from the handlers' point of view: the
Notifier runs them as background tasks and only logs failures.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional

import requests
from fastapi import Request

from config import Settings

logger = logging.getLogger(__name__)

BREVO_SMS_URL = "https://api.brevo.com/v3/transactionalSMS/sms"


class NotConfigured(RuntimeError):
    pass


class EmailSender:
    def __init__(self, settings: Settings):
        self.host = settings.email_host
        self.port = settings.email_port
        self.secure = settings.email_secure
        self.user = settings.email_user
        self.password = settings.email_pass
        self.sender = settings.email_from

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        if not self.configured:
            raise NotConfigured("EMAIL_HOST / EMAIL_FROM not configured")
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        smtp_cls = smtplib.SMTP_SSL if self.secure else smtplib.SMTP
        with smtp_cls(self.host, self.port, timeout=10) as smtp:
            if not self.secure:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password or "")
            smtp.send_message(msg)
        logger.info("Email sent to %s: %s", to, subject)


class SmsSender:
    def __init__(self, settings: Settings):
        self.api_key = settings.brevo_api_key
        self.sender = settings.sms_from

    def send(self, to: str, content: str) -> Dict[str, Any]:
        if not self.api_key:
            raise NotConfigured("BREVO_API_KEY not configured")
        response = requests.post(
            BREVO_SMS_URL,
            json={"sender": self.sender, "recipient": to, "content": content},
            headers={"api-key": self.api_key},
            timeout=10,
        )
        if not response.ok:
            raise RuntimeError(f"Brevo SMS send failed ({response.status_code}): {response.text}")
        logger.info("SMS sent to %s", to)
        return response.json() if response.content else {}


class Notifier:
    def __init__(self, email: EmailSender, sms: SmsSender):
        self.email = email
        self.sms = sms

    @classmethod
    def from_settings(cls, settings: Settings) -> "Notifier":
        return cls(EmailSender(settings), SmsSender(settings))

    def email_quietly(self, to: str, subject: str, text: str) -> None:
        try:
            self.email.send(to, subject, text)
        except Exception as exc:
            logger.warning("Failed to send email to %s (%s): %s", to, subject, exc)

    def sms_quietly(self, to: str, content: str) -> None:
        try:
            self.sms.send(to, content)
        except Exception as exc:
            logger.warning("Failed to send SMS to %s: %s", to, exc)


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier
