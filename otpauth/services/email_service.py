"""Email delivery for OTP codes.

The provider is picked by ``EMAIL_PROVIDER``: ``resend`` (HTTP API),
``smtp`` or ``console`` (logs a masked notice, for local development).
Provider failures are logged and reported as ``False``; callers never see
provider-specific errors.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

import httpx

from otpauth.config import AuthConfig

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


# =============================================================================
# Email Provider Interface
# =============================================================================

class EmailProvider(ABC):
    """Abstract base class for email providers."""

    @abstractmethod
    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        """Send an email. Returns True on success, False on failure."""


class ResendProvider(EmailProvider):
    """Resend HTTP API provider."""

    def __init__(self, api_key: str | None = None, client: httpx.AsyncClient | None = None):
        self.api_key = api_key or AuthConfig.RESEND_API_KEY
        self._client = client

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        if not self.api_key:
            logger.error("[Resend] RESEND_API_KEY not configured")
            return False

        payload = {
            "from": f"{AuthConfig.EMAIL_FROM_NAME} <{AuthConfig.EMAIL_FROM_ADDRESS}>",
            "to": [to_email],
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            payload["text"] = text_body
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(RESEND_API_URL, headers=headers, json=payload)
            else:
                async with httpx.AsyncClient(timeout=10) as client:
                    response = await client.post(RESEND_API_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[Resend] Error sending to {mask_email(to_email)}: {e}")
            return False

        if response.status_code != 200:
            logger.error(
                f"[Resend] Delivery to {mask_email(to_email)} rejected with status {response.status_code}"
            )
            return False
        logger.info(f"[Resend] Email sent to {mask_email(to_email)}")
        return True


class SmtpProvider(EmailProvider):
    """SMTP provider; the blocking smtplib call runs in a worker thread."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
    ):
        self.host = host or AuthConfig.SMTP_HOST
        self.port = port or AuthConfig.SMTP_PORT
        self.user = user or AuthConfig.SMTP_USER
        self.password = password or AuthConfig.SMTP_PASSWORD
        self.use_tls = AuthConfig.SMTP_USE_TLS if use_tls is None else use_tls

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            server.login(self.user, self.password)
            server.send_message(message)

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        if not self.user or not self.password:
            logger.error("[SMTP] Email not sent - missing SMTP_USER/SMTP_PASSWORD")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = f"{AuthConfig.EMAIL_FROM_NAME} <{AuthConfig.EMAIL_FROM_ADDRESS}>"
        message["To"] = to_email
        message.set_content(text_body or "")
        message.add_alternative(html_body, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"[SMTP] Error sending to {mask_email(to_email)}: {e}")
            return False
        logger.info(f"[SMTP] Email sent to {mask_email(to_email)}")
        return True


class ConsoleProvider(EmailProvider):
    """Development provider. Records deliveries without sending anything."""

    def __init__(self) -> None:
        self.outbox: list[dict[str, str]] = []

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None
    ) -> bool:
        self.outbox.append({"to": to_email, "subject": subject, "text": text_body or ""})
        logger.info(f"[Console] Email to {mask_email(to_email)} with subject {subject!r} recorded")
        return True


def create_email_provider(provider_name: str | None = None) -> EmailProvider:
    provider_name = (provider_name or AuthConfig.EMAIL_PROVIDER).lower()
    if provider_name == "resend":
        return ResendProvider()
    if provider_name == "smtp":
        return SmtpProvider()
    if provider_name == "console":
        return ConsoleProvider()
    raise ValueError(f"Unknown email provider: {provider_name}. Use 'resend', 'smtp' or 'console'.")


# =============================================================================
# Email Templates
# =============================================================================

def _expiry_minutes() -> int:
    return max(1, AuthConfig.OTP_EXPIRY_SECONDS // 60)


def render_otp_html(otp: str) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Your One-Time Password (OTP)</h2>
      <p>Use the following OTP to complete your verification:</p>
      <div style="background: #f4f4f4; padding: 20px; text-align: center; margin: 20px 0;">
        <h1 style="margin: 0; font-size: 32px; letter-spacing: 5px;">{otp}</h1>
      </div>
      <p>This OTP is valid for {_expiry_minutes()} minutes.</p>
      <p>If you didn't request this, please ignore this email.</p>
      <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">
      <p style="color: #666; font-size: 12px;">This is an automated message, please do not reply.</p>
    </div>"""


def render_otp_text(otp: str) -> str:
    return f"Your OTP code is: {otp}\nThis OTP is valid for {_expiry_minutes()} minutes."


# =============================================================================
# Notifier
# =============================================================================

class EmailNotifier:
    """Delivers OTP codes by email through the configured provider."""

    def __init__(self, provider: EmailProvider | None = None) -> None:
        self.provider = provider or create_email_provider()

    async def send(self, destination: str, subject: str, code: str) -> bool:
        return await self.provider.send(
            destination,
            subject,
            render_otp_html(code),
            render_otp_text(code),
        )
