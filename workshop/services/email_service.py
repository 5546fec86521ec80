"""Invoice email delivery through the Brevo transactional API.

Results are plain dicts (`success`, `status_code`, `message_id`, `error`);
the invoice route turns a failed result into a 502. Tests swap in
MockEmailService through the `get_email_service` dependency.
"""

import base64
import json
import logging
import uuid
from html import escape
from typing import Any, Dict, List, Optional

import httpx

from workshop.config import settings

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
REQUEST_TIMEOUT = 30.0

Attachment = Dict[str, str]


def pdf_attachment(filename: str, content: bytes) -> Attachment:
    """Brevo attachment entry: file name plus base64 content."""
    return {"name": filename, "content": base64.b64encode(content).decode("ascii")}


def _failure(error: str, status_code: Optional[int] = None) -> Dict[str, Any]:
    return {"success": False, "error": error, "status_code": status_code, "message_id": None}


def _text_to_html(body: str) -> str:
    return f"<html><body><p>{escape(body).replace(chr(10), '<br>')}</p></body></html>"


class EmailService:
    """Sends mail as EMAIL_FROM_NAME <EMAIL_FROM_ADDRESS> with the BREVO_API_KEY."""

    provider = "brevo"

    def __init__(self):
        self.api_key = self._extract_api_key(settings.BREVO_API_KEY)
        self.from_address = settings.EMAIL_FROM_ADDRESS
        self.from_name = settings.EMAIL_FROM_NAME

    @staticmethod
    def _extract_api_key(raw_key: Optional[str]) -> Optional[str]:
        """Accept a bare `xkeysib-` key or one wrapped as base64 JSON `{"api_key": ...}`."""
        if not raw_key:
            return None
        if raw_key.startswith("xkeysib-"):
            return raw_key
        try:
            data = json.loads(base64.b64decode(raw_key + "==").decode())
        except (ValueError, UnicodeDecodeError):
            return raw_key
        if isinstance(data, dict) and "api_key" in data:
            return data["api_key"]
        return raw_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and bool(self.from_address)

    def get_status(self) -> Dict[str, Any]:
        status = {"provider": self.provider, "configured": self.is_configured}
        if self.is_configured:
            status.update(sender=f"{self.from_name} <{self.from_address}>")
        else:
            status.update(message="Set BREVO_API_KEY and EMAIL_FROM_ADDRESS to send invoices by email.")
        return status

    def build_payload(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        payload = {
            "sender": {"name": self.from_name, "email": self.from_address},
            "to": [{"email": to}],
            "subject": subject,
            "textContent": body,
            "htmlContent": html_body or _text_to_html(body),
        }
        if reply_to:
            payload["replyTo"] = {"email": reply_to}
        if attachments:
            payload["attachment"] = attachments
        return payload

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        """Send one message. Never raises for provider or network failures."""
        if not self.api_key:
            logger.error("Invoice email to %s not sent: Brevo API key not configured", to)
            return _failure("Brevo API key not configured")

        payload = self.build_payload(to, subject, body, html_body, reply_to, attachments)
        headers = {
            "accept": "application/json",
            "api-key": self.api_key,
            "content-type": "application/json",
        }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(BREVO_API_URL, json=payload, headers=headers, timeout=REQUEST_TIMEOUT)
        except httpx.TimeoutException:
            logger.error("Brevo request timed out sending to %s", to)
            return _failure("Brevo API request timed out")
        except httpx.HTTPError as e:
            logger.error("Brevo request failed sending to %s: %s", to, e)
            return _failure(str(e))

        if response.status_code not in (200, 201):
            logger.error("Brevo rejected email to %s (%s): %s", to, response.status_code, response.text)
            return _failure(f"Brevo API error: {response.text}", response.status_code)

        message_id = response.json().get("messageId")
        logger.info("Email sent to %s via Brevo (%s)", to, message_id)
        return {"success": True, "status_code": response.status_code, "message_id": message_id}


class MockEmailService(EmailService):
    """Records messages instead of sending them."""

    provider = "mock"

    def __init__(self):
        self.api_key = "mock-key"
        self.from_address = "test@example.com"
        self.from_name = "Test Sender"
        self._sent_emails: List[Dict[str, Any]] = []

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
        reply_to: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> Dict[str, Any]:
        message_id = f"mock-{uuid.uuid4().hex[:16]}"
        self._sent_emails.append(
            {
                "to": to,
                "subject": subject,
                "body": body,
                "html_body": html_body,
                "reply_to": reply_to,
                "attachments": attachments or [],
                "message_id": message_id,
            }
        )
        logger.info("Mock email to %s: %s", to, subject)
        return {"success": True, "status_code": 201, "message_id": message_id}


def get_email_service() -> EmailService:
    """FastAPI dependency; tests override it with MockEmailService."""
    return EmailService()
