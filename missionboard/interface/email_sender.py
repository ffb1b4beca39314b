"""Transactional email sender over an HTTP email API (Resend-compatible)."""

import logging

import httpx
from pydantic import BaseModel, Field

from missionboard.core.config import constants, settings


logger = logging.getLogger(__name__)


HTTP_CLIENT_ERROR_START = 400
HTTP_CLIENT_ERROR_END = 500


class SendEmailResult(BaseModel):
    """Result of sending an email."""

    success: bool = Field(..., description="Whether the email was accepted by the provider")
    message_id: str | None = Field(None, description="Provider message ID if successful")
    error: str | None = Field(None, description="Error message if failed")


async def send_email(*, to: str, subject: str, html: str) -> SendEmailResult:
    """Send one email. Failures are returned, never raised; retrying is the queue's job."""
    try:
        api_key = settings.require_credential("email_api_key", "Email API")
    except ValueError as e:
        logger.warning("Email not sent: %s", e)
        return SendEmailResult(success=False, error=str(e))

    payload = {"from": settings.email_from, "to": [to], "subject": subject, "html": html}
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    try:
        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            response = await client.post(settings.email_api_url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("Email transport error", extra={"to": to, "subject": subject, "error": str(e)})
        return SendEmailResult(success=False, error=f"Transport error: {e!s}")

    if response.is_success:
        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("id") if isinstance(body, dict) else None
        logger.info("Email sent", extra={"to": to, "subject": subject, "message_id": message_id})
        return SendEmailResult(success=True, message_id=message_id)

    if HTTP_CLIENT_ERROR_START <= response.status_code < HTTP_CLIENT_ERROR_END:
        error = f"Client error: {response.text}"
    else:
        error = f"Server error: {response.status_code}"
    logger.warning("Email rejected", extra={"to": to, "status_code": response.status_code, "error": error})
    return SendEmailResult(success=False, error=error)
