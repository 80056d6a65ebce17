"""Resend email service for sending HTML reports over HTTP."""

from dataclasses import dataclass
from typing import Any, List, Optional, Union

import httpx

from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class EmailResult:
    """Result of an email operation."""

    success: bool
    message: str
    message_id: Optional[str] = None


class ResendEmailService:
    """Service for sending emails through the Resend HTTP API.

    Use as async context manager for proper resource cleanup:
        async with ResendEmailService(api_key) as service:
            await service.send_html_email(...)
    """

    def __init__(
        self,
        api_key: Optional[str],
        sender: str = "AutoGeorge <noreply@resend.dev>",
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the email service.

        Args:
            api_key: Resend API key; without one nothing is sent.
            sender: From header.
            api_url: Resend send endpoint.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "ResendEmailService":
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def is_available(self) -> bool:
        """Check if an API key is configured."""
        if not self.api_key:
            logger.warning("resend_not_available", reason="RESEND_API_KEY not set")
            return False
        return True

    async def send_html_email(
        self,
        to: Union[str, List[str]],
        subject: str,
        html_body: str,
    ) -> EmailResult:
        """Send an HTML email.

        Args:
            to: Recipient email address or list of addresses.
            subject: Email subject line.
            html_body: HTML content of the email body.

        Returns:
            EmailResult with success status and message.
        """
        if not self.is_available():
            return EmailResult(success=False, message="Resend API key not configured")
        if self._client is None:
            raise RuntimeError("Client not initialized. Use async context manager.")

        recipients = [to] if isinstance(to, str) else list(to)
        if not recipients:
            return EmailResult(success=False, message="No recipients")

        try:
            response = await self._client.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.sender,
                    "to": recipients,
                    "subject": subject,
                    "html": html_body,
                },
            )
        except httpx.HTTPError as e:
            logger.error("email_send_failed", error=str(e))
            return EmailResult(success=False, message=f"Failed to send email: {e}")

        if response.status_code >= 400:
            logger.error(
                "email_send_rejected",
                status=response.status_code,
                body=response.text[:200],
            )
            return EmailResult(
                success=False,
                message=f"Resend error {response.status_code}: {response.text[:200]}",
            )

        message_id = response.json().get("id") if response.content else None
        logger.info("email_sent", recipients=len(recipients), subject=subject, message_id=message_id)
        return EmailResult(
            success=True,
            message=f"Email sent to {', '.join(recipients)}",
            message_id=message_id,
        )
