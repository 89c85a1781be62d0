"""Outbound email delivery clients."""

import time
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from distportal.config.settings import Settings, get_settings
from distportal.core.logging import log_external_call
from distportal.utils.exceptions import EmailDeliveryError

logger = structlog.get_logger()


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a single send attempt.

    ``ok`` is True only when the provider explicitly accepted the message.
    """

    ok: bool
    message_id: str | None = None
    error: str | None = None


class EmailClient(Protocol):
    """Anything that can deliver one HTML email."""

    async def send(self, to: str, subject: str, html: str) -> DeliveryResult: ...

    async def aclose(self) -> None: ...


class ResendEmailClient:
    """Email client for a Resend-compatible JSON HTTP API.

    Connection failures are retried a bounded number of times; any HTTP
    response, including an error status, is final for that attempt.
    """

    def __init__(
        self,
        api_key: str,
        *,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 15.0,
        connect_retry_attempts: int = 2,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._sender = sender
        self._api_url = api_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._retrying = retry(
            retry=retry_if_exception_type(httpx.ConnectError),
            stop=stop_after_attempt(max(1, connect_retry_attempts)),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            reraise=True,
        )

    async def __aenter__(self) -> "ResendEmailClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, payload: dict) -> httpx.Response:
        return await self._client.post(
            self._api_url,
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

    async def send(self, to: str, subject: str, html: str) -> DeliveryResult:
        """Send one email.

        Returns:
            DeliveryResult with ok=True only on a 2xx provider response

        Raises:
            EmailDeliveryError: If the provider could not be reached
        """
        payload = {"from": self._sender, "to": to, "subject": subject, "html": html}
        start = time.perf_counter()
        try:
            response = await self._retrying(self._post)(payload)
        except httpx.HTTPError as exc:
            log_external_call(
                logger,
                service="email",
                operation="send",
                duration_ms=(time.perf_counter() - start) * 1000,
                success=False,
                error=type(exc).__name__,
            )
            raise EmailDeliveryError(f"Email provider unreachable: {exc}") from exc

        ok = response.is_success
        log_external_call(
            logger,
            service="email",
            operation="send",
            duration_ms=(time.perf_counter() - start) * 1000,
            success=ok,
            status_code=response.status_code,
        )
        if not ok:
            return DeliveryResult(ok=False, error=response.text or f"HTTP {response.status_code}")

        message_id = None
        if response.headers.get("content-type", "").startswith("application/json"):
            message_id = response.json().get("id")
        return DeliveryResult(ok=True, message_id=message_id)


class LoggingEmailClient:
    """Stand-in used when no provider key is configured.

    Logs each message and reports it as delivered so notification tracking
    still advances in development environments.
    """

    async def send(self, to: str, subject: str, html: str) -> DeliveryResult:
        logger.info("email_delivery_skipped", to=to, subject=subject, reason="no_api_key")
        return DeliveryResult(ok=True)

    async def aclose(self) -> None:
        return None


def build_email_client(settings: Settings | None = None) -> EmailClient:
    """Create the email client appropriate for the configuration."""
    if settings is None:
        settings = get_settings()

    if not settings.email_enabled:
        return LoggingEmailClient()

    return ResendEmailClient(
        settings.email_api_key.get_secret_value(),
        sender=f"{settings.notifications.sender_name} <{settings.email_from}>",
        api_url=settings.email_api_url,
        timeout=settings.notifications.send_timeout_seconds,
        connect_retry_attempts=settings.notifications.connect_retry_attempts,
    )
