"""Email delivery through the Resend HTTP API."""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from pricewatch.config import config

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class DeliveryError(Exception):
    """A message could not be delivered to the email service."""


class TransientDeliveryError(DeliveryError):
    """Rate limited or server-side failure; worth another attempt."""


@dataclass(frozen=True)
class EmailMessage:
    sender: str
    to: str
    subject: str
    html: str

    def to_payload(self) -> dict:
        return {"from": self.sender, "to": [self.to], "subject": self.subject, "html": self.html}


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> Optional[str]:
        """Deliver one message. Raises DeliveryError on failure."""
        ...

    async def close(self) -> None:
        ...


def is_retryable_status(response: httpx.Response) -> bool:
    """Check if status code is retryable."""
    return response.status_code in (429, 500, 502, 503, 504)


class ResendSender:
    """One API call per recipient; the service has no batching contract here."""

    def __init__(
        self,
        api_key: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
    ):
        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=8)

    @classmethod
    def from_config(cls) -> Optional["ResendSender"]:
        """Sender built from RESEND_API_KEY, or None when no credential is configured."""
        if not config.RESEND_API_KEY:
            return None
        return cls(config.RESEND_API_KEY)

    async def close(self) -> None:
        await self.client.aclose()

    async def _post(self, payload: dict) -> dict:
        response = await self.client.post(RESEND_API_URL, json=payload)
        if is_retryable_status(response):
            raise TransientDeliveryError(f"HTTP {response.status_code}: {response.text[:200]}")
        if not response.is_success:
            raise DeliveryError(f"HTTP {response.status_code}: {response.text[:200]}")
        try:
            return response.json()
        except ValueError:
            return {}

    async def send(self, message: EmailMessage) -> Optional[str]:
        """Send one message; returns the provider's message id when it gives one."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception_type((TransientDeliveryError, httpx.TransportError)),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    data = await self._post(message.to_payload())
        except httpx.TransportError as e:
            raise DeliveryError(f"network error: {e.__class__.__name__}: {e}") from e
        return data.get("id") if isinstance(data, dict) else None
