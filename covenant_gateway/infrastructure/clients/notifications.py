"""Alert notification webhook client with exponential backoff retry logic"""

import httpx
import asyncio
from typing import Dict, Any
from covenant_gateway.config import settings
from covenant_gateway.domain.exceptions import NotificationDeliveryError
from covenant_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


class NotificationClient:
    """Client for delivering covenant alerts to the notification service"""

    def __init__(
        self,
        webhook_url: str | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        timeout: float | None = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        # At least one delivery attempt is always made
        self.max_retries = max(1, settings.webhook_max_retries if max_retries is None else max_retries)
        self.backoff_base = settings.webhook_backoff_base if backoff_base is None else backoff_base
        self.timeout = settings.http_timeout_seconds if timeout is None else timeout

    async def send_alerts(self, payload: Dict[str, Any]) -> None:
        """
        Send a covenant alert event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^(attempt-1))
        - Retries on HTTP status errors and network failures
        - Tracks latency histogram and failure counter

        Raises:
            NotificationDeliveryError: All attempts failed
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise NotificationDeliveryError(
                            f"Alert notification failed after {attempt} attempts: {e}"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
