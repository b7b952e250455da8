"""Unit tests for the alert notification webhook client"""

import httpx
import pytest
from unittest.mock import AsyncMock, patch
from covenant_gateway.config import settings
from covenant_gateway.infrastructure.clients.notifications import NotificationClient
from covenant_gateway.domain.exceptions import NotificationDeliveryError

WEBHOOK_URL = "http://notifications.test/alerts"


def response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", WEBHOOK_URL))


@pytest.fixture
def notification_client() -> NotificationClient:
    return NotificationClient(webhook_url=WEBHOOK_URL, max_retries=3, backoff_base=0)


async def test_send_alerts_success(notification_client: NotificationClient):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = response(202)
        await notification_client.send_alerts({"event": "COVENANT_ALERTS", "alerts": []})

    mock_post.assert_awaited_once()
    assert mock_post.await_args.kwargs["json"] == {"event": "COVENANT_ALERTS", "alerts": []}


async def test_send_alerts_retries_then_succeeds(notification_client: NotificationClient):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.side_effect = [response(503), httpx.ConnectError("refused"), response(200)]
        await notification_client.send_alerts({"event": "COVENANT_ALERTS"})

    assert mock_post.await_count == 3


async def test_send_alerts_gives_up_after_max_retries(notification_client: NotificationClient):
    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = response(500)
        with pytest.raises(NotificationDeliveryError, match="after 3 attempts"):
            await notification_client.send_alerts({"event": "COVENANT_ALERTS"})

    assert mock_post.await_count == 3


async def test_backoff_is_exponential():
    client = NotificationClient(webhook_url=WEBHOOK_URL, max_retries=4, backoff_base=1.0)

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post, patch(
        "covenant_gateway.infrastructure.clients.notifications.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        mock_post.return_value = response(502)
        with pytest.raises(NotificationDeliveryError):
            await client.send_alerts({"event": "COVENANT_ALERTS"})

    assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0, 4.0]


async def test_zero_retries_still_attempts_delivery_once():
    client = NotificationClient(webhook_url=WEBHOOK_URL, max_retries=0, backoff_base=0)

    with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
        mock_post.return_value = response(500)
        with pytest.raises(NotificationDeliveryError, match="after 1 attempts"):
            await client.send_alerts({"event": "COVENANT_ALERTS"})

    mock_post.assert_awaited_once()


def test_explicit_zero_settings_are_kept():
    client = NotificationClient(webhook_url=WEBHOOK_URL, max_retries=1, backoff_base=0, timeout=0)

    assert client.max_retries == 1
    assert client.backoff_base == 0
    assert client.timeout == 0


def test_unset_options_fall_back_to_settings():
    client = NotificationClient(webhook_url=WEBHOOK_URL)

    assert client.max_retries == settings.webhook_max_retries
    assert client.timeout == settings.http_timeout_seconds
