"""HTTP webhook sender for budget alert notifications.

Posts a NotificationPayload to the budget-alert delivery function, which is
responsible for composing and emailing the alert. This adapter only handles
transport: success means the function answered 2xx. Delivery failures are
logged and reported as False, never raised, so a failing mail pipeline
cannot break budget evaluation.
"""

from typing import Any

import httpx
import structlog

from spendlens.core.models import NotificationPayload
from spendlens.settings import Settings

logger = structlog.get_logger(__name__)


def payload_to_json(payload: NotificationPayload) -> dict[str, Any]:
    """Serialize a payload with the camelCase keys the delivery function expects."""
    return {
        "alertName": payload.alert_name,
        "recipientEmail": payload.recipient_email,
        "threshold": float(payload.threshold),
        "currentAmount": float(payload.current_amount),
        "periodType": payload.period_type,
        "status": payload.status,
        "filterTeam": payload.filter_team,
        "filterService": payload.filter_service,
        "filterEnvironment": payload.filter_environment,
    }


class WebhookNotificationSender:
    """Async HTTP sender for budget alert payloads.

    Implements the NotificationSender interface from core/interfaces.py.

    Args:
        settings: Settings providing the webhook URL, timeout and enable flag.
        transport: Optional httpx transport (used to inject a mock in tests).
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._url = settings.notification_webhook_url
        self._timeout = settings.notification_timeout_seconds
        self._enabled = settings.notifications_enabled
        self._transport = transport

    async def send(self, payload: NotificationPayload) -> bool:
        """Post a payload to the delivery function.

        Args:
            payload: The alert to deliver.

        Returns:
            True when the delivery function accepted the payload.
        """
        if not self._enabled:
            logger.info(
                "notification_skipped_disabled",
                alert_name=payload.alert_name,
                status=payload.status,
            )
            return False

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._url, json=payload_to_json(payload))
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "notification_http_error",
                    url=self._url,
                    alert_name=payload.alert_name,
                    status_code=exc.response.status_code,
                    response_text=exc.response.text[:500],
                )
                return False
            except httpx.RequestError as exc:
                logger.error(
                    "notification_connection_error",
                    url=self._url,
                    alert_name=payload.alert_name,
                    error=str(exc),
                )
                return False

        logger.info(
            "notification_sent",
            alert_name=payload.alert_name,
            status=payload.status,
            recipient_domain=payload.recipient_email.rsplit("@", 1)[-1],
        )
        return True


__all__ = ["WebhookNotificationSender", "payload_to_json"]
