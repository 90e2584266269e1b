"""Webhook notification for instances that stay unhealthy."""
from __future__ import annotations

from typing import Optional

import httpx

from src.lifecycle.domain.ports import AlertService
from src.shared.infrastructure.observability.logger import get_logger
from src.shared.utils.clock import utcnow

logger = get_logger(__name__)


class WebhookAlertService(AlertService):
    """
    POSTs an ``instance_health_critical`` JSON payload to ``webhook_url``.

    Delivery is best effort: a missing URL skips the alert with a warning,
    and transport or HTTP errors are logged, never raised.
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send_instance_health_alert(
        self,
        instance_id: int,
        domain: str,
        failure_count: int,
        last_error: Optional[str],
    ) -> None:
        if not self._webhook_url or not self._webhook_url.strip():
            logger.warning("health_alert_skipped_no_webhook", instance_id=instance_id)
            return

        payload = {
            "type": "instance_health_critical",
            "instance_id": instance_id,
            "domain": domain,
            "consecutive_failures": failure_count,
            "error_message": last_error,
            "timestamp": utcnow().isoformat(),
        }
        try:
            response = await self._client.post(self._webhook_url, json=payload)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("health_alert_failed", instance_id=instance_id, error=str(e))
            return

        logger.info("health_alert_sent", instance_id=instance_id, domain=domain, failures=failure_count)

    async def aclose(self) -> None:
        await self._client.aclose()
