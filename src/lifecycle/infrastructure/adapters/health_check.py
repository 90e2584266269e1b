"""HTTP health probe against an instance's API container."""
from __future__ import annotations

import time
from typing import Optional

import httpx

from src.lifecycle.domain.naming import container_name
from src.lifecycle.domain.ports import HealthCheckVerifier, HealthProbe
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class HttpHealthCheckVerifier(HealthCheckVerifier):
    """
    Calls ``http://{prefix}-{subdomain}-api:{port}{path}``.

    The container hostname is used instead of the public domain so the probe
    works from inside the instance network. Any 2xx is healthy; everything
    else, including transport errors, comes back as an unhealthy probe.
    """

    def __init__(
        self,
        resource_prefix: str = "xcord",
        port: int = 80,
        path: str = "/api/v1/health",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._resource_prefix = resource_prefix
        self._port = port
        self._path = path if path.startswith("/") else f"/{path}"
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def url_for(self, domain: str) -> str:
        return f"http://{container_name(self._resource_prefix, domain)}:{self._port}{self._path}"

    async def verify_instance_health(self, domain: str) -> HealthProbe:
        started = time.monotonic()
        try:
            response = await self._client.get(self.url_for(domain))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.warning("health_probe_error", domain=domain, error=str(e))
            return HealthProbe(False, elapsed, f"Health check failed: {e}")

        elapsed = int((time.monotonic() - started) * 1000)
        if response.is_success:
            return HealthProbe(True, elapsed)

        message = f"Health endpoint returned {response.status_code} {response.reason_phrase}"
        logger.warning("health_probe_unhealthy", domain=domain, status_code=response.status_code)
        return HealthProbe(False, elapsed, message)

    async def aclose(self) -> None:
        await self._client.aclose()
