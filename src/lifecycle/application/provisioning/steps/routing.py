"""
Public reachability: DNS A record and reverse-proxy route.
"""
from __future__ import annotations

from src.lifecycle.application.instance_state import mutate_infrastructure
from src.lifecycle.application.provisioning.step import InstanceStep, StepResult, step_failed, step_ok
from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import InstanceInfrastructure
from src.lifecycle.domain.naming import container_name
from src.lifecycle.domain.ports import DnsProvider, ProxyManager
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class ConfigureDnsAndProxyStep(InstanceStep):
    """
    Points the domain at the gateway and routes it to the container.

    The proxy backend is the deterministic container name, since the
    runtime's internal DNS resolves names rather than container ids.
    """

    name = "ConfigureDnsAndProxy"

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        dns: DnsProvider,
        proxy: ProxyManager,
        resource_prefix: str,
        gateway_ip: str,
    ) -> None:
        super().__init__(uow_factory)
        self._dns = dns
        self._proxy = proxy
        self._resource_prefix = resource_prefix
        self._gateway_ip = gateway_ip

    async def execute(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        instance, infrastructure = loaded.value

        if not await self._dns.verify_record(instance.domain):
            await self._dns.create_a_record(instance.domain, self._gateway_ip)

        if infrastructure.proxy_route_id and await self._proxy.verify_route(infrastructure.proxy_route_id):
            return step_ok()

        backend = container_name(self._resource_prefix, instance.domain)
        route_id = await self._proxy.create_route(instance.domain, backend)

        def _store(infra: InstanceInfrastructure) -> None:
            infra.proxy_route_id = route_id

        await mutate_infrastructure(self._uow_factory, instance_id, _store)
        logger.info("instance_route_created", instance_id=instance_id, route_id=route_id, backend=backend)
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        instance, infrastructure = loaded.value

        if not await self._dns.verify_record(instance.domain):
            return step_failed(errors.DNS_VERIFY_FAILED, "DNS record verification failed")
        if not infrastructure.proxy_route_id or not await self._proxy.verify_route(infrastructure.proxy_route_id):
            return step_failed(errors.ROUTE_VERIFY_FAILED, "Proxy route verification failed")
        return step_ok()
