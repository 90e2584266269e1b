"""
In-process stand-ins for the container runtime, proxy, DNS and object storage.

They remember what they created so ``verify_*`` answers truthfully, which is
enough to drive the full lifecycle in development and tests without the real
infrastructure.
"""
from __future__ import annotations

from typing import Optional

from src.lifecycle.domain.naming import container_name, subdomain_of
from src.lifecycle.domain.tier_limits import ResourceLimits
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class NoopContainerRuntime:
    def __init__(self, resource_prefix: str = "xcord") -> None:
        self._resource_prefix = resource_prefix
        self.networks: set[str] = set()
        self.containers: dict[str, bool] = {}
        self.secrets: set[str] = set()

    async def create_network(self, domain: str) -> str:
        network_id = f"{self._resource_prefix}-{subdomain_of(domain)}-net"
        self.networks.add(network_id)
        logger.debug("noop_network_created", network_id=network_id)
        return network_id

    async def verify_network(self, network_id: str) -> bool:
        return network_id in self.networks

    async def remove_network(self, network_id: str) -> None:
        self.networks.discard(network_id)

    async def start_container(self, domain: str, config_json: str, limits: Optional[ResourceLimits]) -> str:
        container_id = container_name(self._resource_prefix, domain)
        self.containers[container_id] = True
        self.secrets.add(f"{container_id}-config")
        logger.debug("noop_container_started", container_id=container_id)
        return container_id

    async def verify_container_running(self, container_id: str) -> bool:
        return self.containers.get(container_id, False)

    async def stop_container(self, container_id: str) -> None:
        if container_id in self.containers:
            self.containers[container_id] = False

    async def remove_container(self, container_id: str) -> None:
        self.containers.pop(container_id, None)

    async def remove_secret(self, secret_id: str) -> None:
        self.secrets.discard(secret_id)


class NoopProxyManager:
    def __init__(self) -> None:
        self.routes: dict[str, str] = {}

    async def create_route(self, domain: str, backend: str) -> str:
        route_id = f"route-{domain}"
        self.routes[route_id] = backend
        return route_id

    async def verify_route(self, route_id: str) -> bool:
        return route_id in self.routes

    async def delete_route(self, route_id: str) -> None:
        self.routes.pop(route_id, None)


class NoopDnsProvider:
    def __init__(self) -> None:
        self.records: dict[str, str] = {}

    async def create_a_record(self, domain: str, ip_address: str) -> None:
        self.records[domain] = ip_address

    async def verify_record(self, domain: str) -> bool:
        return domain in self.records

    async def delete_a_record(self, domain: str) -> None:
        self.records.pop(domain, None)


class NoopObjectStorageProvisioner:
    def __init__(self) -> None:
        self.buckets: dict[str, str] = {}

    async def provision_bucket(self, bucket: str, access_key: str, secret_key: str) -> None:
        self.buckets[bucket] = access_key

    async def verify_bucket(self, bucket: str, access_key: str, secret_key: str) -> bool:
        return self.buckets.get(bucket) == access_key

    async def deprovision_bucket(self, bucket: str, access_key: str) -> None:
        self.buckets.pop(bucket, None)


class NoopDatabaseProvisioner:
    def __init__(self) -> None:
        self.databases: set[str] = set()

    async def create_database(self, name: str) -> None:
        self.databases.add(name)

    async def database_exists(self, name: str) -> bool:
        return name in self.databases
