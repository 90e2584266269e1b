"""
External collaborator contracts consumed by the lifecycle core.

All calls are async network I/O and may be slow or fail. Provisioning steps
turn failures into Results; monitoring loops absorb them per instance.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from src.lifecycle.domain.tier_limits import ResourceLimits


@dataclass(frozen=True)
class HealthProbe:
    is_healthy: bool
    response_time_ms: int
    error_message: Optional[str] = None


@runtime_checkable
class ContainerRuntime(Protocol):
    async def create_network(self, domain: str) -> str:
        """Create (or return the existing) isolated network; returns its id."""
        ...

    async def verify_network(self, network_id: str) -> bool:
        ...

    async def remove_network(self, network_id: str) -> None:
        ...

    async def start_container(
        self,
        domain: str,
        config_json: str,
        limits: Optional[ResourceLimits],
    ) -> str:
        """Start (or return the existing) instance container; returns its id."""
        ...

    async def verify_container_running(self, container_id: str) -> bool:
        ...

    async def stop_container(self, container_id: str) -> None:
        ...

    async def remove_container(self, container_id: str) -> None:
        ...

    async def remove_secret(self, secret_id: str) -> None:
        ...


@runtime_checkable
class ProxyManager(Protocol):
    async def create_route(self, domain: str, backend: str) -> str:
        ...

    async def verify_route(self, route_id: str) -> bool:
        ...

    async def delete_route(self, route_id: str) -> None:
        ...


@runtime_checkable
class DnsProvider(Protocol):
    async def create_a_record(self, domain: str, ip_address: str) -> None:
        ...

    async def verify_record(self, domain: str) -> bool:
        ...

    async def delete_a_record(self, domain: str) -> None:
        ...


@runtime_checkable
class ObjectStorageProvisioner(Protocol):
    async def provision_bucket(self, bucket: str, access_key: str, secret_key: str) -> None:
        ...

    async def verify_bucket(self, bucket: str, access_key: str, secret_key: str) -> bool:
        ...

    async def deprovision_bucket(self, bucket: str, access_key: str) -> None:
        ...


@runtime_checkable
class DatabaseProvisioner(Protocol):
    async def create_database(self, name: str) -> None:
        """Create the database if it does not exist yet."""
        ...

    async def database_exists(self, name: str) -> bool:
        ...


@runtime_checkable
class HealthCheckVerifier(Protocol):
    async def verify_instance_health(self, domain: str) -> HealthProbe:
        """Probe the instance health endpoint. Never raises; failures come back unhealthy."""
        ...


@runtime_checkable
class AlertService(Protocol):
    async def send_instance_health_alert(
        self,
        instance_id: int,
        domain: str,
        failure_count: int,
        last_error: Optional[str],
    ) -> None:
        """Fire-and-forget operator notification."""
        ...
