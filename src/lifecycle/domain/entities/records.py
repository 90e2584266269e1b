"""
Records owned by an Instance, plus the worker-identity registry row.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from src.lifecycle.domain.enums import (
    FeatureTier,
    ProvisioningEventStatus,
    ProvisioningPhase,
    UserCountTier,
)
from src.shared.utils.clock import utcnow


@dataclass
class InstanceInfrastructure:
    """
    Realized external-resource handles for one instance.

    Secret-bearing fields hold plaintext in memory only; the persistence
    layer encrypts them on write. Handles stay ``None`` until the step that
    creates the resource stores them.
    """

    instance_id: int
    database_name: str
    database_password: Optional[str]
    storage_access_key: str
    storage_secret_key: Optional[str]
    media_relay_api_key: str
    media_relay_secret: Optional[str]
    instance_kek: Optional[str]
    bootstrap_token_hash: Optional[str] = None
    network_id: Optional[str] = None
    container_id: Optional[str] = None
    proxy_route_id: Optional[str] = None
    runtime_secret_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    version: int = 1

    def has_complete_secrets(self) -> bool:
        return all(
            (
                self.database_password,
                self.storage_access_key,
                self.storage_secret_key,
                self.media_relay_api_key,
                self.media_relay_secret,
                self.instance_kek,
            )
        )

    def scrub_secrets(self) -> None:
        self.database_password = None
        self.storage_secret_key = None
        self.media_relay_secret = None
        self.instance_kek = None
        self.bootstrap_token_hash = None
        self.runtime_secret_id = None


@dataclass
class InstanceHealth:
    instance_id: int
    is_healthy: bool = True
    last_check_at: Optional[datetime] = None
    consecutive_failures: int = 0
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    version: int = 1

    def record_success(self, response_time_ms: Optional[int], now: Optional[datetime] = None) -> bool:
        """Mark healthy. Returns True when this clears a failure streak."""
        recovered = self.consecutive_failures > 0
        self.is_healthy = True
        self.consecutive_failures = 0
        self.error_message = None
        self.response_time_ms = response_time_ms
        self.last_check_at = now or utcnow()
        return recovered

    def record_failure(self, reason: str, now: Optional[datetime] = None) -> int:
        """Mark unhealthy and return the new consecutive-failure count."""
        self.is_healthy = False
        self.consecutive_failures += 1
        self.error_message = reason
        self.last_check_at = now or utcnow()
        return self.consecutive_failures


@dataclass
class InstanceBilling:
    instance_id: int
    feature_tier: FeatureTier
    user_count_tier: UserCountTier
    billing_exempt: bool = False


@dataclass
class InstanceConfig:
    instance_id: int
    resource_limits: dict[str, Any] = field(default_factory=dict)
    feature_flags: dict[str, Any] = field(default_factory=dict)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class ProvisioningEvent:
    """
    Audit record of one phase attempt of one pipeline step.

    Inserted as IN_PROGRESS before the phase runs and finished exactly once.
    """

    instance_id: int
    step_name: str
    phase: ProvisioningPhase
    status: ProvisioningEventStatus = ProvisioningEventStatus.IN_PROGRESS
    error_message: Optional[str] = None
    started_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.status != ProvisioningEventStatus.IN_PROGRESS

    def finish(self, succeeded: bool, error_message: Optional[str] = None, now: Optional[datetime] = None) -> None:
        if self.is_finished:
            raise ValueError(f"Provisioning event {self.id} already finished")
        self.status = ProvisioningEventStatus.COMPLETED if succeeded else ProvisioningEventStatus.FAILED
        self.error_message = error_message
        self.completed_at = now or utcnow()


@dataclass
class WorkerIdentityLease:
    """
    One row of the worker-identity registry.

    Free when ``instance_id`` is None and not tombstoned.
    """

    worker_id: int
    instance_id: Optional[int] = None
    is_tombstoned: bool = False
    allocated_at: Optional[datetime] = None
    released_at: Optional[datetime] = None

    @property
    def is_free(self) -> bool:
        return self.instance_id is None and not self.is_tombstoned


@dataclass(frozen=True)
class QueueClaim:
    """A dequeued provisioning entry. ``claimed_at`` identifies this claim of the row."""

    instance_id: int
    claimed_at: datetime
