"""
Instance Aggregate Root - one tenant's isolated deployment
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from src.lifecycle.domain.enums import InstanceStatus
from src.lifecycle.domain.errors import InvalidStatusTransitionError
from src.shared.domain.base_entity import BaseEntity
from src.shared.utils.clock import utcnow

_S = InstanceStatus

_TRANSITIONS: dict[InstanceStatus, frozenset[InstanceStatus]] = {
    _S.PENDING: frozenset({_S.PROVISIONING, _S.FAILED, _S.DESTROYED}),
    _S.PROVISIONING: frozenset({_S.RUNNING, _S.PENDING, _S.FAILED, _S.DESTROYED}),
    _S.RUNNING: frozenset({_S.FAILED, _S.SUSPENDED, _S.DESTROYED}),
    _S.SUSPENDED: frozenset({_S.RUNNING, _S.DESTROYED}),
    _S.FAILED: frozenset({_S.PENDING, _S.PROVISIONING, _S.DESTROYED}),
    _S.DESTROYED: frozenset(),
}


class Instance(BaseEntity):
    """
    Managed instance (aggregate root).

    Owns at most one Infrastructure, Health, Config and Billing record and
    any number of ProvisioningEvents. Soft-deleted through ``deleted_at``;
    rows are never hard-deleted while referenced.

    Status changes go through the transition table above. ``version`` is the
    optimistic-concurrency token carried back to the repository on update.

    Attributes:
        owner_id: Owning tenant user id
        domain: Fully qualified instance domain (e.g. "acme.xcord.net")
        status: Current lifecycle status
        worker_identity: Allocated Snowflake worker id, once assigned
        provisioning_attempts: Number of pipeline runs started
        provisioning_started_at: Start of the most recent pipeline run
        deleted_at: Tombstone timestamp
        version: Row version
    """

    def __init__(
        self,
        id: int,
        owner_id: int,
        domain: str,
        display_name: str,
        status: InstanceStatus = InstanceStatus.PENDING,
        description: Optional[str] = None,
        icon_url: Optional[str] = None,
        member_count: int = 0,
        online_count: int = 0,
        worker_identity: Optional[int] = None,
        provisioning_attempts: int = 0,
        provisioning_started_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        deleted_at: Optional[datetime] = None,
        version: int = 1,
    ) -> None:
        super().__init__(id, created_at, updated_at)
        self.owner_id = owner_id
        self.domain = domain
        self.display_name = display_name
        self.description = description
        self.icon_url = icon_url
        self.member_count = member_count
        self.online_count = online_count
        self.status = status
        self.worker_identity = worker_identity
        self.provisioning_attempts = provisioning_attempts
        self.provisioning_started_at = provisioning_started_at
        self.deleted_at = deleted_at
        self.version = version

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def subdomain(self) -> str:
        """First DNS label of the domain; used to name per-instance resources."""
        return self.domain.split(".")[0]

    def can_transition_to(self, target: InstanceStatus) -> bool:
        return target in _TRANSITIONS[self.status]

    def _transition(self, target: InstanceStatus) -> None:
        if self.status == target:
            return
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionError(self.id, self.status.value, target.value)
        self.status = target
        self.mark_updated()

    # ------------------------------------------------------------------ commands

    def begin_provisioning(self, now: Optional[datetime] = None) -> None:
        self._transition(InstanceStatus.PROVISIONING)
        self.provisioning_attempts += 1
        self.provisioning_started_at = now or utcnow()

    def mark_running(self) -> None:
        self._transition(InstanceStatus.RUNNING)

    def mark_failed(self) -> None:
        self._transition(InstanceStatus.FAILED)

    def reset_to_pending(self) -> None:
        self._transition(InstanceStatus.PENDING)

    def mark_destroyed(self, now: Optional[datetime] = None) -> None:
        self._transition(InstanceStatus.DESTROYED)
        self.deleted_at = self.deleted_at or now or utcnow()

    def assign_worker_identity(self, worker_id: int) -> None:
        self.worker_identity = worker_id
        self.mark_updated()
