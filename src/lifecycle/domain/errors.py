"""
Lifecycle error codes and domain exceptions

Codes are stable: they are stored in provisioning events and matched on by
operators and tests.
"""
from __future__ import annotations

from src.shared.exceptions import DomainError

INSTANCE_NOT_FOUND = "INSTANCE_NOT_FOUND"
INFRASTRUCTURE_NOT_FOUND = "INFRASTRUCTURE_NOT_FOUND"
NOT_FOUND = "NOT_FOUND"
INVALID_STATE = "INVALID_STATE"
DOMAIN_TAKEN = "DOMAIN_TAKEN"
TIER_LIMIT_EXCEEDED = "TIER_LIMIT_EXCEEDED"
EXHAUSTED = "EXHAUSTED"
STEP_EXCEPTION = "STEP_EXCEPTION"
SECRETS_MISSING = "SECRETS_MISSING"
SECRETS_INCOMPLETE = "SECRETS_INCOMPLETE"
WORKER_ID_MISSING = "WORKER_ID_MISSING"
WORKER_ID_MISMATCH = "WORKER_ID_MISMATCH"
NETWORK_MISSING = "NETWORK_MISSING"
DATABASE_MISSING = "DATABASE_MISSING"
BUCKET_MISSING = "BUCKET_MISSING"
CONTAINER_NOT_RUNNING = "CONTAINER_NOT_RUNNING"
DNS_VERIFY_FAILED = "DNS_VERIFY_FAILED"
ROUTE_VERIFY_FAILED = "ROUTE_VERIFY_FAILED"


class InvalidStatusTransitionError(DomainError):
    code = "invalid_status_transition"

    def __init__(self, instance_id: int, current: str, target: str) -> None:
        super().__init__(
            f"Instance {instance_id} cannot move from {current} to {target}",
            details={"instance_id": instance_id, "from": current, "to": target},
        )
