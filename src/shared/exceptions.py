from typing import Any, Dict, Optional


# ───────────────────────── Base & Domain Exceptions ─────────────────────────
class DomainError(Exception):
    """Base class for hard failures. Expected conditions travel as Result values instead."""
    code: str = "domain_error"
    message: str
    details: Optional[Dict[str, Any]]

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message or self.__class__.__name__)
        if code is not None:
            self.code = code
        self.message = message or self.__class__.__name__
        self.details = details


class ConfigurationError(DomainError):
    code = "configuration_error"


class ClockMovedBackwardsError(DomainError):
    """The host clock regressed; the generator that observed it must not mint more ids."""
    code = "clock_moved_backwards"

    def __init__(self, last_timestamp_ms: int, current_timestamp_ms: int) -> None:
        super().__init__(
            f"Clock moved backwards: refusing to generate id for "
            f"{last_timestamp_ms - current_timestamp_ms}ms",
            details={"last_timestamp_ms": last_timestamp_ms, "current_timestamp_ms": current_timestamp_ms},
        )


class ConcurrencyConflictError(DomainError):
    """A versioned row changed between read and write."""
    code = "concurrency_conflict"

    def __init__(self, entity: str, entity_id: Any, expected_version: int) -> None:
        super().__init__(
            f"{entity} {entity_id} was modified concurrently (expected version {expected_version})",
            details={"entity": entity, "entity_id": entity_id, "expected_version": expected_version},
        )
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version


class DuplicateIdentityError(DomainError):
    """An instance already holds a worker identity."""
    code = "duplicate_worker_identity"


class NotFoundError(DomainError):
    code = "not_found"


class CryptoError(DomainError):
    code = "crypto_error"
