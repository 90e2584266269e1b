"""
Admission checks that run before any external resource is touched.
"""
from __future__ import annotations

from src.lifecycle.application.provisioning.step import InstanceStep, StepResult, step_failed, step_ok
from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import InstanceConfig
from src.lifecycle.domain.tier_limits import get_feature_flags, get_resource_limits, max_instances_for
from src.shared.domain.result import Error, Failure
from src.shared.infrastructure.observability.logger import get_logger
from src.shared.utils.clock import utcnow

logger = get_logger(__name__)


class ValidateSubdomainStep(InstanceStep):
    """Fails with DOMAIN_TAKEN when another live instance already owns the domain."""

    name = "ValidateSubdomain"

    async def execute(self, instance_id: int) -> StepResult:
        async with self._uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            if instance is None:
                return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))
            if await uow.instances.domain_taken(instance.domain, exclude_instance_id=instance_id):
                return Failure(Error.conflict(errors.DOMAIN_TAKEN, f"Domain {instance.domain} is already taken"))
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        return step_ok()


class EnforceTierLimitsStep(InstanceStep):
    """
    Checks the owner's live instance count against the billing tier and
    writes the tier's resource limits and feature flags to the config record.
    """

    name = "EnforceTierLimits"

    async def execute(self, instance_id: int) -> StepResult:
        async with self._uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            if instance is None:
                return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))

            billing = await uow.billing.get_by_instance(instance_id)
            if billing is None:
                return Failure(Error.not_found(errors.NOT_FOUND, f"Billing for instance {instance_id} not found"))

            limit = max_instances_for(billing.feature_tier)
            if limit is not None:
                owned = await uow.instances.count_live_for_owner(instance.owner_id)
                if owned > limit:
                    logger.warning(
                        "tier_limit_exceeded",
                        owner_id=instance.owner_id,
                        feature_tier=billing.feature_tier.value,
                        owned=owned,
                        limit=limit,
                    )
                    return Failure(
                        Error.forbidden(
                            errors.TIER_LIMIT_EXCEEDED,
                            f"{billing.feature_tier.value} tier limit of {limit} instances exceeded",
                        )
                    )

            await uow.configs.upsert(
                InstanceConfig(
                    instance_id=instance_id,
                    resource_limits=get_resource_limits(billing.user_count_tier).to_dict(),
                    feature_flags=get_feature_flags(billing.feature_tier).to_dict(),
                    updated_at=utcnow(),
                )
            )
            await uow.commit()
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        async with self._uow_factory() as uow:
            config = await uow.configs.get_by_instance(instance_id)
        if config is None or not config.resource_limits:
            return step_failed(errors.NOT_FOUND, f"Config for instance {instance_id} was not written")
        return step_ok()
