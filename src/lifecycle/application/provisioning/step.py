"""
Provisioning step contract
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import Instance, InstanceInfrastructure
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.shared.domain.result import Error, Failure, Result, Success, fail, ok

StepResult = Result[bool, Error]


class ProvisioningStep(ABC):
    """
    One atomic create-or-verify pair against one external collaborator.

    ``execute`` must be safe to run again after a crash ("create if not
    exists"); ``verify`` checks the resource really exists afterwards.
    Expected problems come back as Failure; anything raised is treated by
    the pipeline as a failed attempt.
    """

    name: str

    @abstractmethod
    async def execute(self, instance_id: int) -> StepResult:
        pass

    @abstractmethod
    async def verify(self, instance_id: int) -> StepResult:
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class InstanceStep(ProvisioningStep, ABC):
    """Base for steps that read the instance and its infrastructure record."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def _load(self, instance_id: int) -> tuple[Optional[Instance], Optional[InstanceInfrastructure]]:
        async with self._uow_factory() as uow:
            instance = await uow.instances.get_by_id(instance_id)
            infrastructure = await uow.infrastructure.get_by_instance(instance_id)
        return instance, infrastructure

    async def _load_with_infrastructure(
        self, instance_id: int
    ) -> Result[tuple[Instance, InstanceInfrastructure], Error]:
        instance, infrastructure = await self._load(instance_id)
        if instance is None:
            return Failure(Error.not_found(errors.INSTANCE_NOT_FOUND, f"Instance {instance_id} not found"))
        if infrastructure is None:
            return Failure(
                Error.not_found(
                    errors.INFRASTRUCTURE_NOT_FOUND,
                    f"Infrastructure for instance {instance_id} not found",
                )
            )
        return Success((instance, infrastructure))


def step_failed(code: str, message: str) -> StepResult:
    return fail(Error.failure(code, message))


def step_ok() -> StepResult:
    return ok()
