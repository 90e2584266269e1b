"""
Container-runtime steps: isolated network and the instance container.
"""
from __future__ import annotations

from src.lifecycle.application.instance_state import mutate_infrastructure
from src.lifecycle.application.provisioning.instance_config import InstanceEnvironment, build_instance_config
from src.lifecycle.application.provisioning.step import InstanceStep, StepResult, step_failed, step_ok
from src.lifecycle.domain import errors
from src.lifecycle.domain.entities import InstanceInfrastructure
from src.lifecycle.domain.ports import ContainerRuntime
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.lifecycle.domain.tier_limits import ResourceLimits
from src.shared.infrastructure.observability.logger import get_logger

logger = get_logger(__name__)


class CreateNetworkStep(InstanceStep):
    name = "CreateNetwork"

    def __init__(self, uow_factory: UnitOfWorkFactory, runtime: ContainerRuntime) -> None:
        super().__init__(uow_factory)
        self._runtime = runtime

    async def execute(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        instance, infrastructure = loaded.value

        if infrastructure.network_id and await self._runtime.verify_network(infrastructure.network_id):
            return step_ok()

        network_id = await self._runtime.create_network(instance.domain)

        def _store(infra: InstanceInfrastructure) -> None:
            infra.network_id = network_id

        await mutate_infrastructure(self._uow_factory, instance_id, _store)
        logger.info("instance_network_created", instance_id=instance_id, network_id=network_id)
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        _, infrastructure = await self._load(instance_id)
        if infrastructure is None or not infrastructure.network_id:
            return step_failed(errors.NETWORK_MISSING, "Network id was not stored")
        if not await self._runtime.verify_network(infrastructure.network_id):
            return step_failed(errors.NETWORK_MISSING, f"Network {infrastructure.network_id} not found")
        return step_ok()


class StartContainerStep(InstanceStep):
    """Starts the instance container with its config document and tier resource limits."""

    name = "StartApiContainer"

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        runtime: ContainerRuntime,
        environment: InstanceEnvironment,
    ) -> None:
        super().__init__(uow_factory)
        self._runtime = runtime
        self._environment = environment

    async def execute(self, instance_id: int) -> StepResult:
        loaded = await self._load_with_infrastructure(instance_id)
        if loaded.is_failure():
            return loaded
        instance, infrastructure = loaded.value

        if infrastructure.container_id and await self._runtime.verify_container_running(
            infrastructure.container_id
        ):
            return step_ok()

        async with self._uow_factory() as uow:
            config = await uow.configs.get_by_instance(instance_id)

        limits = ResourceLimits.from_dict(config.resource_limits) if config and config.resource_limits else None
        config_json = build_instance_config(
            instance,
            infrastructure,
            self._environment,
            feature_flags=config.feature_flags if config else None,
        )
        container_id = await self._runtime.start_container(instance.domain, config_json, limits)

        def _store(infra: InstanceInfrastructure) -> None:
            infra.container_id = container_id

        await mutate_infrastructure(self._uow_factory, instance_id, _store)
        logger.info("instance_container_started", instance_id=instance_id, container_id=container_id)
        return step_ok()

    async def verify(self, instance_id: int) -> StepResult:
        _, infrastructure = await self._load(instance_id)
        if infrastructure is None or not infrastructure.container_id:
            return step_failed(errors.CONTAINER_NOT_RUNNING, "Container id is missing")
        if not await self._runtime.verify_container_running(infrastructure.container_id):
            return step_failed(errors.CONTAINER_NOT_RUNNING, "Container is not running")
        return step_ok()
