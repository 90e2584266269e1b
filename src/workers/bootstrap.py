"""
Composition root for the control-plane workers.

Builds settings-driven infrastructure once and composes the provisioning and
destruction steps into their ordered pipelines.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.config import Settings, get_settings
from src.lifecycle.application.destruction import DestructionPipeline, DestructionStep
from src.lifecycle.application.destruction.steps import (
    ReleaseWorkerIdentityStep,
    RemoveContainerStep,
    RemoveDnsRecordStep,
    RemoveNetworkStep,
    RemoveObjectStorageBucketStep,
    RemoveProxyRouteStep,
    RemoveSecretStep,
    StopContainerStep,
)
from src.lifecycle.application.provisioning import ProvisioningPipeline, ProvisioningStep
from src.lifecycle.application.provisioning.instance_config import InstanceEnvironment
from src.lifecycle.application.provisioning.steps import (
    AllocateWorkerIdentityStep,
    ConfigureDnsAndProxyStep,
    CreateNetworkStep,
    EnforceTierLimitsStep,
    GenerateSecretsStep,
    ProvisionDatabaseStep,
    ProvisionObjectStorageStep,
    StartContainerStep,
    ValidateSubdomainStep,
)
from src.lifecycle.application.worker_identity_allocator import WorkerIdentityAllocator
from src.lifecycle.domain.ports import (
    AlertService,
    ContainerRuntime,
    DatabaseProvisioner,
    DnsProvider,
    HealthCheckVerifier,
    ObjectStorageProvisioner,
    ProxyManager,
)
from src.lifecycle.domain.repositories import UnitOfWorkFactory
from src.lifecycle.infrastructure.adapters import (
    HttpHealthCheckVerifier,
    NoopContainerRuntime,
    NoopDnsProvider,
    NoopObjectStorageProvisioner,
    NoopProxyManager,
    PostgresDatabaseProvisioner,
    WebhookAlertService,
)
from src.lifecycle.infrastructure.persistence.repositories import SqlAlchemyLifecycleUnitOfWork
from src.shared.exceptions import ConfigurationError
from src.shared.infrastructure.database.session import DatabaseSessionFactory
from src.shared.infrastructure.observability.logger import configure_logging, get_logger
from src.shared.infrastructure.observability.metrics import MetricsCollector, configure_metrics
from src.shared.infrastructure.security.encryption import configure_encryption

logger = get_logger(__name__)


@dataclass
class Collaborators:
    runtime: ContainerRuntime
    proxy: ProxyManager
    dns: DnsProvider
    storage: ObjectStorageProvisioner
    database: DatabaseProvisioner
    health_verifier: HealthCheckVerifier
    alerts: AlertService


@dataclass
class LifecycleContainer:
    settings: Settings
    database: DatabaseSessionFactory
    uow_factory: UnitOfWorkFactory
    collaborators: Collaborators
    metrics: MetricsCollector
    allocator: WorkerIdentityAllocator
    provisioning_pipeline: ProvisioningPipeline
    destruction_pipeline: DestructionPipeline

    async def aclose(self) -> None:
        for resource in (self.collaborators.health_verifier, self.collaborators.alerts, self.collaborators.database):
            close = getattr(resource, "aclose", None) or getattr(resource, "dispose", None)
            if close is not None:
                await close()
        await self.database.dispose()


def build_provisioning_steps(
    settings: Settings,
    uow_factory: UnitOfWorkFactory,
    collaborators: Collaborators,
    allocator: WorkerIdentityAllocator,
) -> list[ProvisioningStep]:
    prefix = settings.RESOURCE_PREFIX
    environment = InstanceEnvironment(
        hub_database_url=settings.DATABASE_URL,
        resource_prefix=prefix,
        storage_endpoint=settings.INSTANCE_STORAGE_ENDPOINT,
        media_relay_host=settings.INSTANCE_MEDIA_RELAY_HOST,
        redis_url=settings.INSTANCE_REDIS_URL,
    )
    return [
        ValidateSubdomainStep(uow_factory),
        EnforceTierLimitsStep(uow_factory),
        GenerateSecretsStep(uow_factory, prefix),
        AllocateWorkerIdentityStep(uow_factory, allocator),
        CreateNetworkStep(uow_factory, collaborators.runtime),
        ProvisionDatabaseStep(uow_factory, collaborators.database),
        ProvisionObjectStorageStep(uow_factory, collaborators.storage, prefix),
        StartContainerStep(uow_factory, collaborators.runtime, environment),
        ConfigureDnsAndProxyStep(uow_factory, collaborators.dns, collaborators.proxy, prefix, settings.GATEWAY_IP),
    ]


def build_destruction_steps(
    settings: Settings,
    uow_factory: UnitOfWorkFactory,
    collaborators: Collaborators,
    allocator: WorkerIdentityAllocator,
) -> list[DestructionStep]:
    return [
        StopContainerStep(collaborators.runtime),
        RemoveProxyRouteStep(collaborators.proxy),
        RemoveDnsRecordStep(collaborators.dns),
        RemoveContainerStep(collaborators.runtime),
        RemoveSecretStep(collaborators.runtime, uow_factory),
        RemoveNetworkStep(collaborators.runtime),
        RemoveObjectStorageBucketStep(collaborators.storage, settings.RESOURCE_PREFIX),
        ReleaseWorkerIdentityStep(allocator, uow_factory),
    ]


def build_collaborators(
    settings: Settings,
    runtime: Optional[ContainerRuntime] = None,
    proxy: Optional[ProxyManager] = None,
    dns: Optional[DnsProvider] = None,
    storage: Optional[ObjectStorageProvisioner] = None,
) -> Collaborators:
    """
    Resolve external collaborators.

    Runtime, proxy, DNS and storage adapters are supplied by the deployment;
    with USE_NOOP_ADAPTERS the in-process stand-ins fill any gap.
    """
    if settings.USE_NOOP_ADAPTERS:
        runtime = runtime or NoopContainerRuntime(settings.RESOURCE_PREFIX)
        proxy = proxy or NoopProxyManager()
        dns = dns or NoopDnsProvider()
        storage = storage or NoopObjectStorageProvisioner()
        logger.warning("noop_adapters_enabled")

    missing = [name for name, value in (("runtime", runtime), ("proxy", proxy), ("dns", dns), ("storage", storage)) if value is None]
    if missing:
        raise ConfigurationError(
            f"No adapter configured for: {', '.join(missing)} (set USE_NOOP_ADAPTERS=true for development)",
            details={"missing": missing},
        )

    return Collaborators(
        runtime=runtime,
        proxy=proxy,
        dns=dns,
        storage=storage,
        database=PostgresDatabaseProvisioner(settings.DATABASE_URL),
        health_verifier=HttpHealthCheckVerifier(
            resource_prefix=settings.RESOURCE_PREFIX,
            port=settings.HEALTH_PROBE_PORT,
            path=settings.HEALTH_PROBE_PATH,
            timeout=settings.HEALTH_PROBE_TIMEOUT,
        ),
        alerts=WebhookAlertService(settings.ALERT_WEBHOOK_URL, timeout=settings.ALERT_TIMEOUT),
    )


def build_container(
    settings: Optional[Settings] = None,
    collaborators: Optional[Collaborators] = None,
) -> LifecycleContainer:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    metrics = configure_metrics(settings.METRICS_ENABLED)
    if not settings.ENCRYPTION_KEY and settings.is_prod:
        raise ConfigurationError("ENCRYPTION_KEY must be set in production")
    configure_encryption(settings.ENCRYPTION_KEY)

    database = DatabaseSessionFactory(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

    def uow_factory() -> SqlAlchemyLifecycleUnitOfWork:
        return SqlAlchemyLifecycleUnitOfWork(database.session_factory)

    collaborators = collaborators or build_collaborators(settings)
    allocator = WorkerIdentityAllocator(uow_factory, tombstone_on_release=settings.WORKER_ID_TOMBSTONE_ON_RELEASE)

    provisioning_pipeline = ProvisioningPipeline(
        uow_factory,
        build_provisioning_steps(settings, uow_factory, collaborators, allocator),
        step_max_attempts=settings.PROVISIONING_STEP_MAX_ATTEMPTS,
        retry_delays=settings.PROVISIONING_RETRY_DELAYS,
        max_provisioning_attempts=settings.PROVISIONING_MAX_ATTEMPTS,
        metrics=metrics,
    )
    destruction_pipeline = DestructionPipeline(
        uow_factory,
        build_destruction_steps(settings, uow_factory, collaborators, allocator),
        metrics=metrics,
    )

    logger.info(
        "lifecycle_container_built",
        environment=settings.ENVIRONMENT,
        provisioning_steps=[step.name for step in provisioning_pipeline.steps],
        destruction_steps=[step.name for step in destruction_pipeline.steps],
    )
    return LifecycleContainer(
        settings=settings,
        database=database,
        uow_factory=uow_factory,
        collaborators=collaborators,
        metrics=metrics,
        allocator=allocator,
        provisioning_pipeline=provisioning_pipeline,
        destruction_pipeline=destruction_pipeline,
    )
