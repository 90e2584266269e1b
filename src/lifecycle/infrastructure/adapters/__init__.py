"""
Lifecycle Infrastructure - external collaborator adapters
"""
from src.lifecycle.infrastructure.adapters.alerting import WebhookAlertService
from src.lifecycle.infrastructure.adapters.database_provisioner import PostgresDatabaseProvisioner
from src.lifecycle.infrastructure.adapters.health_check import HttpHealthCheckVerifier
from src.lifecycle.infrastructure.adapters.noop import (
    NoopContainerRuntime,
    NoopDatabaseProvisioner,
    NoopDnsProvider,
    NoopObjectStorageProvisioner,
    NoopProxyManager,
)

__all__ = [
    "HttpHealthCheckVerifier",
    "NoopContainerRuntime",
    "NoopDatabaseProvisioner",
    "NoopDnsProvider",
    "NoopObjectStorageProvisioner",
    "NoopProxyManager",
    "PostgresDatabaseProvisioner",
    "WebhookAlertService",
]
