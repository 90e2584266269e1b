"""
Deterministic names for per-instance resources.

Everything external is derived from the instance domain so teardown can
find resources even when a handle was never persisted.
"""
from __future__ import annotations


def subdomain_of(domain: str) -> str:
    return domain.split(".")[0]


def container_name(prefix: str, domain: str) -> str:
    return f"{prefix}-{subdomain_of(domain)}-api"


def bucket_name(prefix: str, domain: str) -> str:
    return f"{prefix}-{subdomain_of(domain)}"


def database_name(prefix: str, domain: str) -> str:
    return f"{prefix}_{domain.replace('-', '_').replace('.', '_')}".lower()
