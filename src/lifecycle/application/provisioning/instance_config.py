"""
Builds the configuration document injected into an instance container.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.engine import make_url

from src.lifecycle.domain.entities import Instance, InstanceInfrastructure
from src.lifecycle.domain.naming import bucket_name


@dataclass(frozen=True)
class InstanceEnvironment:
    """Hub-side endpoints every instance talks to."""

    hub_database_url: str
    resource_prefix: str
    storage_endpoint: str
    media_relay_host: str
    redis_url: str


def _instance_database_url(hub_database_url: str, database: str) -> str:
    url = make_url(hub_database_url).set(drivername="postgresql", database=database)
    return url.render_as_string(hide_password=False)


def build_instance_config(
    instance: Instance,
    infrastructure: InstanceInfrastructure,
    env: InstanceEnvironment,
    feature_flags: Optional[dict[str, Any]] = None,
) -> str:
    domain = instance.domain
    config = {
        "database": {
            "connectionString": _instance_database_url(env.hub_database_url, infrastructure.database_name),
        },
        "redis": {
            "connectionString": env.redis_url,
            "channelPrefix": f"{domain}:",
        },
        "jwt": {
            "issuer": f"https://{domain}",
            "audience": f"https://{domain}",
        },
        "storage": {
            "endpoint": env.storage_endpoint,
            "accessKey": infrastructure.storage_access_key,
            "secretKey": infrastructure.storage_secret_key,
            "bucket": bucket_name(env.resource_prefix, domain),
            "useSsl": False,
        },
        "livekit": {
            "host": env.media_relay_host,
            "apiKey": infrastructure.media_relay_api_key,
            "apiSecret": infrastructure.media_relay_secret,
        },
        "cors": {"allowedOrigins": [f"https://{domain}"]},
        "instance": {"domain": domain, "name": instance.display_name},
        "snowflake": {"workerId": instance.worker_identity},
        "features": feature_flags or {},
        "encryption": {"kek": infrastructure.instance_kek},
    }
    return json.dumps(config)
