"""
Tier defaults: resource limits per user-count tier, feature flags per
feature tier, and how many live instances an owner may hold.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from src.lifecycle.domain.enums import FeatureTier, UserCountTier


@dataclass(frozen=True)
class ResourceLimits:
    max_users: int
    max_servers: int
    max_storage_mb: int
    max_cpu_percent: int
    max_memory_mb: int
    max_rate_limit: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceLimits:
        return cls(**{k: int(data[k]) for k in cls.__dataclass_fields__})

    @property
    def memory_bytes(self) -> int:
        return self.max_memory_mb * 1024 * 1024

    @property
    def cpu_quota(self) -> int:
        """CPU quota in microseconds per 100ms period."""
        return self.max_cpu_percent * 1000


@dataclass(frozen=True)
class FeatureFlags:
    can_create_bots: bool = True
    can_use_webhooks: bool = True
    can_use_custom_emoji: bool = True
    can_use_threads: bool = True
    can_use_voice_channels: bool = False
    can_use_video_channels: bool = False
    can_use_forum_channels: bool = True
    can_use_scheduled_events: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_RESOURCE_LIMITS: dict[UserCountTier, ResourceLimits] = {
    UserCountTier.TIER_10: ResourceLimits(10, 3, 512, 25, 256, 30),
    UserCountTier.TIER_50: ResourceLimits(50, 10, 2048, 50, 512, 60),
    UserCountTier.TIER_100: ResourceLimits(100, 25, 5120, 100, 1024, 120),
    UserCountTier.TIER_500: ResourceLimits(500, 100, 25600, 200, 2048, 500),
}

# None means unlimited
_MAX_INSTANCES: dict[FeatureTier, Optional[int]] = {
    FeatureTier.CHAT: 1,
    FeatureTier.AUDIO: 5,
    FeatureTier.VIDEO: None,
}


def get_resource_limits(tier: UserCountTier) -> ResourceLimits:
    return _RESOURCE_LIMITS[UserCountTier(tier)]


def get_feature_flags(tier: FeatureTier) -> FeatureFlags:
    tier = FeatureTier(tier)
    return FeatureFlags(
        can_use_voice_channels=tier.rank >= FeatureTier.AUDIO.rank,
        can_use_video_channels=tier.rank >= FeatureTier.VIDEO.rank,
    )


def max_instances_for(tier: FeatureTier) -> Optional[int]:
    return _MAX_INSTANCES[FeatureTier(tier)]
