"""
Lifecycle enumerations
"""
from __future__ import annotations

from enum import Enum, IntEnum


class InstanceStatus(str, Enum):
    PENDING = "pending"
    PROVISIONING = "provisioning"
    RUNNING = "running"
    SUSPENDED = "suspended"
    DESTROYED = "destroyed"
    FAILED = "failed"


class ProvisioningPhase(str, Enum):
    EXECUTE = "execute"
    VERIFY = "verify"


class ProvisioningEventStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class FeatureTier(str, Enum):
    CHAT = "chat"
    AUDIO = "audio"
    VIDEO = "video"

    @property
    def rank(self) -> int:
        return _FEATURE_RANK[self]


_FEATURE_RANK = {FeatureTier.CHAT: 0, FeatureTier.AUDIO: 1, FeatureTier.VIDEO: 2}


class UserCountTier(IntEnum):
    TIER_10 = 10
    TIER_50 = 50
    TIER_100 = 100
    TIER_500 = 500
