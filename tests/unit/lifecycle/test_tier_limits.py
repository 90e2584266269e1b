import pytest

from src.lifecycle.application.provisioning.steps import EnforceTierLimitsStep, ValidateSubdomainStep
from src.lifecycle.domain import errors
from src.lifecycle.domain.enums import FeatureTier, InstanceStatus, UserCountTier
from src.lifecycle.domain.naming import bucket_name, container_name, database_name
from src.lifecycle.domain.tier_limits import get_feature_flags, get_resource_limits, max_instances_for


def test_resource_limits_by_user_tier():
    limits = get_resource_limits(UserCountTier.TIER_100)
    assert limits.max_users == 100
    assert limits.memory_bytes == 1024 * 1024 * 1024
    assert limits.cpu_quota == 100_000


def test_feature_flags_follow_tier_rank():
    assert not get_feature_flags(FeatureTier.CHAT).can_use_voice_channels
    audio = get_feature_flags(FeatureTier.AUDIO)
    assert audio.can_use_voice_channels and not audio.can_use_video_channels
    assert get_feature_flags(FeatureTier.VIDEO).can_use_video_channels


def test_max_instances():
    assert max_instances_for(FeatureTier.CHAT) == 1
    assert max_instances_for(FeatureTier.AUDIO) == 5
    assert max_instances_for(FeatureTier.VIDEO) is None


def test_resource_names():
    assert container_name("xcord", "my-site.xcord.net") == "xcord-my-site-api"
    assert bucket_name("xcord", "my-site.xcord.net") == "xcord-my-site"
    assert database_name("xcord", "My-Site.xcord.net") == "xcord_my_site_xcord_net"


@pytest.mark.anyio
async def test_chat_tier_owner_cannot_hold_two_instances(store):
    store.add_instance(1, "first.xcord.net", owner_id=9, status=InstanceStatus.RUNNING, feature_tier=FeatureTier.CHAT)
    store.add_instance(2, "second.xcord.net", owner_id=9, feature_tier=FeatureTier.CHAT)

    result = await EnforceTierLimitsStep(store.uow_factory).execute(2)

    assert result.is_failure()
    assert result.error.code == errors.TIER_LIMIT_EXCEEDED
    assert 2 not in store.configs


@pytest.mark.anyio
async def test_destroyed_instances_do_not_count_against_tier(store):
    store.add_instance(1, "first.xcord.net", owner_id=9, status=InstanceStatus.DESTROYED, feature_tier=FeatureTier.CHAT)
    store.add_instance(2, "second.xcord.net", owner_id=9, feature_tier=FeatureTier.CHAT)
    step = EnforceTierLimitsStep(store.uow_factory)

    assert (await step.execute(2)).is_success()
    assert (await step.verify(2)).is_success()
    assert store.configs[2].feature_flags["can_use_voice_channels"] is False


@pytest.mark.anyio
async def test_domain_taken_by_live_instance(store):
    store.add_instance(1, "acme.xcord.net", status=InstanceStatus.RUNNING)
    store.add_instance(2, "acme.xcord.net")

    result = await ValidateSubdomainStep(store.uow_factory).execute(2)

    assert result.error.code == errors.DOMAIN_TAKEN
