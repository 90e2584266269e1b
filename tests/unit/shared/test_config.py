import pytest
from pydantic import ValidationError

from src.config import Settings
from src.shared.exceptions import ConfigurationError
from src.workers.bootstrap import build_collaborators


def test_defaults_are_consistent():
    settings = Settings()
    assert settings.HUB_WORKER_ID < settings.WORKER_ID_MIN <= settings.WORKER_ID_MAX <= 1023
    assert settings.HEALTH_RESTART_THRESHOLD < settings.HEALTH_ALERT_THRESHOLD


@pytest.mark.parametrize(
    "overrides",
    [
        {"WORKER_ID_MIN": 1, "HUB_WORKER_ID": 1},
        {"WORKER_ID_MIN": 10, "HUB_WORKER_ID": 10},
        {"WORKER_ID_MAX": 2048},
        {"WORKER_ID_MIN": 500, "WORKER_ID_MAX": 400},
        {"HEALTH_RESTART_THRESHOLD": 5, "HEALTH_ALERT_THRESHOLD": 5},
    ],
)
def test_invalid_ranges_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_environment_alias(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    assert Settings().is_prod


def test_real_adapters_must_be_supplied():
    settings = Settings(USE_NOOP_ADAPTERS=False)
    with pytest.raises(ConfigurationError) as exc:
        build_collaborators(settings)
    assert exc.value.details == {"missing": ["runtime", "proxy", "dns", "storage"]}
