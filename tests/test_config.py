from __future__ import annotations

import pytest

from styleweather.config import OfflineConfig
from styleweather.exceptions import ConfigError


def test_defaults() -> None:
    config = OfflineConfig()
    assert config.default_ttl == 1800
    assert config.weather_ttl == 600
    assert config.recommendation_ttl == 3600
    assert config.schedules_ttl == 86400
    assert config.preferences_ttl == 604800
    assert config.max_retries == 3
    assert config.sync_item_delay == 0.1
    assert config.cache_prefix == "StyleWeather_Cache_"
    assert config.queue_key == "StyleWeather_OfflineQueue"
    assert config.storage_path is None
    assert config.auto_sync is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"weather_ttl": 0},
        {"default_ttl": -1},
        {"max_retries": 0},
        {"sync_item_delay": -0.1},
        {"pending_refresh_interval": 0},
        {"cache_prefix": ""},
        {"queue_key": "StyleWeather_Cache_queue"},
    ],
)
def test_invalid_values_are_rejected(kwargs: dict) -> None:
    with pytest.raises(ConfigError):
        OfflineConfig(**kwargs)


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STYLEWEATHER_WEATHER_TTL", "120")
    monkeypatch.setenv("STYLEWEATHER_MAX_RETRIES", "5")
    monkeypatch.setenv("STYLEWEATHER_STORAGE_PATH", "/tmp/sw.json")
    monkeypatch.setenv("STYLEWEATHER_AUTO_SYNC", "off")

    config = OfflineConfig.from_env()

    assert config.weather_ttl == 120.0
    assert config.max_retries == 5
    assert config.storage_path == "/tmp/sw.json"
    assert config.auto_sync is False


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STYLEWEATHER_MAX_RETRIES", "5")
    monkeypatch.setenv("STYLEWEATHER_AUTO_SYNC", "no")

    config = OfflineConfig.from_env(max_retries=2, auto_sync=True)

    assert config.max_retries == 2
    assert config.auto_sync is True


def test_from_env_rejects_bad_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STYLEWEATHER_SYNC_ITEM_DELAY", "fast")
    with pytest.raises(ConfigError):
        OfflineConfig.from_env()
