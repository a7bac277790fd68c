"""Tests for configuration system."""

import pytest
from pydantic import ValidationError

from rigforge.config import (
    AppConfig,
    RiggingSettings,
    ServerSettings,
    StoreSettings,
    load_config,
)


def test_store_settings_defaults():
    s = StoreSettings()
    assert s.assets_dir.name == "gdd-assets"
    assert s.metadata_filename == "metadata.json"
    assert s.lock_timeout == 30.0


def test_rigging_settings_defaults():
    r = RiggingSettings()
    assert r.processing_timeout == 300.0
    assert r.sweep_interval == 5.0
    assert r.default_compatibility == ["mixamo", "unity", "unreal"]


def test_server_settings_urls():
    s = ServerSettings(host="127.0.0.1", http_port=9000, ws_port=9001)
    assert s.stats_url == "http://127.0.0.1:9000/api/stats"
    assert s.ws_url == "ws://127.0.0.1:9001"


def test_app_config_defaults():
    config = AppConfig()
    assert config.config_dir.name == ".rigforge"
    assert config.store.assets_dir.parent.name == ".rigforge"


def test_env_override(monkeypatch):
    monkeypatch.setenv("RIGFORGE_RIGGING__PROCESSING_TIMEOUT", "60")
    monkeypatch.setenv("RIGFORGE_SERVER__HTTP_PORT", "9100")
    config = AppConfig()
    assert config.rigging.processing_timeout == 60.0
    assert config.server.http_port == 9100


def test_negative_timeout_rejected():
    with pytest.raises(ValidationError):
        RiggingSettings(processing_timeout=-1)


@pytest.mark.parametrize("bad", [0, -1, 65536, 100000])
def test_server_port_rejected(bad: int) -> None:
    with pytest.raises(ValidationError):
        ServerSettings(http_port=bad)


@pytest.mark.parametrize("good", [1, 8765, 443, 65535])
def test_server_port_accepted(good: int) -> None:
    settings = ServerSettings(ws_port=good)
    assert settings.ws_port == good


def test_load_config_with_assets_dir(tmp_path):
    target = tmp_path / "assets"
    config = load_config(target)
    assert config.store.assets_dir == target
    assert target.is_dir()
