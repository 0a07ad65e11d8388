"""Tests for engine and platform config loading."""
from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from bulkorder.config import EngineConfig, PlatformApiConfig, load_engine_config, load_platform_config
from bulkorder.core.exceptions import ConfigurationError


class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.allocation_epsilon == Decimal("0.01")
        assert config.money_quantum == Decimal("0.01")
        assert config.remaining_quantum == Decimal("0.0001")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ENGINE_GST_RATE", "0.15")
        monkeypatch.setenv("ENGINE_DEFAULT_TRUCK_TYPE", " body_truck ")
        config = load_engine_config()
        assert config.gst_rate == Decimal("0.15")
        assert config.default_truck_type == "body_truck"

    def test_overrides_win_over_env(self, monkeypatch):
        monkeypatch.setenv("ENGINE_MIN_QUANTITY", "0.5")
        assert load_engine_config(min_quantity="1").min_quantity == Decimal("1")

    @pytest.mark.parametrize("kwargs", [
        {"allocation_epsilon": Decimal("0")},
        {"gst_rate": Decimal("1")},
        {"money_places": 9},
        {"default_truck_type": " "},
        {"default_delivery_time": "8am"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            EngineConfig(**kwargs)

    def test_invalid_env_decimal(self, monkeypatch):
        monkeypatch.setenv("ENGINE_GST_RATE", "ten percent")
        with pytest.raises(ValueError, match="gst_rate"):
            load_engine_config()


class TestPlatformApiConfig:
    def test_strips_trailing_slash(self):
        assert PlatformApiConfig(base_url="https://platform.test/api/").base_url == "https://platform.test/api"

    def test_token_masked_in_repr(self):
        config = PlatformApiConfig(base_url="https://platform.test/api", api_token="s3cret")
        assert "s3cret" not in repr(config)
        assert "***" in repr(config)

    def test_rejects_bad_url_and_timeout(self):
        with pytest.raises(ValueError):
            PlatformApiConfig(base_url="platform.test")
        with pytest.raises(ValueError):
            PlatformApiConfig(base_url="https://platform.test", timeout=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PLATFORM_API_URL", "https://orders.test/api/")
        monkeypatch.setenv("PLATFORM_API_TOKEN", "tok")
        monkeypatch.setenv("PLATFORM_API_TIMEOUT", "12.5")
        config = load_platform_config()
        assert config.base_url == "https://orders.test/api"
        assert config.api_token == "tok"
        assert config.timeout == 12.5


class TestApiStartup:
    def _start(self):
        from fastapi import FastAPI

        from bulkorder.api.main import lifespan

        app = FastAPI()

        async def scenario():
            async with lifespan(app):
                return app.state.engine_config

        return asyncio.run(scenario())

    def test_loads_engine_config(self, monkeypatch):
        monkeypatch.setenv("ENGINE_GST_RATE", "0.12")
        assert self._start().gst_rate == Decimal("0.12")

    def test_invalid_env_is_a_configuration_error(self, monkeypatch):
        monkeypatch.setenv("ENGINE_DEFAULT_DELIVERY_TIME", "25:00")
        with pytest.raises(ConfigurationError) as exc_info:
            self._start()
        assert isinstance(exc_info.value.cause, ValueError)
