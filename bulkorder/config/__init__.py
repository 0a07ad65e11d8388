"""
Engine config: load from env.

Load from env: load_engine_config(), load_platform_config().
"""
from bulkorder.config.engine import EngineConfig, load_engine_config
from bulkorder.config.platform import PlatformApiConfig, load_platform_config

__all__ = [
    "EngineConfig",
    "load_engine_config",
    "PlatformApiConfig",
    "load_platform_config",
]
