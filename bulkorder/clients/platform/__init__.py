"""
Platform API client: base interface and httpx implementation.

Build from env: HttpPlatformClient(load_platform_config()).
"""
from bulkorder.clients.platform.base import BasePlatformClient
from bulkorder.clients.platform.http import HttpPlatformClient

__all__ = [
    "BasePlatformClient",
    "HttpPlatformClient",
]
