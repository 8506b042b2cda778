import logging
from typing import Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class HTTPClient:
    """Pooled HTTP client used for calls to the object storage service."""

    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.BaseTransport] = None):
        limits = httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0
        )
        read_timeout = timeout or settings.storage_timeout
        self._client = httpx.Client(
            limits=limits,
            timeout=httpx.Timeout(timeout=read_timeout, connect=5.0),
            follow_redirects=True,
            transport=transport,
        )

    def delete(self, url: str, **kwargs) -> httpx.Response:
        """DELETE request; accepts a JSON body, which ``httpx.Client.delete`` does not."""
        return self._client.request("DELETE", url, **kwargs)

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# Global HTTP client instance
_global_client: Optional[HTTPClient] = None


def get_http_client() -> HTTPClient:
    """Get or create the global HTTP client instance"""
    global _global_client
    if _global_client is None:
        _global_client = HTTPClient()
    return _global_client


def cleanup_http_client():
    """Close the global HTTP client"""
    global _global_client
    if _global_client:
        _global_client.close()
        _global_client = None
        logger.debug("HTTP client closed")
