"""Removal of PDF objects that no book record points to any more.

Book records reference their PDFs by public URL, e.g.
``https://<project>.supabase.co/storage/v1/object/public/ebook-pdf/books/a.pdf``.
The storage key is whatever follows the bucket segment of the path.
"""
import logging
from typing import List, Optional, Protocol
from urllib.parse import unquote, urlparse

import httpx

from config import Settings, settings as default_settings
from http_client import HTTPClient, get_http_client

logger = logging.getLogger(__name__)


def extract_object_key(url: str, bucket: str) -> Optional[str]:
    """Return the storage key for ``url``, or None when it is not in ``bucket``."""
    path = urlparse(url).path
    marker = f"/{bucket}/"
    if marker not in path:
        return None
    key = unquote(path.split(marker, 1)[1])
    return key or None


class ObjectRemover(Protocol):
    def remove(self, keys: List[str]) -> None: ...


class SupabaseStorage:
    """Deletes objects from one Supabase Storage bucket over its REST API."""

    def __init__(self, base_url: str, service_key: str, bucket: str, client: Optional[HTTPClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self._client = client

    @property
    def client(self) -> HTTPClient:
        return self._client or get_http_client()

    def remove(self, keys: List[str]) -> None:
        """Delete ``keys`` from the bucket. Raises on transport or HTTP errors."""
        response = self.client.delete(
            f"{self.base_url}/storage/v1/object/{self.bucket}",
            json={"prefixes": keys},
            headers={
                "apikey": self.service_key,
                "Authorization": f"Bearer {self.service_key}",
            },
        )
        response.raise_for_status()


class StorageCleanup:
    """Best-effort deletion of orphaned PDF objects.

    ``discard`` never raises: the book record lifecycle must carry on no matter
    what happens on the storage side, so every failure is logged and dropped.
    """

    def __init__(self, storage: Optional[ObjectRemover] = None, bucket: Optional[str] = None,
                 settings: Optional[Settings] = None) -> None:
        cfg = settings or default_settings
        self.bucket = bucket or cfg.storage_bucket
        if storage is None and cfg.storage_configured:
            storage = SupabaseStorage(cfg.supabase_url, cfg.supabase_service_key, self.bucket)
        self.storage = storage

    def discard(self, url: Optional[str]) -> None:
        if not url:
            return
        try:
            key = extract_object_key(url, self.bucket)
            if key is None:
                logger.debug(f"No '{self.bucket}' object in {url}, nothing to delete")
                return
            if self.storage is None:
                logger.warning(f"Object storage is not configured; skipping delete of '{key}'")
                return
            self.storage.remove([key])
            logger.info(f"Deleted storage object '{key}' from bucket '{self.bucket}'")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to delete storage object for {url}: {e}")
        except Exception as e:
            logger.warning(f"Unexpected error deleting storage object for {url}: {e}")
