import json

import httpx
import pytest

from config import Settings
from http_client import HTTPClient
from storage import StorageCleanup, SupabaseStorage, extract_object_key

BUCKET = "ebook-pdf"


@pytest.mark.parametrize("url,key", [
    ("https://abc.supabase.co/storage/v1/object/public/ebook-pdf/books/a.pdf", "books/a.pdf"),
    ("https://store/ebook-pdf/a.pdf", "a.pdf"),
    ("https://store/ebook-pdf/my%20book.pdf", "my book.pdf"),
    ("https://store/ebook-pdf/a.pdf?download=1", "a.pdf"),
    ("https://store/other-bucket/a.pdf", None),
    ("https://store/ebook-pdf/", None),
    ("u1", None),
    ("", None),
])
def test_extract_object_key(url, key):
    assert extract_object_key(url, BUCKET) == key


def _mock_client(handler):
    return HTTPClient(transport=httpx.MockTransport(handler))


def test_supabase_remove_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"name": "books/a.pdf"}])

    with _mock_client(handler) as client:
        storage = SupabaseStorage("https://abc.supabase.co/", "service-key", BUCKET, client=client)
        storage.remove(["books/a.pdf"])

    assert seen["method"] == "DELETE"
    assert seen["url"] == "https://abc.supabase.co/storage/v1/object/ebook-pdf"
    assert seen["body"] == {"prefixes": ["books/a.pdf"]}
    assert seen["headers"]["apikey"] == "service-key"
    assert seen["headers"]["authorization"] == "Bearer service-key"


def test_supabase_remove_raises_on_error_status():
    with _mock_client(lambda request: httpx.Response(500)) as client:
        storage = SupabaseStorage("https://abc.supabase.co", "service-key", BUCKET, client=client)
        with pytest.raises(httpx.HTTPStatusError):
            storage.remove(["a.pdf"])


def test_discard_removes_key(storage):
    StorageCleanup(storage=storage, bucket=BUCKET).discard("https://store/ebook-pdf/a.pdf")
    assert storage.removed == [["a.pdf"]]


@pytest.mark.parametrize("url", [None, "", "https://store/elsewhere/a.pdf", "not a url"])
def test_discard_ignores_urls_outside_bucket(storage, url):
    StorageCleanup(storage=storage, bucket=BUCKET).discard(url)
    assert storage.removed == []


def test_discard_swallows_storage_failure(storage):
    storage.fail = True
    assert StorageCleanup(storage=storage, bucket=BUCKET).discard("https://store/ebook-pdf/a.pdf") is None
    assert storage.removed == [["a.pdf"]]


def test_discard_swallows_http_errors():
    with _mock_client(lambda request: httpx.Response(403, json={"error": "Unauthorized"})) as client:
        storage = SupabaseStorage("https://abc.supabase.co", "bad-key", BUCKET, client=client)
        StorageCleanup(storage=storage, bucket=BUCKET).discard("https://store/ebook-pdf/a.pdf")


def test_discard_without_configured_storage():
    cleanup = StorageCleanup(settings=Settings(supabase_url=None, supabase_service_key=None))
    assert cleanup.storage is None
    cleanup.discard("https://store/ebook-pdf/a.pdf")


def test_cleanup_builds_supabase_storage_from_settings():
    cfg = Settings(supabase_url="https://abc.supabase.co", supabase_service_key="key", storage_bucket="pdfs")
    cleanup = StorageCleanup(settings=cfg)
    assert isinstance(cleanup.storage, SupabaseStorage)
    assert cleanup.bucket == "pdfs"
    assert cleanup.storage.bucket == "pdfs"
