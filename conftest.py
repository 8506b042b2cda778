import os
import tempfile

# Keep the module-level app in api.py away from the working directory's database.
os.environ.setdefault("LIBRARY_DB_FILE", os.path.join(tempfile.gettempdir(), f"ebooks_test_{os.getpid()}.db"))

import httpx
import pytest
from fastapi.testclient import TestClient

from api import create_app
from config import Settings
from library import Library
from storage import StorageCleanup

ADMIN = {"username": "admin", "password": "secret"}


class FakeStorage:
    """Records remove calls instead of talking to Supabase."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.removed = []

    def remove(self, keys):
        self.removed.append(list(keys))
        if self.fail:
            raise httpx.ConnectError("storage unavailable")


@pytest.fixture
def settings(tmp_path):
    # tmp_path is unique per test, so each test gets its own database
    return Settings(
        database_file=str(tmp_path / "test.db"),
        admin_username=ADMIN["username"],
        admin_password=ADMIN["password"],
        session_secret="test-session-secret",
        supabase_url=None,
        supabase_service_key=None,
        environment="development",
        default_page_limit=5,
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def lib(settings, storage):
    lib = Library(settings=settings, cleanup=StorageCleanup(storage=storage, settings=settings))
    yield lib
    lib.close()


@pytest.fixture
def client(settings, lib):
    with TestClient(create_app(settings, library=lib)) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    response = client.post("/api/login", json=ADMIN)
    assert response.status_code == 200
    return client
