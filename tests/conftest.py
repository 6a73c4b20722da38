# tests/conftest.py
import asyncio
import os

# Must be set before the app reads its settings.
os.environ["APP_ENV"] = "test"
os.environ["DB_URL"] = "sqlite+aiosqlite:///./.pytest_clinic.db"
os.environ.pop("INTERNAL_API_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.db.session import init_db  # noqa: E402
from app.main import create_app  # noqa: E402
from app.services.read_model_cache import get_read_model_cache  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient fixture for all tests.

    Uses the application factory so configuration stays test-friendly.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def _reset_state():
    """
    Automatically reset the DB and the read-model cache before each test.

    This means:
    - you don't need to manually call `await init_db()` in tests
    - every test gets a clean schema + empty tables
    """
    # Private loop: leaves the current event loop untouched for async tests.
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(init_db())
    finally:
        loop.close()
    get_read_model_cache().clear()
    yield
