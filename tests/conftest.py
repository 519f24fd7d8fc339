import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# In-memory DB for tests
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["DATABASE_URL"] = ""
os.environ["SEED_DEMO_PATIENTS"] = "false"

from dps.database import close_db, init_db
from dps.main import app
from dps.services.checklist import checklist_sessions
from dps.services.notifications import notifications
from dps.services.reports import report_exporter


@pytest.fixture(autouse=True)
def _reset_session_state():
    """Notifications, checklist sessions and the export flag are process-wide; start each test clean."""
    report_exporter.busy = False
    notifications.clear()
    checklist_sessions.clear()
    yield
    notifications.clear()
    checklist_sessions.clear()


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import dps.database as db_mod

    # Close any existing connection
    if db_mod._db is not None:
        try:
            await db_mod._db.close()
        except Exception:
            pass
    db_mod._db = None

    # Override module-level config directly (avoids fragile importlib.reload)
    db_mod.DATABASE_PATH = ":memory:"
    db_mod.DATABASE_URL = ""
    db_mod.SEED_DEMO_PATIENTS = False

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest.fixture
def client(db):
    """Provide a synchronous TestClient for HTTP endpoint tests."""
    return TestClient(app)


@pytest_asyncio.fixture
async def async_client(db):
    """Provide an async httpx client for async HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
