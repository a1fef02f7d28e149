import os
import uuid

import pytest
from fastapi.testclient import TestClient

# --- Alembic Imports ---
from alembic.config import Config
from alembic import command
# --- End Alembic Imports ---

import auth
from database import create_db_and_tables, make_engine
from main import create_app
from settings import Settings
from storage import MemoryStorage, SqlStorage

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

TEST_SETTINGS = Settings(
    storage_backend="memory",
    session_secret="test-session-secret",
    log_format="console",
    log_level="WARNING",
)

TEST_PASSWORD = "correct-horse-battery"


def unique_username(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10]}"


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Cheap bcrypt cost factor; hashes stay real bcrypt hashes."""
    monkeypatch.setattr(auth, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory):
    """Create the test database from models and stamp with Alembic head."""
    db_path = tmp_path_factory.mktemp("db") / "job-tracker-test.db"
    url = f"sqlite:///{db_path}"

    # --- Create schema directly from models --- #
    engine = make_engine(url)
    create_db_and_tables(engine)
    engine.dispose()

    # --- Stamp the database with the latest Alembic revision --- #
    alembic_cfg = Config(os.path.join(PROJECT_ROOT, "alembic.ini"))
    alembic_cfg.attributes["sqlalchemy.url"] = url  # Point env.py at the test DB
    command.stamp(alembic_cfg, "head")

    yield url


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store-level and API test runs against both backends."""
    if request.param == "memory":
        backend = MemoryStorage()
    else:
        backend = SqlStorage(request.getfixturevalue("test_database_url"), create_tables=False)
    backend.open()
    yield backend
    backend.close()


@pytest.fixture
def make_user(store):
    """Create a user directly in the store."""

    def _make(username=None, **fields):
        return store.create_user(
            {"username": username or unique_username(), "password": auth.hash_password(TEST_PASSWORD), **fields}
        )

    return _make


@pytest.fixture
def app(store):
    return create_app(store=store, settings=TEST_SETTINGS)


@pytest.fixture
def client_factory(app):
    """Registered, logged-in clients; each has its own cookie jar (session)."""

    def _make(username=None):
        client = TestClient(app)
        response = client.post(
            "/api/register",
            json={"username": username or unique_username(), "password": TEST_PASSWORD},
        )
        assert response.status_code == 201, response.text
        return client, response.json()

    return _make


@pytest.fixture
def anonymous_client(app):
    return TestClient(app)
