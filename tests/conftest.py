import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Configure the environment before anything reads api.config
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only-do-not-use-in-production")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from models.credential_store import CredentialStore  # noqa: E402
from models.db_storage import DBStorage  # noqa: E402
from models.session_store import SessionStore  # noqa: E402
from services.session_manager import SessionManager  # noqa: E402
from utils.security import SigningKey, TokenSigner  # noqa: E402


class FakeClock:
    """Mutable clock for expiry tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def signing_key():
    return SigningKey(secret="Test-Secret-Key_for-Automation-Only-987654321!")


@pytest.fixture
def signer(signing_key):
    return TokenSigner(signing_key, access_ttl=timedelta(minutes=15), refresh_ttl=timedelta(days=7))


@pytest.fixture
def storage(tmp_path):
    db = DBStorage(f"sqlite:///{tmp_path / 'auth.db'}")
    db.reload()
    yield db
    db.dispose()


@pytest.fixture
def credential_store(storage):
    return CredentialStore(storage)


@pytest.fixture
def session_store(storage):
    return SessionStore(storage)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(credential_store, session_store, signer, clock):
    return SessionManager(credential_store, session_store, signer, clock=clock)


@pytest.fixture
def app(tmp_path):
    from api import create_app

    app = create_app(
        "testing",
        test_config={"DATABASE_URL": f"sqlite:///{tmp_path / 'api.db'}"},
    )
    yield app
    from models import storage as app_storage

    app_storage.dispose()


@pytest.fixture
def client(app):
    return app.test_client()
