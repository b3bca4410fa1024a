import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dispatch_board.auth.identity import ActorIdentity
from dispatch_board.config import Settings
from dispatch_board.db import Base
from dispatch_board.errors import AuthError
from dispatch_board.main import create_app
from dispatch_board.models import models  # noqa: F401
from dispatch_board.services.broadcast_hub import BroadcastHub, BroadcastCoordinator
from dispatch_board.services.resources import build_services

TEST_PIN = "4321"
ADMIN_TOKEN = "token-sgt-reyes"
ADMIN_ACTOR = ActorIdentity(email="reyes@pd.example.org", name="Sgt. Reyes", user_id="user-17")


class RecordingHub(BroadcastHub):
    def __init__(self):
        super().__init__()
        self.events = []

    async def broadcast(self, event, payload):
        self.events.append((event, payload))
        return 0


class FakeIdentityProvider:
    def __init__(self, accounts=None):
        self.accounts = accounts if accounts is not None else {ADMIN_TOKEN: ADMIN_ACTOR}

    async def fetch_identity(self, access_token):
        actor = self.accounts.get(access_token)
        if actor is None:
            raise AuthError("Session expired or invalid")
        return actor


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = {
            "ADMIN_PIN": TEST_PIN,
            "TZ_DEFAULT": "America/Vancouver",
            "DATABASE_URL": "sqlite://",
            "AUTO_CREATE_DB": False,
            "RATE_LIMIT": "1000/minute",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True, expire_on_commit=False)


@pytest.fixture
def board(settings, session_factory):
    """Services wired to a recording hub, no HTTP layer."""
    hub = RecordingHub()
    coordinator = BroadcastCoordinator(hub)
    services = build_services(settings, session_factory, coordinator)
    return hub, coordinator, services


@pytest.fixture
def app(settings, session_factory):
    return create_app(settings, session_factory=session_factory)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def admin(app):
    return TestClient(app, cookies={"dispatch_session": "true"})


@pytest.fixture
def account_app(make_settings, session_factory):
    cfg = make_settings(AUTH_MODE="account", IDENTITY_PROJECT_ID="proj", IDENTITY_SECRET_KEY="secret")
    return create_app(cfg, session_factory=session_factory, identity_provider=FakeIdentityProvider())


@pytest.fixture
def account_admin(account_app):
    return TestClient(account_app, headers={"Authorization": f"Bearer {ADMIN_TOKEN}"})
