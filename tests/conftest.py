from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, insert
from sqlalchemy.pool import StaticPool

from gate_service.api.dependencies import get_clock, get_repository
from gate_service.config import config
from gate_service.database import colleges, metadata, teams
from gate_service.main import create_app
from gate_service.repositories import InMemoryGateRepository, InMemoryStore, SqlGateRepository
from gate_service.services import AuthService, QRTokenCodec

QR_SECRET = "test-qr-secret"
JWT_SECRET = "test-jwt-secret"
T0 = datetime(2026, 3, 14, 9, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Controllable stand-in for utc_now."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT to behave
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    metadata.create_all(engine)
    return engine


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    monkeypatch.setattr(config, "QR_SECRET", QR_SECRET)
    monkeypatch.setattr(config, "JWT_SECRET", JWT_SECRET)
    monkeypatch.setattr(config, "STORAGE_BACKEND", "memory")
    monkeypatch.setattr(config, "AUDIT_DEACTIVATED_SCANS", False)
    monkeypatch.setattr(config, "DEFAULT_GATE_LOCATION", "GATE1")
    return config


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def codec(clock):
    return QRTokenCodec(QR_SECRET, clock=clock)


@pytest.fixture
def auth_service():
    # Real clock: python-jose checks "exp" against wall time
    return AuthService(secret=JWT_SECRET)


@pytest.fixture
def engine():
    engine = sqlite_engine()
    yield engine
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def repository(request):
    if request.param == "memory":
        yield InMemoryGateRepository(InMemoryStore())
        return

    engine = sqlite_engine()
    with engine.begin() as conn:
        yield SqlGateRepository(conn)
    engine.dispose()


def add_team(repository, name):
    if isinstance(repository, InMemoryGateRepository):
        return repository.store.add_team(name)
    return repository.conn.execute(insert(teams).values(name=name)).inserted_primary_key[0]


def add_college(repository, name):
    if isinstance(repository, InMemoryGateRepository):
        return repository.store.add_college(name)
    return repository.conn.execute(insert(colleges).values(name=name)).inserted_primary_key[0]


def make_user(repository, email, role="participant", entity_id=None, qr_token="", is_active=True,
              password="secret-pass", **fields):
    user = AuthService(secret=JWT_SECRET).create_user(
        repository,
        email,
        password,
        full_name=fields.pop("full_name", email.split("@")[0].title()),
        role=role,
        is_active=is_active,
        **fields,
    )
    if entity_id:
        repository.save_credentials(user.id, entity_id, qr_token or f"{entity_id}:0:stub", T0)
    return repository.find_participant_by_id(user.id)


@pytest.fixture
def operator(repository):
    return make_user(repository, "volunteer@onlyfounders.test", role="gate_volunteer")


@pytest.fixture
def participant(repository):
    team_id = add_team(repository, "Rocket Labs")
    college_id = add_college(repository, "IIT Bombay")
    return make_user(
        repository,
        "founder@onlyfounders.test",
        entity_id="OF-2026-AB12",
        phone_number="+91-9000000000",
        team_id=team_id,
        college_id=college_id,
    )


@pytest.fixture
def client(repository, clock):
    app = create_app()
    app.dependency_overrides[get_repository] = lambda: repository
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def bearer(auth_service):
    def _headers(user):
        return {"Authorization": f"Bearer {auth_service.create_access_token(user)}"}
    return _headers
