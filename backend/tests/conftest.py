import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

TEST_SECRET_KEY = "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"

os.environ.setdefault("SECRET_KEY", TEST_SECRET_KEY)
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from stockpile import models  # noqa: E402,F401
from stockpile.config import Settings  # noqa: E402
from stockpile.database import Base, enable_sqlite_foreign_keys  # noqa: E402
from stockpile.main import create_app  # noqa: E402
from stockpile.services.stytch import ProviderIdentity, VerifiedPhone  # noqa: E402

PASSWORD = "TestPass123!"


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeIdentityProvider:
    """In-memory stand-in for Stytch: every code is 123456."""

    code = "123456"

    def __init__(self) -> None:
        self.sent: dict[str, str] = {}
        self.oauth_tokens: dict[str, ProviderIdentity] = {}

    def send_sms_code(self, phone_number: str) -> str:
        method_id = f"phone-number-test-{len(self.sent) + 1}"
        self.sent[method_id] = phone_number
        return method_id

    def verify_code(self, method_id: str, code: str) -> VerifiedPhone | None:
        if method_id not in self.sent or code != self.code:
            return None
        return VerifiedPhone(phone_number=self.sent[method_id])

    def authenticate_oauth(self, token: str) -> ProviderIdentity | None:
        return self.oauth_tokens.get(token)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        secret_key=TEST_SECRET_KEY,
        database_url="sqlite://",
        rate_limit_enabled=False,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def client(settings, engine, identity_provider, clock):
    app = create_app(settings, engine=engine, identity_provider=identity_provider, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, email: str, password: str = PASSWORD, **extra):
    response = client.post(
        "/api/auth/register",
        data={"email": email, "password": password, **extra},
    )
    assert response.status_code == 201, response.text
    return response


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
